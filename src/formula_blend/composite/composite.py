"""Formula compositing of two pixel sources."""

import logging
from typing import Any

import numpy as np

from formula_blend.composite.pixels import CompositeResult, PixelSource
from formula_blend.composite.rect import Rect
from formula_blend.exceptions import EmptyIntersection
from formula_blend.expression.engine import Engine, clamp01

logger = logging.getLogger(__name__)


def composite(
    base: PixelSource,
    blend: PixelSource,
    canvas_rect: Rect,
    engine: Engine,
) -> CompositeResult:
    """
    Blend two pixel sources with a compiled formula.

    Both sources are aligned into the union of their rectangles, clamped to
    the canvas. Pixels a source does not cover read as transparent black.
    Colors handed to the engine are premultiplied by their own alpha while
    ``ab`` and ``as`` stay straight. The engine's r/g/b are read back as
    premultiplied by the output alpha, which is the engine's fourth value or
    ``as + ab - as*ab`` for three-value formulas.

    Args:
        base: Base (backdrop) layer pixels.
        blend: Blend (source) layer pixels.
        canvas_rect: Document bounds every rectangle is clamped to.
        engine: Compiled formula from :py:func:`formula_blend.compile`.

    Returns:
        Straight-alpha RGBA bytes and the absolute rectangle to write them to.

    Raises:
        EmptyIntersection: A clamped source rectangle or the union is empty.

    Example::

        engine = compile("[rb*rs, gb*gs, bb*bs]")
        result = composite(base, blend, Rect(0, 0, 640, 480), engine)
        host.put_pixels(layer_id, result)
    """
    base_rect = base.rect.clamp(canvas_rect)
    blend_rect = blend.rect.clamp(canvas_rect)
    if base_rect.is_empty() or blend_rect.is_empty():
        raise EmptyIntersection(
            "Source rectangle is empty: base=%r, blend=%r" % (base_rect, blend_rect)
        )
    viewport = base_rect.union(blend_rect).clamp(canvas_rect)
    if viewport.is_empty():
        raise EmptyIntersection("Union rectangle is empty: %r" % (viewport,))
    logger.debug("Compositing %r and %r into %r", base_rect, blend_rect, viewport)

    rb, gb, bb, ab = _channels(base, viewport)
    rs, gs, bs, as_ = _channels(blend, viewport)
    out = engine(
        {
            "rb": rb * ab,
            "gb": gb * ab,
            "bb": bb * ab,
            "ab": ab,
            "rs": rs * as_,
            "gs": gs * as_,
            "bs": bs * as_,
            "as": as_,
        }
    )

    alpha = np.broadcast_to(
        clamp01(out[3] if engine.has_alpha else alpha_over(ab, as_)), ab.shape
    )
    color = np.stack(
        [unpremultiply(np.broadcast_to(value, alpha.shape), alpha) for value in out[:3]]
        + [alpha],
        axis=2,
    )
    return CompositeResult(to_bytes(color), viewport)


def paste(viewport: Rect, source: PixelSource) -> np.ndarray:
    """Place the source pixels into a zero-filled viewport array."""
    view = np.zeros((viewport.height, viewport.width, 4), dtype=np.float64)
    inter = viewport.intersect(source.bbox)
    if inter.is_empty():
        return view

    v = inter.relative_to(viewport)
    b = inter.relative_to(source.bbox)
    values = source.numpy()
    view[v.top : v.bottom, v.left : v.right, :] = values[
        b.top : b.bottom, b.left : b.right, :
    ]
    return view


def _channels(source: PixelSource, viewport: Rect) -> list[np.ndarray]:
    pixels = paste(viewport, source) / 255.0
    return [pixels[:, :, index] for index in range(4)]


def alpha_over(ab: Any, as_: Any) -> Any:
    """Alpha of a source composited over a backdrop."""
    return as_ + ab - as_ * ab


def unpremultiply(color: Any, alpha: Any) -> np.ndarray:
    """
    Recover straight color from color premultiplied by ``alpha``.

    Premultiplied values above their alpha are clipped to it first.
    """
    color = np.minimum(color, alpha)
    with np.errstate(divide="ignore", invalid="ignore"):
        straight = np.true_divide(color, alpha)
    return np.where(alpha > 0, straight, 0.0)


def to_bytes(values: np.ndarray) -> bytes:
    """Quantize [0, 1] floats to 8 bits, rounding half up."""
    return np.floor(values * 255.0 + 0.5).astype(np.uint8).tobytes()
