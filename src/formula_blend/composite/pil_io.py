"""
PIL IO module.

Conversion between :py:class:`PIL.Image.Image` and the compositor's pixel
buffers.
"""

import logging

import numpy as np
from PIL import Image

from formula_blend.composite.pixels import CompositeResult, PixelSource
from formula_blend.composite.rect import Rect

logger = logging.getLogger(__name__)


def to_pixel_source(image: Image.Image, left: int = 0, top: int = 0) -> PixelSource:
    """Convert an image placed at ``(left, top)`` into a :py:class:`PixelSource`."""
    if image.mode != "RGBA":
        logger.debug("Converting %s image to RGBA", image.mode)
        image = image.convert("RGBA")
    rect = Rect.from_size(image.width, image.height, left, top)
    return PixelSource(image.tobytes(), rect)


def to_pil(result: CompositeResult) -> Image.Image:
    """Convert a composite result to an RGBA image of the result size."""
    return Image.fromarray(np.ascontiguousarray(result.numpy()))


def to_canvas(result: CompositeResult, canvas_rect: Rect) -> Image.Image:
    """Paste a composite result at its absolute position on a transparent canvas."""
    canvas = Image.new("RGBA", canvas_rect.size, (0, 0, 0, 0))
    if result.width and result.height:
        position = result.rect.relative_to(canvas_rect)
        canvas.paste(to_pil(result), (position.left, position.top))
    return canvas
