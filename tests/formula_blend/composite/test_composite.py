import logging

import numpy as np
import pytest

from formula_blend import compile
from formula_blend.composite import PixelSource, Rect, alpha_over, composite
from formula_blend.composite.composite import paste, to_bytes, unpremultiply
from formula_blend.composite.pil_io import to_canvas
from formula_blend.exceptions import EmptyIntersection

from ..utils import make_source, solid

logger = logging.getLogger(__name__)

CANVAS = Rect(0, 0, 10, 10)


def _random_opaque(width: int, height: int, left: int = 0, top: int = 0) -> PixelSource:
    rng = np.random.default_rng(1)
    array = rng.integers(0, 256, (height, width, 4), dtype=np.uint8)
    array[:, :, 3] = 255
    return make_source(array.tolist(), left, top)


def test_identity_of_opaque_layer() -> None:
    base = _random_opaque(6, 4, left=2, top=3)
    result = composite(base, base, CANVAS, compile("[rb, gb, bb]"))
    assert result.rect == base.rect
    assert result.data == base.data
    assert (result.numpy()[:, :, 3] == 255).all()


def test_normal_preset_on_opaque_layers() -> None:
    base = solid((10, 20, 30, 255), 3, 3)
    blend = solid((200, 100, 50, 255), 3, 3)
    result = composite(base, blend, CANVAS, compile("[rs, gs, bs]"))
    assert result.numpy()[1, 1].tolist() == [200, 100, 50, 255]


def test_union_rect() -> None:
    base = solid((255, 0, 0, 255), 2, 2, left=1, top=1)
    blend = solid((0, 0, 255, 255), 2, 2, left=5, top=6)
    result = composite(base, blend, CANVAS, compile("B+T"))
    assert result.rect == Rect(1, 1, 7, 8)
    assert result.numpy().shape == (7, 6, 4)


def test_union_is_clamped_to_canvas() -> None:
    base = solid((255, 0, 0, 255), 4, 4, left=-2, top=-2)
    blend = solid((0, 0, 255, 255), 4, 4, left=8, top=8)
    result = composite(base, blend, CANVAS, compile("B+T"))
    assert result.rect == Rect(0, 0, 10, 10)
    pixels = result.numpy()
    assert pixels[0, 0].tolist() == [255, 0, 0, 255]
    assert pixels[1, 1].tolist() == [255, 0, 0, 255]
    assert pixels[2, 2].tolist() == [0, 0, 0, 0]
    assert pixels[9, 9].tolist() == [0, 0, 255, 255]


def test_uncovered_pixels_are_transparent() -> None:
    base = solid((255, 128, 0, 255), 2, 1, left=0, top=0)
    blend = solid((0, 64, 255, 255), 2, 1, left=3, top=0)
    engine = compile("[rs, gs, bs, as]")
    result = composite(base, blend, CANVAS, engine).numpy()
    assert result[0, 0].tolist() == [0, 0, 0, 0]
    assert result[0, 2].tolist() == [0, 0, 0, 0]
    assert result[0, 3].tolist() == [0, 64, 255, 255]

    engine = compile("[rb, gb, bb, ab]")
    result = composite(base, blend, CANVAS, engine).numpy()
    assert result[0, 1].tolist() == [255, 128, 0, 255]
    assert result[0, 4].tolist() == [0, 0, 0, 0]


def test_colors_are_premultiplied() -> None:
    base = solid((255, 255, 255, 0), 1, 1)
    blend = solid((255, 255, 255, 51), 1, 1)
    seen = {}

    def capture(values):
        seen.update({k: float(v[0, 0]) for k, v in values.items()})
        return (0.0, 0.0, 0.0)

    composite(base, blend, CANVAS, _Spy(compile("[rs, gs, bs]"), capture))
    assert seen["rb"] == 0.0
    assert seen["ab"] == 0.0
    assert seen["rs"] == pytest.approx(0.2)
    assert seen["as"] == pytest.approx(0.2)


class _Spy:
    def __init__(self, engine, callback):
        self.engine = engine
        self.callback = callback
        self.has_alpha = engine.has_alpha

    def __call__(self, values):
        self.callback(values)
        return self.engine(values)


def test_default_alpha_over() -> None:
    assert alpha_over(0.5, 0.5) == 0.75
    assert alpha_over(1.0, 0.0) == 1.0
    assert alpha_over(0.0, 0.0) == 0.0


def test_default_alpha_in_composite() -> None:
    base = solid((0, 0, 0, 128), 1, 1)
    blend = solid((0, 0, 0, 128), 1, 1)
    result = composite(base, blend, CANVAS, compile("[0, 0, 0]")).numpy()
    a = 128 / 255
    assert result[0, 0, 3] == int(np.floor((a + a - a * a) * 255 + 0.5))


def test_explicit_alpha() -> None:
    base = solid((0, 0, 0, 255), 1, 1)
    blend = solid((0, 0, 0, 255), 1, 1)
    result = composite(base, blend, CANVAS, compile("[0, 0, 0, 0.2]")).numpy()
    assert result[0, 0, 3] == 51


def test_premultiplied_output_is_clipped_to_alpha() -> None:
    base = solid((0, 0, 0, 255), 1, 1)
    result = composite(base, base, CANVAS, compile("[1, 0.1, 0, 0.2]")).numpy()
    assert result[0, 0].tolist() == [255, 128, 0, 51]


def test_zero_alpha_yields_black() -> None:
    base = solid((255, 255, 255, 0), 1, 1)
    result = composite(base, base, CANVAS, compile("[1, 1, 1]")).numpy()
    assert result[0, 0].tolist() == [0, 0, 0, 0]


def test_multiply_with_transparent_blend() -> None:
    base = solid((255, 255, 255, 255), 1, 1)
    blend = solid((0, 0, 0, 0), 1, 1)
    result = composite(base, blend, CANVAS, compile("B*T")).numpy()
    assert result[0, 0].tolist() == [0, 0, 0, 0]


@pytest.mark.parametrize(
    "base_rect, blend_rect",
    [
        (Rect(3, 3, 3, 6), Rect(0, 0, 2, 2)),
        (Rect(0, 0, 2, 2), Rect(4, 4, 8, 4)),
        (Rect(20, 20, 30, 30), Rect(0, 0, 2, 2)),
    ],
)
def test_empty_intersection(base_rect: Rect, blend_rect: Rect) -> None:
    base = PixelSource(bytes(base_rect.width * base_rect.height * 4), base_rect)
    blend = PixelSource(bytes(blend_rect.width * blend_rect.height * 4), blend_rect)
    with pytest.raises(EmptyIntersection):
        composite(base, blend, CANVAS, compile("[rb, gb, bb]"))


def test_padded_source() -> None:
    rows = [bytes([255, 0, 0, 255, 0, 255, 0, 255]) + bytes(8) for _ in range(2)]
    base = PixelSource(b"".join(rows), Rect(0, 0, 2, 2))
    assert base.stride == 16
    result = composite(base, base, CANVAS, compile("[rb, gb, bb]")).numpy()
    assert result[1, 0].tolist() == [255, 0, 0, 255]
    assert result[1, 1].tolist() == [0, 255, 0, 255]


def test_paste() -> None:
    source = solid((255, 255, 255, 255), 2, 2, left=3, top=3)
    view = paste(Rect(2, 2, 6, 6), source)
    assert view.shape == (4, 4, 4)
    assert view[1:3, 1:3].min() == 255
    assert view[0].max() == 0


def test_unpremultiply() -> None:
    np.testing.assert_allclose(
        unpremultiply(np.array([0.25, 0.6, 0.1]), np.array([0.5, 0.5, 0.0])),
        [0.5, 1.0, 0.0],
    )


def test_to_bytes_rounds_half_up() -> None:
    assert to_bytes(np.array([0.0, 0.5, 1.0])) == bytes([0, 128, 255])


def test_to_canvas() -> None:
    base = solid((255, 0, 0, 255), 2, 2, left=4, top=4)
    result = composite(base, base, CANVAS, compile("[rb, gb, bb]"))
    image = to_canvas(result, CANVAS)
    assert image.size == (10, 10)
    assert image.getpixel((4, 4)) == (255, 0, 0, 255)
    assert image.getpixel((0, 0)) == (0, 0, 0, 0)
