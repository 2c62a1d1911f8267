import logging
from typing import Any, Sequence

import numpy as np

from formula_blend.composite import PixelSource, Rect
from formula_blend.constants import CHANNEL_NAMES

logging.basicConfig(level=logging.DEBUG)

RGBA = tuple[int, int, int, int]


def make_source(
    pixels: Sequence[Sequence[RGBA]], left: int = 0, top: int = 0, **kwargs: Any
) -> PixelSource:
    """Build a source from rows of RGBA tuples."""
    array = np.asarray(pixels, dtype=np.uint8)
    height, width = array.shape[:2]
    return PixelSource(
        array.tobytes(), Rect.from_size(width, height, left, top), **kwargs
    )


def solid(color: RGBA, width: int, height: int, left: int = 0, top: int = 0) -> PixelSource:
    return make_source([[color] * width] * height, left, top)


def channels(**values: float) -> dict[str, float]:
    """Channel mapping with every unspecified channel at 0."""
    env = {name: 0.0 for name in CHANNEL_NAMES}
    env.update({("as" if k == "as_" else k): v for k, v in values.items()})
    return env
