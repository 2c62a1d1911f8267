"""Pixel buffers consumed and produced by the compositor."""

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np
from attrs import define, field

from formula_blend.composite.rect import Rect
from formula_blend.constants import PIXEL_SIZE

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)


def infer_stride(length: int, width: int, height: int) -> int:
    """
    Guess the row stride of a buffer of ``length`` bytes.

    Producers may pad rows; the stride is ``length // height`` when that is a
    whole number of pixels no smaller than a row, otherwise ``width * 4``.
    """
    if height <= 0:
        return width * PIXEL_SIZE
    stride = length // height
    if stride >= width * PIXEL_SIZE and stride % PIXEL_SIZE == 0:
        return stride
    return width * PIXEL_SIZE


@define(frozen=True)
class PixelSource:
    """
    Read-only 8-bit RGBA buffer placed at an absolute rectangle.

    :param data: Row-major RGBA bytes.
    :param rect: Absolute position; the buffer origin is ``(rect.left, rect.top)``.
    :param width: Sampled width in pixels, defaults to ``rect.width``.
    :param height: Sampled height in pixels, defaults to ``rect.height``.
    :param stride: Bytes per row, inferred from the buffer length when omitted.
    """

    data: bytes = field(converter=bytes, repr=lambda data: "<%d bytes>" % len(data))
    rect: Rect
    width: Optional[int] = None
    height: Optional[int] = None
    stride: Optional[int] = None

    def __attrs_post_init__(self) -> None:
        if self.width is None:
            object.__setattr__(self, "width", self.rect.width)
        if self.height is None:
            object.__setattr__(self, "height", self.rect.height)
        assert self.width is not None and self.height is not None
        if self.stride is None:
            object.__setattr__(
                self, "stride", infer_stride(len(self.data), self.width, self.height)
            )
        elif self.stride < self.width * PIXEL_SIZE:
            raise ValueError(
                "stride=%d is smaller than a row of %d pixels" % (self.stride, self.width)
            )

    def numpy(self) -> np.ndarray:
        """
        Return the sampled pixels as a uint8 array of shape (height, width, 4).

        Bytes missing from a short buffer read as 0.
        """
        assert self.width is not None and self.height is not None
        assert self.stride is not None
        size = self.stride * self.height
        buffer = np.frombuffer(self.data, dtype=np.uint8)[:size]
        if buffer.size < size:
            logger.debug("Padding short buffer: %d < %d bytes", buffer.size, size)
            buffer = np.concatenate((buffer, np.zeros(size - buffer.size, np.uint8)))
        rows = buffer.reshape((self.height, self.stride))
        return rows[:, : self.width * PIXEL_SIZE].reshape(
            (self.height, self.width, PIXEL_SIZE)
        )

    @property
    def bbox(self) -> Rect:
        """Rectangle actually covered by the sampled pixels."""
        assert self.width is not None and self.height is not None
        return Rect.from_size(self.width, self.height, self.rect.left, self.rect.top)

    @classmethod
    def frompil(cls, image: "Image.Image", left: int = 0, top: int = 0) -> "PixelSource":
        from formula_blend.composite.pil_io import to_pixel_source

        return to_pixel_source(image, left, top)


@define(frozen=True)
class CompositeResult:
    """Tightly packed 8-bit RGBA output and its absolute writeback rectangle."""

    data: bytes = field(repr=lambda data: "<%d bytes>" % len(data))
    rect: Rect

    @property
    def width(self) -> int:
        return self.rect.width

    @property
    def height(self) -> int:
        return self.rect.height

    def numpy(self) -> np.ndarray:
        """Return the pixels as a uint8 array of shape (height, width, 4)."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            (self.height, self.width, PIXEL_SIZE)
        )

    def topil(self) -> "Image.Image":
        from formula_blend.composite.pil_io import to_pil

        return to_pil(self)
