"""
Composite module for formula blending.

This subpackage aligns two independently placed RGBA pixel sources into a
shared coordinate space and evaluates a compiled formula per pixel under
premultiplied-alpha semantics. It knows nothing about documents or layers:
it consumes and produces raw buffers and rectangles only.

Key modules:

- :py:mod:`formula_blend.composite.composite`: The compositor
- :py:mod:`formula_blend.composite.rect`: Rectangle geometry
- :py:mod:`formula_blend.composite.pixels`: Pixel source and result buffers
- :py:mod:`formula_blend.composite.pil_io`: Pillow conversion

Example usage::

    from formula_blend import compile
    from formula_blend.composite import PixelSource, Rect, composite

    base = PixelSource(base_bytes, Rect(0, 0, 100, 100))
    blend = PixelSource(blend_bytes, Rect(50, 50, 150, 150))
    result = composite(base, blend, Rect(0, 0, 200, 200), compile("B*T"))
    result.rect  # Rect(left=0, top=0, right=150, bottom=150)
"""

from formula_blend.composite.composite import alpha_over, composite
from formula_blend.composite.pixels import CompositeResult, PixelSource
from formula_blend.composite.rect import Rect

__all__ = ["CompositeResult", "PixelSource", "Rect", "alpha_over", "composite"]
