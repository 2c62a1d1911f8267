"""
formula-blend: blend two image layers with a user-written per-pixel formula.

A formula is a short, restricted numeric expression over the channels of a
base layer (``rb gb bb ab``) and a blend layer (``rs gs bs as``). It is
compiled into a sandboxed :py:class:`~formula_blend.expression.Engine` and
evaluated over two arbitrarily placed RGBA pixel sources.

Basic usage::

    from formula_blend import PixelSource, Rect, compile, composite

    engine = compile("[rb*rs, gb*gs, bb*bs]")
    base = PixelSource(base_bytes, Rect(0, 0, 64, 64))
    blend = PixelSource(blend_bytes, Rect(32, 32, 96, 96))
    result = composite(base, blend, Rect(0, 0, 128, 128), engine)
    result.topil().save("result.png")

Architecture:

- :py:mod:`formula_blend.expression`: Formula tokenizer, parser and interpreter
- :py:mod:`formula_blend.composite`: Pixel alignment and compositing
- :py:mod:`formula_blend.retry`: Retry policies for external operations
- :py:mod:`formula_blend.apply`: Blend pass against a host document
- :py:mod:`formula_blend.presets`: JSON store of named formulas
"""

from formula_blend.composite import CompositeResult, PixelSource, Rect, composite
from formula_blend.expression import Engine, compile, expand
from formula_blend.version import __version__

__all__ = [
    "CompositeResult",
    "Engine",
    "PixelSource",
    "Rect",
    "__version__",
    "compile",
    "composite",
    "expand",
]
