"""
Sandboxed formula language.

Formulas combine the channels of a base layer (``rb gb bb ab``) and a blend
layer (``rs gs bs as``) into an output color ``[r, g, b]`` or
``[r, g, b, a]``. ``B`` and ``T`` are vector shorthands expanded per channel,
so ``B*T`` is the same as ``[rb*rs, gb*gs, bb*bs, ab*as]``.

Example usage::

    from formula_blend.expression import compile

    engine = compile("[rb*rs, gb*gs, bb*bs]")
    r, g, b = engine({"rb": 1.0, "gb": 0.5, "bb": 0.0, "ab": 1.0,
                      "rs": 0.5, "gs": 0.5, "bs": 0.5, "as": 1.0})

Key modules:

- :py:mod:`formula_blend.expression.tokenizer`: whitelist tokenizer
- :py:mod:`formula_blend.expression.parser`: recursive descent parser
- :py:mod:`formula_blend.expression.interpreter`: tree evaluation
- :py:mod:`formula_blend.expression.functions`: safe function library
"""

from formula_blend.expression.engine import Engine, clamp01, compile, expand
from formula_blend.expression.functions import FUNCTIONS

__all__ = ["Engine", "FUNCTIONS", "clamp01", "compile", "expand"]
