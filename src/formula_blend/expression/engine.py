"""Formula compilation into callable engines."""

import logging
from collections.abc import Mapping
from typing import Any, Union

import numpy as np
from attrs import define, field

from formula_blend.constants import CHANNEL_NAMES
from formula_blend.exceptions import FormulaSyntaxError, InvalidReturnArity
from formula_blend.expression.interpreter import Interpreter
from formula_blend.expression.nodes import Node, result_arity
from formula_blend.expression.parser import parse
from formula_blend.expression.tokenizer import (
    detokenize,
    expand_vector_tokens,
    tokenize,
)

logger = logging.getLogger(__name__)

Value = Union[float, np.ndarray]

#: Channel values used for the validation call made by :py:func:`compile`.
PROBE_CHANNELS = {name: 0.5 for name in CHANNEL_NAMES}


def clamp01(x: Any) -> Any:
    """Clip into [0, 1], mapping NaN and infinities to 0."""
    x = np.asarray(x, dtype=np.float64)
    return np.where(np.isfinite(x), np.clip(x, 0.0, 1.0), 0.0)


def _unwrap(value: np.ndarray) -> Value:
    return float(value) if value.ndim == 0 else value


@define(frozen=True)
class Engine:
    """
    Compiled blending formula.

    Call with a mapping of the channel variables ``rb, gb, bb, ab, rs, gs,
    bs, as``. Values are floats in [0, 1] or equally shaped numpy arrays; the
    result is a tuple of 3 or 4 values of the same shape, each clamped to
    [0, 1]. Missing or non-finite channel values read as 0. Calling never
    raises.

    Example::

        engine = compile("B*T")
        r, g, b, a = engine({"rb": 0.5, "rs": 0.5, ...})
    """

    expr: str
    expanded: str
    tree: Node = field(repr=False)
    arity: int
    interpreter: Interpreter = field(factory=Interpreter, repr=False, eq=False)

    def __call__(self, channels: Mapping[str, Value]) -> tuple[Value, ...]:
        out = self.interpreter.evaluate(self.tree, channels)
        return tuple(_unwrap(clamp01(value)) for value in out)

    @property
    def has_alpha(self) -> bool:
        """True when the formula returns an explicit output alpha."""
        return self.arity == 4


def expand(text: str) -> str:
    """Return ``text`` with ``B``/``T`` vector shorthands expanded."""
    return detokenize(expand_vector_tokens(tokenize(text)))


def compile(text: str) -> Engine:
    """
    Validate and compile a formula.

    :raises EmptyExpression: ``text`` is blank.
    :raises DisallowedToken: ``text`` contains a token outside the whitelist.
    :raises FormulaSyntaxError: ``text`` does not parse or is nested too
        deeply to evaluate.
    :raises InvalidReturnArity: the result is not an array of length 3 or 4.
    """
    tokens = expand_vector_tokens(tokenize(text))
    try:
        tree = parse(tokens)
        engine = _build(text, tokens, tree)
    except RecursionError:
        raise FormulaSyntaxError("Formula is too deeply nested")
    logger.debug("Compiled %r as %r", text, engine.expanded)
    return engine


def _build(text: str, tokens: list, tree: Node) -> Engine:
    arity = result_arity(tree)
    if arity not in (3, 4):
        raise InvalidReturnArity(arity)

    engine = Engine(text, detokenize(tokens), tree, arity)
    probe = engine.interpreter.evaluate(tree, PROBE_CHANNELS)
    if not isinstance(probe, tuple) or len(probe) != arity:
        raise InvalidReturnArity(len(probe) if isinstance(probe, tuple) else None)
    return engine
