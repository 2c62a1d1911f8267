"""
Tree-walking interpreter for formula expressions.

Evaluation dispatches on the node type through a registry. Variables resolve
against the bound channel environment and calls against the injected function
table; nothing else is reachable from a formula. Values may be floats or
numpy arrays, all operations broadcast elementwise.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable

import numpy as np

from formula_blend.expression.functions import FUNCTIONS
from formula_blend.expression.nodes import (
    ArrayLiteral,
    BinaryOp,
    FunctionCall,
    Node,
    NumberLiteral,
    Ternary,
    Variable,
)
from formula_blend.registry import new_registry

logger = logging.getLogger(__name__)

EVALUATORS, register = new_registry()

BINARY_OPERATORS: Mapping[str, Callable] = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.true_divide,
    "%": np.fmod,
    "<": np.less,
    "<=": np.less_equal,
    ">": np.greater,
    ">=": np.greater_equal,
}


class Interpreter:
    """
    Evaluate expression trees.

    :param functions: Function table available to ``FunctionCall`` nodes.
    """

    def __init__(self, functions: Mapping[str, Callable] = FUNCTIONS) -> None:
        self.functions = functions

    def evaluate(self, node: Node, env: Mapping[str, Any]) -> Any:
        with np.errstate(all="ignore"):
            return self._eval(node, env)

    def _eval(self, node: Node, env: Mapping[str, Any]) -> Any:
        return EVALUATORS[type(node)](self, node, env)


def _truthy(value: Any) -> Any:
    return (value != 0) & ~np.isnan(value)


@register(NumberLiteral)
def _number(interpreter: Interpreter, node: NumberLiteral, env: Mapping) -> Any:
    return np.float64(node.value)


@register(Variable)
def _variable(interpreter: Interpreter, node: Variable, env: Mapping) -> Any:
    value = np.asarray(env.get(node.name, 0.0), dtype=np.float64)
    return np.nan_to_num(value, nan=0.0, posinf=0.0, neginf=0.0)


@register(FunctionCall)
def _call(interpreter: Interpreter, node: FunctionCall, env: Mapping) -> Any:
    args = [interpreter._eval(arg, env) for arg in node.args]
    return interpreter.functions[node.name](*args)


@register(BinaryOp)
def _binary(interpreter: Interpreter, node: BinaryOp, env: Mapping) -> Any:
    left = interpreter._eval(node.left, env)
    right = interpreter._eval(node.right, env)
    result = BINARY_OPERATORS[node.operator](left, right)
    return np.asarray(result, dtype=np.float64)


@register(Ternary)
def _ternary(interpreter: Interpreter, node: Ternary, env: Mapping) -> Any:
    condition = _truthy(interpreter._eval(node.condition, env))
    if np.ndim(condition) == 0:
        branch = node.then if condition else node.otherwise
        return interpreter._eval(branch, env)

    then = interpreter._eval(node.then, env)
    otherwise = interpreter._eval(node.otherwise, env)
    if isinstance(then, tuple):
        return tuple(np.where(condition, a, b) for a, b in zip(then, otherwise))
    return np.where(condition, then, otherwise)


@register(ArrayLiteral)
def _array(interpreter: Interpreter, node: ArrayLiteral, env: Mapping) -> Any:
    return tuple(interpreter._eval(item, env) for item in node.items)
