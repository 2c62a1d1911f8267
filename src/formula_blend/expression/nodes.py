"""
Expression tree node types.

Nodes are immutable ``attrs`` classes without behaviour; evaluation lives in
:py:mod:`formula_blend.expression.interpreter`.
"""

from typing import Optional, Union

from attrs import define, field


@define(frozen=True)
class NumberLiteral:
    value: float


@define(frozen=True)
class Variable:
    """Reference to one of the eight channel variables."""

    name: str


@define(frozen=True)
class FunctionCall:
    name: str
    args: tuple["Node", ...] = field(converter=tuple)


@define(frozen=True)
class BinaryOp:
    operator: str
    left: "Node"
    right: "Node"


@define(frozen=True)
class Ternary:
    condition: "Node"
    then: "Node"
    otherwise: "Node"


@define(frozen=True)
class ArrayLiteral:
    items: tuple["Node", ...] = field(converter=tuple)


Node = Union[NumberLiteral, Variable, FunctionCall, BinaryOp, Ternary, ArrayLiteral]


def result_arity(node: Node) -> Optional[int]:
    """
    Return the length of the array a result node evaluates to.

    Returns None for scalar results and for ternaries whose branches disagree.
    """
    if isinstance(node, ArrayLiteral):
        return len(node.items)
    if isinstance(node, Ternary):
        then, otherwise = result_arity(node.then), result_arity(node.otherwise)
        return then if then == otherwise else None
    return None
