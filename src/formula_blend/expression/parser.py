"""
Recursive descent parser for the formula language.

Grammar, lowest precedence first::

    expression     := comparison ("?" expression ":" expression)?
    comparison     := additive (("<" | "<=" | ">" | ">=") additive)*
    additive       := multiplicative (("+" | "-") multiplicative)*
    multiplicative := unary (("*" | "/" | "%") unary)*
    unary          := ("+" | "-") unary | primary
    primary        := NUMBER | VARIABLE | FUNCTION "(" arguments? ")"
                    | "(" expression ")" | "[" expression ("," expression)* "]"

Array literals are only meaningful as the formula result and are rejected
anywhere else.
"""

import inspect
import logging
from typing import Optional

from formula_blend.constants import CHANNEL_NAMES
from formula_blend.exceptions import FormulaSyntaxError
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
from formula_blend.expression.tokenizer import Token, TokenType

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = ("<", "<=", ">", ">=")
ADDITIVE_OPERATORS = ("+", "-")
MULTIPLICATIVE_OPERATORS = ("*", "/", "%")

_SIGNATURES = {name: inspect.signature(func) for name, func in FUNCTIONS.items()}


class Parser:
    """
    Build an expression tree from a validated token list.

    Example::

        tree = Parser(tokenize("[rb*rs, gb*gs, bb*bs]")).parse()
    """

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Unexpected end of formula")
        node = self._expression()
        token = self._peek()
        if token is not None:
            raise FormulaSyntaxError("Unexpected %r" % token.value, token.position)
        _check_arrays(node, result=True)
        return node

    def _peek(self) -> Optional[Token]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula")
        self.index += 1
        return token

    def _accept(self, token_type: TokenType, values: tuple = ()) -> Optional[Token]:
        token = self._peek()
        if token is None or token.type is not token_type:
            return None
        if values and token.value not in values:
            return None
        self.index += 1
        return token

    def _expect(self, token_type: TokenType, description: str) -> Token:
        token = self._accept(token_type)
        if token is None:
            found = self._peek()
            if found is None:
                raise FormulaSyntaxError("Expected %s, got end of formula" % description)
            raise FormulaSyntaxError(
                "Expected %s, got %r" % (description, found.value), found.position
            )
        return token

    def _expression(self) -> Node:
        node = self._comparison()
        if self._accept(TokenType.QUESTION):
            then = self._expression()
            self._expect(TokenType.COLON, "':'")
            otherwise = self._expression()
            node = Ternary(node, then, otherwise)
        return node

    def _binary(self, operand, operators: tuple) -> Node:
        node = operand()
        while True:
            token = self._accept(TokenType.OPERATOR, operators)
            if token is None:
                return node
            node = BinaryOp(token.value, node, operand())

    def _comparison(self) -> Node:
        return self._binary(self._additive, COMPARISON_OPERATORS)

    def _additive(self) -> Node:
        return self._binary(self._multiplicative, ADDITIVE_OPERATORS)

    def _multiplicative(self) -> Node:
        return self._binary(self._unary, MULTIPLICATIVE_OPERATORS)

    def _unary(self) -> Node:
        token = self._accept(TokenType.OPERATOR, ADDITIVE_OPERATORS)
        if token is None:
            return self._primary()
        operand = self._unary()
        if token.value == "-":
            return BinaryOp("-", NumberLiteral(0.0), operand)
        return operand

    def _primary(self) -> Node:
        token = self._advance()
        if token.type is TokenType.NUMBER:
            return NumberLiteral(float(token.value))
        if token.type is TokenType.IDENTIFIER:
            if token.value in CHANNEL_NAMES:
                return Variable(token.value)
            if token.value in FUNCTIONS:
                return self._call(token)
            # Vector shorthands must have been expanded by now.
            raise FormulaSyntaxError("Unexpected %r" % token.value, token.position)
        if token.type is TokenType.LPAREN:
            node = self._expression()
            self._expect(TokenType.RPAREN, "')'")
            return node
        if token.type is TokenType.LBRACKET:
            items = [self._expression()]
            while self._accept(TokenType.COMMA):
                items.append(self._expression())
            self._expect(TokenType.RBRACKET, "']'")
            return ArrayLiteral(items)
        raise FormulaSyntaxError("Unexpected %r" % token.value, token.position)

    def _call(self, name: Token) -> Node:
        self._expect(TokenType.LPAREN, "'(' after %s" % name.value)
        args: list[Node] = []
        if not self._accept(TokenType.RPAREN):
            args.append(self._expression())
            while self._accept(TokenType.COMMA):
                args.append(self._expression())
            self._expect(TokenType.RPAREN, "')'")
        try:
            _SIGNATURES[name.value].bind(*args)
        except TypeError:
            raise FormulaSyntaxError(
                "Wrong number of arguments for %s(): %d" % (name.value, len(args)),
                name.position,
            )
        return FunctionCall(name.value, args)


def _check_arrays(node: Node, result: bool) -> None:
    if isinstance(node, ArrayLiteral):
        if not result:
            raise FormulaSyntaxError("Array literal is only allowed as the result")
        for item in node.items:
            _check_arrays(item, result=False)
    elif isinstance(node, Ternary):
        _check_arrays(node.condition, result=False)
        _check_arrays(node.then, result)
        _check_arrays(node.otherwise, result)
    elif isinstance(node, BinaryOp):
        _check_arrays(node.left, result=False)
        _check_arrays(node.right, result=False)
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            _check_arrays(arg, result=False)


def parse(tokens: list[Token]) -> Node:
    """Parse ``tokens`` into an expression tree."""
    return Parser(tokens).parse()
