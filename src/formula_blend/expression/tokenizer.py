"""
Formula tokenizer.

The tokenizer is the whitelist boundary of the expression language. It turns
the formula text into a flat list of :py:class:`Token` and rejects anything
not explicitly enumerated with :py:class:`~formula_blend.exceptions.DisallowedToken`
before any parsing happens. Example::

    for token in Tokenizer("[rb*rs, gb, bb]"):
        print(token.type.name, token.value)
"""

import logging
import re
from enum import Enum
from typing import Iterator

from attrs import define

from formula_blend.constants import CHANNEL_NAMES, VECTOR_EXPANSION
from formula_blend.exceptions import DisallowedToken, EmptyExpression
from formula_blend.expression.functions import FUNCTIONS

logger = logging.getLogger(__name__)

#: Identifiers a formula may reference.
ALLOWED_IDENTIFIERS = frozenset(CHANNEL_NAMES) | frozenset(VECTOR_EXPANSION) | frozenset(
    FUNCTIONS
)


class TokenType(Enum):
    """Token classes, matched in declaration order."""

    WHITESPACE = re.compile(r"\s+")
    NUMBER = re.compile(r"[0-9]+(?:\.[0-9]+)?")
    IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
    OPERATOR = re.compile(r"<=|>=|[-+*/%<>]")
    LPAREN = re.compile(r"\(")
    RPAREN = re.compile(r"\)")
    LBRACKET = re.compile(r"\[")
    RBRACKET = re.compile(r"\]")
    COMMA = re.compile(r",")
    QUESTION = re.compile(r"\?")
    COLON = re.compile(r":")


@define(frozen=True)
class Token:
    """A single token with its offset in the source text."""

    type: TokenType
    value: str
    position: int = -1

    def __str__(self) -> str:
        return self.value


class Tokenizer:
    """
    Iterate over the tokens of a formula, skipping whitespace.

    :raises DisallowedToken: On the first character or identifier that is not
        part of the language.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.index = 0

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        while self.index < len(self.text):
            index = self.index
            for token_type in TokenType:
                match = token_type.value.match(self.text, index)
                if match is not None:
                    break
            else:
                raise DisallowedToken(self.text[index], index)

            value = match.group()
            self.index = match.end()
            if token_type is TokenType.WHITESPACE:
                continue
            if token_type is TokenType.IDENTIFIER and value not in ALLOWED_IDENTIFIERS:
                raise DisallowedToken(value, index)
            return Token(token_type, value, index)
        raise StopIteration


def tokenize(text: str) -> list[Token]:
    """Return the validated token list of ``text``."""
    if not text or not text.strip():
        raise EmptyExpression()
    tokens = list(Tokenizer(text))
    logger.debug("Tokenized %d tokens from %r", len(tokens), text)
    return tokens


def has_vector_tokens(tokens: list[Token]) -> bool:
    return any(
        token.type is TokenType.IDENTIFIER and token.value in VECTOR_EXPANSION
        for token in tokens
    )


def expand_vector_tokens(tokens: list[Token]) -> list[Token]:
    """
    Rewrite ``B``/``T`` shorthands into a four channel array literal.

    The whole token stream is repeated once per output channel with ``B``
    replaced by ``rb``, ``gb``, ``bb``, ``ab`` and ``T`` by ``rs``, ``gs``,
    ``bs``, ``as``. Streams without vector tokens are returned unchanged.
    """
    if not has_vector_tokens(tokens):
        return tokens

    expanded = [Token(TokenType.LBRACKET, "[")]
    for index in range(4):
        if index:
            expanded.append(Token(TokenType.COMMA, ","))
        for token in tokens:
            if token.type is TokenType.IDENTIFIER and token.value in VECTOR_EXPANSION:
                token = Token(
                    TokenType.IDENTIFIER,
                    VECTOR_EXPANSION[token.value][index],
                    token.position,
                )
            expanded.append(token)
    expanded.append(Token(TokenType.RBRACKET, "]"))
    return expanded


def detokenize(tokens: list[Token]) -> str:
    """Render tokens back into formula text."""
    chunks: list[str] = []
    for token in tokens:
        if token.type is TokenType.COMMA:
            chunks.append(", ")
        elif token.type in (TokenType.OPERATOR, TokenType.QUESTION, TokenType.COLON):
            chunks.append(" %s " % token.value)
        else:
            chunks.append(token.value)
    text = re.sub(r" +", " ", "".join(chunks))
    text = re.sub(r"([(\[]) ", r"\1", text)
    return re.sub(r" ([)\],])", r"\1", text).strip()
