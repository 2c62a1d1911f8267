"""
Exception hierarchy for formula-blend.

Compile-time formula errors derive from :py:class:`FormulaError`, which is
also a :py:class:`ValueError`. Compositing and host errors derive directly
from :py:class:`FormulaBlendError`.
"""

from typing import Optional


class FormulaBlendError(Exception):
    """Base class of all formula-blend errors."""


class FormulaError(FormulaBlendError, ValueError):
    """A formula could not be compiled."""


class EmptyExpression(FormulaError):
    """The formula text is blank."""

    def __init__(self, message: str = "Formula is empty") -> None:
        super().__init__(message)


class DisallowedToken(FormulaError):
    """
    The formula contains a character or identifier outside the whitelist.

    :param token: Offending text.
    :param position: Character offset of the token in the formula.
    """

    def __init__(self, token: str, position: int) -> None:
        super().__init__("Disallowed token %r at position %d" % (token, position))
        self.token = token
        self.position = position


class FormulaSyntaxError(FormulaError):
    """The formula is made of allowed tokens but does not parse."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        if position is not None:
            message = "%s at position %d" % (message, position)
        super().__init__(message)
        self.position = position


class InvalidReturnArity(FormulaError):
    """The formula does not evaluate to an array of length 3 or 4."""

    def __init__(self, arity: Optional[int] = None) -> None:
        found = "a scalar" if arity is None else "length %d" % arity
        super().__init__(
            "Formula must return an array [r, g, b] or [r, g, b, a], got %s" % found
        )
        self.arity = arity


class EmptyIntersection(FormulaBlendError, ValueError):
    """A source or union rectangle has zero width or height."""


class TransientHostConflict(FormulaBlendError):
    """The host refused an operation because of a modal-state conflict."""


class PersistenceWriteFailure(FormulaBlendError, OSError):
    """Writing the preset file failed."""


class InvalidPresetFile(FormulaBlendError, ValueError):
    """A preset document lacks the ``version`` or ``items`` field."""


class LayerNotFound(FormulaBlendError, LookupError):
    """A layer identifier is not present in the host document."""


class PresetNotFound(FormulaBlendError, LookupError):
    """No stored preset has the requested name."""
