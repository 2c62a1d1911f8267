"""Rectangle geometry in absolute document coordinates."""

from typing import Any

from attrs import define, field


def _not_before(name: str):
    def validator(instance: Any, attribute: Any, value: int) -> None:
        if value < getattr(instance, name):
            raise ValueError(
                "%s=%d must not be less than %s=%d"
                % (attribute.name, value, name, getattr(instance, name))
            )

    return validator


@define(frozen=True)
class Rect:
    """
    Integer rectangle ``(left, top, right, bottom)``.

    ``right`` and ``bottom`` are exclusive. A rectangle may be degenerate
    (zero width or height); such a rectangle is valid but covers no pixel.
    """

    left: int = field(converter=int)
    top: int = field(converter=int)
    right: int = field(converter=int, validator=_not_before("left"))
    bottom: int = field(converter=int, validator=_not_before("top"))

    @classmethod
    def from_size(cls, width: int, height: int, left: int = 0, top: int = 0) -> "Rect":
        return cls(left, top, left + width, top + height)

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def clamp(self, bounds: "Rect") -> "Rect":
        """Clamp every edge into ``bounds``."""

        def _x(value: int) -> int:
            return max(bounds.left, min(bounds.right, value))

        def _y(value: int) -> int:
            return max(bounds.top, min(bounds.bottom, value))

        return Rect(_x(self.left), _y(self.top), _x(self.right), _y(self.bottom))

    def union(self, other: "Rect") -> "Rect":
        """Bounding box enclosing both rectangles."""
        return Rect(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def intersect(self, other: "Rect") -> "Rect":
        """Overlap of both rectangles, or ``Rect(0, 0, 0, 0)`` when disjoint."""
        inter = (
            max(self.left, other.left),
            max(self.top, other.top),
            min(self.right, other.right),
            min(self.bottom, other.bottom),
        )
        if inter[0] >= inter[2] or inter[1] >= inter[3]:
            return Rect(0, 0, 0, 0)
        return Rect(*inter)

    def offset(self, dx: int, dy: int) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.right + dx, self.bottom + dy)

    def relative_to(self, origin: "Rect") -> "Rect":
        """This rectangle in the local coordinates of ``origin``."""
        return self.offset(-origin.left, -origin.top)

    def astuple(self) -> tuple[int, int, int, int]:
        return self.left, self.top, self.right, self.bottom

    def __iter__(self):
        return iter(self.astuple())
