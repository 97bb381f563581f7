"""
Data types for the flex grid.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class Cell:
    """One unit cell of a zone. Disabled cells are covered by a widget."""

    row: int
    col: int
    index: int
    enabled: bool


@dataclass(frozen=True)
class Rect:
    """A rectangle of cells: [x, x + width) x [y, y + height)."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def overlaps(self, other: "Rect") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def cells(self) -> Iterator[Tuple[int, int]]:
        for y in range(self.y, self.bottom):
            for x in range(self.x, self.right):
                yield x, y


@dataclass(frozen=True)
class PixelRect:
    """Pixel geometry of a widget inside its zone."""

    left: int
    top: int
    width: int
    height: int


@dataclass
class Origin:
    """Where a widget dragged in from outside the grid came from."""

    container: str
    width: int  # pixels before entering the grid
    height: int


@dataclass
class Widget:
    """A rectangular element placed on the grid."""

    id: str
    x: int = 0
    y: int = 0
    width: int = 1
    height: int = 1
    min_width: int = 1
    min_height: int = 1
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    inner_content: str = ""
    nested: bool = False
    origin: Optional[Origin] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def from_outside(self) -> bool:
        return self.origin is not None

    def snapshot(self) -> Rect:
        """Position and size to fall back to when a drop reverts."""
        return self.rect

    def restore(self, rect: Rect) -> None:
        self.x, self.y, self.width, self.height = rect.x, rect.y, rect.width, rect.height

    def to_record(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "min_width": self.min_width,
            "min_height": self.min_height,
            "max_width": self.max_width,
            "max_height": self.max_height,
            "inner_content": self.inner_content,
        }


@dataclass
class DropResult:
    """Outcome of dropping, moving or resizing a widget."""

    widget: Widget
    reverted: bool = False
    returned_to: Optional[str] = None  # outside container the widget went back to

    @property
    def placed(self) -> bool:
        return self.returned_to is None
