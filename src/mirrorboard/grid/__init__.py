"""
Flex grid: places, moves and resizes rectangular widgets on a column/row grid.
"""

from .engine import FlexGrid
from .model import Cell, DropResult, Origin, PixelRect, Rect, Widget
from .options import GridOptions

__all__ = [
    "Cell",
    "DropResult",
    "FlexGrid",
    "GridOptions",
    "Origin",
    "PixelRect",
    "Rect",
    "Widget",
]
