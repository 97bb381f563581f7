"""
Flex grid options.

Every option has a default; a zone configured with a partial mapping inherits
the defaults for everything it leaves out.
"""

import logging
import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger(__name__)

NEXT_AXES = ("x", "y")
RESIZE_HANDLES = ("n", "e", "s", "w", "ne", "se", "sw", "nw", "all")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """Convert ``defaultWidth`` style keys to ``default_width``."""
    return _CAMEL_RE.sub("_", name).lower()


@dataclass
class GridOptions:
    """Options for one grid zone. Sizes are in cells unless noted otherwise."""

    cols: int = 6
    rows: int = 6  # committed minimum; the grid grows below it
    fixed_grid: bool = False  # never add rows past `rows`
    default_width: int = 3
    default_height: int = 3
    min_width: int = 3
    min_height: int = 3
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    row_height: int = 1  # row height as a multiple of column width when > 1
    nested: bool = True  # new widgets can host a sub-grid
    show_gridlines: bool = True
    animate: bool = True  # laid out regions slide to their new place
    next_axis: str = "y"
    resize_handles: str = "n"  # edges resize_widget may drag
    check_revert: bool = False
    zone_width: int = 600  # pixels
    zone_height: int = 600  # pixels

    def __post_init__(self):
        defaults = GridOptions.__dataclass_fields__
        for name in ("cols", "rows", "zone_width", "zone_height", "row_height"):
            if not isinstance(getattr(self, name), int) or getattr(self, name) < 1:
                log.warning(f"Invalid grid option {name}={getattr(self, name)!r}, using default")
                setattr(self, name, defaults[name].default)

        for name in ("default_width", "default_height", "min_width", "min_height"):
            if not isinstance(getattr(self, name), int) or getattr(self, name) < 1:
                log.warning(f"Invalid grid option {name}={getattr(self, name)!r}, using 1")
                setattr(self, name, 1)

        for name in ("max_width", "max_height"):
            value = getattr(self, name)
            # 0 means unbounded, as an unset max
            if value is not None and (not isinstance(value, int) or value < 1):
                setattr(self, name, None)

        if self.next_axis not in NEXT_AXES:
            log.warning(f"Invalid next_axis {self.next_axis!r}, using 'y'")
            self.next_axis = "y"

        if self.resize_handles not in RESIZE_HANDLES:
            log.warning(f"Invalid resize_handles {self.resize_handles!r}, using 'n'")
            self.resize_handles = "n"

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "GridOptions":
        """Build options from a config mapping. Accepts camelCase keys."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = snake_case(key)
            if name not in known:
                log.warning(f"Ignoring unknown grid option '{key}'")
                continue
            values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def column_width(self) -> int:
        """Width of one column in pixels."""
        return max(1, self.zone_width // self.cols)

    @property
    def row_pixels(self) -> int:
        """Height of one row in pixels."""
        if self.row_height > 1:
            return self.column_width * self.row_height
        return max(1, self.zone_height // self.rows)
