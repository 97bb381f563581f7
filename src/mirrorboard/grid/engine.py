"""
Flex grid engine.

A zone is a grid of ``cols`` columns and an elastic number of rows. Widgets
occupy rectangles of cells. The engine keeps an occupancy bitmap so that after
every operation no two widgets overlap and no widget crosses the column limit.
Rows grow on demand unless the zone is fixed.
"""

import logging
import math
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np

from .model import Cell, DropResult, Origin, PixelRect, Rect, Widget
from .options import RESIZE_HANDLES, GridOptions, snake_case

log = logging.getLogger(__name__)

GridListener = Callable[[str, Optional[Widget]], None]
WidgetRef = Union[str, Widget]

SIZE_OPTIONS = ("width", "height", "min_width", "min_height", "max_width", "max_height")


def _pick(value, default):
    return default if value is None else value


def _clamp(value: int, lower: int, upper: Optional[int]) -> int:
    if upper is not None:
        value = min(value, upper)
    return max(value, lower)


def _is_cells(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _resize_sides(edge: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Horizontal and vertical side moved by a resize handle, None for a fixed axis."""
    if edge is None:
        return "e", "s"
    horizontal = "w" if "w" in edge else "e" if "e" in edge else None
    vertical = "n" if "n" in edge else "s" if "s" in edge else None
    return horizontal, vertical


class FlexGrid:
    """
    One grid zone.

    Handles:
    - Building the cells of the zone
    - Placing new widgets and resolving their overflow
    - Outcomes of drags (move, receive from outside) and resizes
    - Row growth and removal
    - Sub-grids nested in widgets
    - Saving and restoring the placement
    """

    def __init__(
        self, options: Optional[Union[GridOptions, Mapping[str, Any]]] = None, zone: str = "zone"
    ):
        if options is None:
            options = GridOptions()
        elif isinstance(options, Mapping):
            options = GridOptions.from_mapping(options)
        self.options = options
        self.zone = zone
        self._occupied = np.zeros((0, options.cols), dtype=bool)
        self._widgets: Dict[str, Widget] = {}
        self._listeners: List[GridListener] = []
        self._nested: Dict[str, "FlexGrid"] = {}
        self._counter = 0
        self.build()

    # Geometry

    @property
    def cols(self) -> int:
        return self.options.cols

    @property
    def rows(self) -> int:
        return self._occupied.shape[0]

    @property
    def column_width(self) -> int:
        return self.options.column_width

    @property
    def row_height(self) -> int:
        return self.options.row_pixels

    @property
    def zone_size(self) -> Tuple[int, int]:
        """Pixel size that exactly fits every cell of the zone."""
        return self.cols * self.column_width, self.rows * self.row_height

    def geometry(self, widget: WidgetRef) -> Optional[PixelRect]:
        widget = self._resolve(widget)
        if widget is None:
            return None
        return PixelRect(
            left=widget.x * self.column_width,
            top=widget.y * self.row_height,
            width=widget.width * self.column_width,
            height=widget.height * self.row_height,
        )

    # Cells and widgets

    def build(self) -> Tuple[int, int]:
        """Materialize rows x cols empty cells and return the zone size."""
        self._occupied = np.zeros((self.options.rows, self.options.cols), dtype=bool)
        self._widgets.clear()
        self._nested.clear()
        log.debug(f"Built zone '{self.zone}': {self.cols} columns, {self.rows} rows")
        self._notify("build", None)
        return self.zone_size

    def cell(self, x: int, y: int) -> Optional[Cell]:
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            return None
        return Cell(row=y, col=x, index=y * self.cols + x, enabled=not bool(self._occupied[y, x]))

    def cells(self) -> List[Cell]:
        return [self.cell(x, y) for y in range(self.rows) for x in range(self.cols)]

    def occupancy(self) -> np.ndarray:
        """Copy of the occupancy bitmap, indexed [row, col]."""
        return self._occupied.copy()

    def widgets(self) -> List[Widget]:
        """Widgets in row-major order of their hosting cell."""
        return sorted(self._widgets.values(), key=lambda w: (w.y, w.x))

    def get_widget(self, widget_id: str) -> Optional[Widget]:
        return self._widgets.get(widget_id)

    def widget_at(self, x: int, y: int) -> Optional[Widget]:
        for widget in self._widgets.values():
            if widget.rect.contains(x, y):
                return widget
        return None

    def on_change(self, listener: GridListener) -> None:
        """Register a callback invoked as listener(event, widget) after each change."""
        self._listeners.append(listener)

    # Placement

    def add_widget(
        self,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        min_width: Optional[int] = None,
        min_height: Optional[int] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
        inner_content: str = "",
        nested: Optional[bool] = None,
        next_axis: Optional[str] = None,
    ) -> Optional[Cell]:
        """
        Place a new widget and return the cell hosting its top-left corner.

        Without a position the first open cell is used, scanning in next_axis
        order. A given position that is covered advances along next_axis,
        adding rows when the grid runs out. The widget is then walked forward
        cell by cell until it fits inside the columns without overlapping.
        Returns None when no hosting cell can be found.
        """
        o = self.options
        min_width = _pick(min_width, o.min_width)
        min_height = _pick(min_height, o.min_height)
        max_width = _pick(max_width, o.max_width) or None
        max_height = _pick(max_height, o.max_height) or None
        width = _clamp(_pick(width, o.default_width), min_width, max_width)
        height = _clamp(_pick(height, o.default_height), min_height, max_height)

        if width > self.cols:
            if min_width > self.cols:
                log.error(
                    f"Widget minimum width {min_width} exceeds the {self.cols} columns "
                    f"of zone '{self.zone}'"
                )
                return None
            width = self.cols

        axis = next_axis or o.next_axis
        if x is None or y is None:
            start = self._first_open_cell(axis)
        elif 0 <= x < self.cols and y >= 0:
            start = self._start_from(axis, x, y)
        else:
            start = None

        if start is None:
            log.error(f"Parent cell does not exist in zone '{self.zone}' for ({x}, {y})")
            return None

        widget = Widget(
            id=self._new_id(),
            width=width,
            height=height,
            min_width=min_width,
            min_height=min_height,
            max_width=max_width,
            max_height=max_height,
            inner_content=inner_content,
            nested=o.nested if nested is None else nested,
        )
        if not self._settle_new(widget, *start):
            log.error(f"No room for a {width}x{height} widget in zone '{self.zone}'")
            return None

        self._widgets[widget.id] = widget
        self._mark(widget, True)
        self._notify("add", widget)
        return self.cell(widget.x, widget.y)

    def remove_widget(self, widget: WidgetRef) -> Optional[Origin]:
        """
        Detach a widget and free its cells.

        Returns the origin of a widget that was dragged in from outside, so the
        caller can put it back in its container at its pre-grid size.
        """
        widget = self._resolve(widget)
        if widget is None:
            return None
        self._mark(widget, False)
        del self._widgets[widget.id]
        self._nested.pop(widget.id, None)
        self._notify("remove", widget)
        if widget.origin is not None:
            log.debug(f"Returning {widget.id} to '{widget.origin.container}'")
        return widget.origin

    def clear_grid(self) -> List[Origin]:
        """Remove every widget and shrink back to the configured rows."""
        origins = [w.origin for w in self.widgets() if w.origin is not None]
        self._occupied = np.zeros((self.options.rows, self.cols), dtype=bool)
        self._widgets.clear()
        self._nested.clear()
        self._notify("clear", None)
        return origins

    # Drag and resize outcomes

    def move_widget(self, widget: WidgetRef, x: int, y: int) -> Optional[DropResult]:
        """Drop a resident widget on the cell (x, y)."""
        widget = self._resolve(widget)
        if widget is None:
            return None
        before = widget.snapshot()
        self._mark(widget, False)
        return self._drop(widget, x, y, before)

    def receive_widget(
        self,
        container: str,
        width: int,
        height: int,
        x: int,
        y: int,
        inner_content: str = "",
        min_width: Optional[int] = None,
        min_height: Optional[int] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> DropResult:
        """
        Drop an element dragged in from outside the grid on the cell (x, y).

        width and height are the element's pixel size in its own container; the
        widget takes as many cells as needed to cover it. A drop that cannot be
        resolved sends the element back to its container.
        """
        o = self.options
        min_width = _pick(min_width, o.min_width)
        min_height = _pick(min_height, o.min_height)
        max_width = _pick(max_width, o.max_width) or None
        max_height = _pick(max_height, o.max_height) or None
        widget = Widget(
            id=self._new_id(),
            width=_clamp(math.ceil(width / self.column_width), min_width, max_width),
            height=_clamp(math.ceil(height / self.row_height), min_height, max_height),
            min_width=min_width,
            min_height=min_height,
            max_width=max_width,
            max_height=max_height,
            inner_content=inner_content,
            nested=o.nested,
            origin=Origin(container=container, width=width, height=height),
        )
        return self._drop(widget, x, y, None)

    def check_drop(self, widget: WidgetRef, x: int, y: int) -> bool:
        """
        Whether hovering widget over (x, y) should be flagged as a revert.

        Only active with the check_revert option. The widget is flagged when its
        minimum rectangle at (x, y) would cross the columns or cover another widget.
        """
        if not self.options.check_revert:
            return False
        widget = self._resolve(widget)
        if widget is None:
            return False
        if x < 0 or self.cols - x < widget.min_width:
            return True
        return bool(self._collisions(Rect(x, y, widget.min_width, widget.min_height), widget.id))

    def resize_limits(
        self, widget: WidgetRef, width: Optional[int] = None, edge: Optional[str] = None
    ) -> Tuple[int, int]:
        """
        Largest (width, height) the widget can grow to by dragging edge.

        The sides opposite the dragged edge stay put. Growth stops at the grid
        edges and at the nearest widget in the direction of growth. The height
        limit is taken for the given width, or the current one. Without an edge
        the widget grows right and down from its top-left cell.
        """
        widget = self._resolve(widget)
        if widget is None:
            return 0, 0
        horizontal, vertical = _resize_sides(edge)
        others = [w.rect for w in self._widgets.values() if w.id != widget.id]
        rect = widget.rect

        in_rows = [o for o in others if o.y < rect.bottom and rect.y < o.bottom]
        if horizontal == "w":
            left = max((o.right for o in in_rows if o.right <= rect.x), default=0)
            max_width = rect.right - left
        else:
            right = min((o.x for o in in_rows if o.x >= rect.x), default=self.cols)
            max_width = right - rect.x
        if widget.max_width is not None:
            max_width = min(max_width, widget.max_width)

        width = widget.width if width is None else width
        x = rect.right - width if horizontal == "w" else rect.x
        in_cols = [o for o in others if o.x < x + width and x < o.right]
        if vertical == "n":
            top = max((o.bottom for o in in_cols if o.bottom <= rect.y), default=0)
            max_height = rect.bottom - top
        else:
            bottom = min((o.y for o in in_cols if o.y >= rect.y), default=self.rows)
            max_height = bottom - rect.y
        if widget.max_height is not None:
            max_height = min(max_height, widget.max_height)

        return max_width, max_height

    def resize_widget(
        self, widget: WidgetRef, width: int, height: int, edge: Optional[str] = None
    ) -> Optional[DropResult]:
        """
        Resize a widget by dragging one of its enabled resize handles.

        edge is a handle such as "n" or "sw". Only the axes it names change, and
        north or west growth moves the widget's top or left side. Each axis is
        capped at its current limit. Without an edge the widget is resized from
        its top-left cell, whatever the handles.
        """
        widget = self._resolve(widget)
        if widget is None:
            return None
        if edge is not None and not self._handle_enabled(edge):
            log.error(f"Resize handle '{edge}' is not enabled in zone '{self.zone}'")
            return None
        horizontal, vertical = _resize_sides(edge)
        right, bottom = widget.x + widget.width, widget.y + widget.height

        self._mark(widget, False)
        new_width, new_height = widget.width, widget.height
        if horizontal is not None:
            max_width, _ = self.resize_limits(widget, edge=edge)
            new_width = _clamp(width, widget.min_width, max_width)
        if vertical is not None:
            _, max_height = self.resize_limits(widget, new_width, edge)
            new_height = _clamp(height, widget.min_height, max_height)
        if (new_width, new_height) != (width, height):
            log.debug(f"Resize of {widget.id} capped at {new_width}x{new_height}")

        if horizontal == "w":
            widget.x = right - new_width
        if vertical == "n":
            widget.y = bottom - new_height
        widget.width, widget.height = new_width, new_height
        self._mark(widget, True)
        self._notify("resize", widget)
        return DropResult(widget)

    def set_option(
        self, widget: WidgetRef, option: str, value: Optional[int]
    ) -> Optional[DropResult]:
        """
        Set x, y, width, height or a min/max bound of a widget in cells.

        The widget is then settled as if it had been dropped where it now is.
        """
        widget = self._resolve(widget)
        if widget is None:
            return None
        name = snake_case(option)
        if name not in ("x", "y") + SIZE_OPTIONS:
            log.error(f"Unknown widget option '{option}'")
            return None

        if name.startswith("max_") and not value:
            value = None
        elif not _is_cells(value):
            log.error(f"Widget option '{option}' needs a number of cells, got {value!r}")
            return None

        if name in ("x", "y"):
            x = value if name == "x" else widget.x
            y = value if name == "y" else widget.y
            return self.move_widget(widget, x, y)

        previous = getattr(widget, name)
        before = widget.snapshot()
        self._mark(widget, False)
        setattr(widget, name, value)
        widget.width = _clamp(widget.width, widget.min_width, widget.max_width)
        widget.height = _clamp(widget.height, widget.min_height, widget.max_height)

        result = self._drop(widget, widget.x, widget.y, before)
        if result.reverted and name.startswith(("min_", "max_")):
            setattr(widget, name, previous)
        return result

    # Nesting

    def nest_grid(
        self, widget: WidgetRef, options: Optional[Mapping[str, Any]] = None
    ) -> Optional["FlexGrid"]:
        """
        Open a sub-grid inside a widget that takes nested widgets.

        The sub-grid covers the widget's pixel rectangle at the time it is
        opened and goes away with the widget. Opening it again returns the
        existing one.
        """
        widget = self._resolve(widget)
        if widget is None:
            return None
        if not widget.nested:
            log.error(f"Widget {widget.id} of zone '{self.zone}' does not take nested widgets")
            return None
        if widget.id in self._nested:
            return self._nested[widget.id]

        geometry = self.geometry(widget)
        values = {**(options or {}), "zone_width": geometry.width, "zone_height": geometry.height}
        grid = FlexGrid(GridOptions.from_mapping(values), zone=f"{self.zone}/{widget.id}")
        self._nested[widget.id] = grid
        log.debug(f"Opened nested zone '{grid.zone}'")
        self._notify("nest", widget)
        return grid

    def nested_grid(self, widget: WidgetRef) -> Optional["FlexGrid"]:
        widget_id = widget.id if isinstance(widget, Widget) else widget
        return self._nested.get(widget_id)

    # Rows

    def add_row(self, count: int = 1) -> int:
        """Append rows at the bottom and return the row count."""
        if count > 0 and self._grow(count):
            self._notify("rows", None)
        return self.rows

    def remove_row(self, count: int = 1) -> int:
        """Remove rows from the bottom, never below the configured rows."""
        for _ in range(count):
            if self.rows <= self.options.rows:
                log.info(f"Zone '{self.zone}' is at its minimum of {self.options.rows} rows")
                break
            self._occupied = self._occupied[:-1].copy()
            orphaned = [w for w in self._widgets.values() if w.y + w.height > self.rows]
            for widget in orphaned:
                self._ensure_rows(widget.y + widget.height)
                self._mark(widget, True)
            if orphaned:
                log.info(f"Kept row {self.rows - 1} of zone '{self.zone}', a widget covers it")
                break
        self._notify("rows", None)
        return self.rows

    # Options and persistence

    def get_option(self, name: Optional[str] = None) -> Any:
        if name is None:
            return self.options.to_dict()
        key = snake_case(name)
        if not hasattr(self.options, key):
            log.error(f"Unknown grid option '{name}'")
            return None
        return getattr(self.options, key)

    def toggle_gridlines(self) -> bool:
        self.options.show_gridlines = not self.options.show_gridlines
        self._notify("gridlines", None)
        return self.options.show_gridlines

    def save_grid(self) -> List[Dict[str, Any]]:
        return [
            {
                "cols": self.cols,
                "rows": self.rows,
                "widgets": [w.to_record() for w in self.widgets()],
            }
        ]

    def load_grid(self, records: List[Mapping[str, Any]]) -> int:
        """
        Rebuild the zone from save_grid() output.

        Widgets are put back exactly where they were recorded; records that do
        not fit are logged and skipped. Returns the number of widgets restored.
        """
        if not records:
            log.error(f"No grid record to load into zone '{self.zone}'")
            return 0
        record = records[0]
        cols = int(record.get("cols", self.cols))
        if cols != self.cols:
            log.warning(f"Zone '{self.zone}' switches from {self.cols} to {cols} columns")
            self.options.cols = cols
        rows = max(int(record.get("rows", 0)), self.options.rows)
        self._occupied = np.zeros((rows, cols), dtype=bool)
        self._widgets.clear()
        self._nested.clear()

        loaded = 0
        for item in record.get("widgets", []):
            item = {snake_case(key): value for key, value in item.items()}
            try:
                widget = Widget(
                    id=self._new_id(),
                    x=int(item["x"]),
                    y=int(item["y"]),
                    width=int(item["width"]),
                    height=int(item["height"]),
                    min_width=int(item.get("min_width") or 1),
                    min_height=int(item.get("min_height") or 1),
                    max_width=item.get("max_width") or None,
                    max_height=item.get("max_height") or None,
                    inner_content=item.get("inner_content", ""),
                    nested=self.options.nested,
                )
            except (KeyError, TypeError, ValueError) as e:
                log.error(f"Invalid saved widget {item!r} in zone '{self.zone}': {e!r}, skipping")
                continue
            if not self._fits(widget.x, widget.y, widget.width, widget.height):
                log.error(f"Saved widget at ({widget.x}, {widget.y}) does not fit, skipping")
                continue
            if not self._ensure_rows(widget.y + widget.height):
                continue
            self._widgets[widget.id] = widget
            self._mark(widget, True)
            loaded += 1

        self._notify("load", None)
        return loaded

    # Internals

    def _new_id(self) -> str:
        self._counter += 1
        return f"{self.zone}-widget-{self._counter}"

    def _resolve(self, widget: WidgetRef) -> Optional[Widget]:
        widget_id = widget.id if isinstance(widget, Widget) else widget
        found = self._widgets.get(widget_id)
        if found is None:
            log.error(f"Widget '{widget_id}' is not in zone '{self.zone}'")
        return found

    def _handle_enabled(self, edge: str) -> bool:
        if edge not in RESIZE_HANDLES or edge == "all":
            return False
        handles = self.options.resize_handles
        return handles == "all" or set(edge) <= set(handles)

    def _notify(self, event: str, widget: Optional[Widget]) -> None:
        for listener in self._listeners:
            try:
                listener(event, widget)
            except Exception as e:
                log.error(f"Grid listener failed on '{event}': {e}")

    def _mark(self, widget: Widget, value: bool) -> None:
        rect = widget.rect
        self._occupied[rect.y : rect.bottom, rect.x : rect.right] = value

    def _grow(self, count: int) -> bool:
        if count <= 0:
            return True
        if self.options.fixed_grid:
            log.warning(f"Zone '{self.zone}' is fixed at {self.rows} rows")
            return False
        extra = np.zeros((count, self.cols), dtype=bool)
        self._occupied = np.vstack([self._occupied, extra])
        log.debug(f"Zone '{self.zone}' grew to {self.rows} rows")
        return True

    def _ensure_rows(self, bottom: int) -> bool:
        return self._grow(bottom - self.rows)

    def _collisions(self, rect: Rect, ignore: Optional[str] = None) -> List[Widget]:
        top, bottom = rect.y, min(rect.bottom, self.rows)
        if top >= bottom or not self._occupied[top:bottom, rect.x : rect.right].any():
            return []
        return [w for w in self.widgets() if w.id != ignore and w.rect.overlaps(rect)]

    def _fits(self, x: int, y: int, width: int, height: int, ignore: Optional[str] = None) -> bool:
        if x < 0 or y < 0 or x + width > self.cols:
            return False
        if self.options.fixed_grid and y + height > self.rows:
            return False
        return not self._collisions(Rect(x, y, width, height), ignore)

    def _scan(self, axis: str) -> Iterator[Tuple[int, int]]:
        if axis == "x":
            for y in range(self.rows):
                for x in range(self.cols):
                    yield x, y
        else:
            for x in range(self.cols):
                for y in range(self.rows):
                    yield x, y

    def _first_open_cell(self, axis: str) -> Optional[Tuple[int, int]]:
        for x, y in self._scan(axis):
            if not self._occupied[y, x]:
                return x, y
        first_new_row = self.rows
        if not self._grow(self.options.default_height):
            return None
        return 0, first_new_row

    def _next_open_after(self, x: int, y: int) -> Optional[Tuple[int, int]]:
        """Next enabled cell after (x, y) in row-major order, growing rows at the end."""
        index = y * self.cols + x + 1
        while True:
            if index >= self.rows * self.cols and not self._grow(1):
                return None
            cx, cy = index % self.cols, index // self.cols
            if not self._occupied[cy, cx]:
                return cx, cy
            index += 1

    def _start_from(self, axis: str, x: int, y: int) -> Optional[Tuple[int, int]]:
        if not self._ensure_rows(y + 1):
            return None
        if not self._occupied[y, x]:
            return x, y
        if axis == "x":
            return self._next_open_after(x, y)
        while self._occupied[y, x]:
            y += 1
            if not self._ensure_rows(y + 1):
                return None
        return x, y

    def _settle_new(self, widget: Widget, x: int, y: int) -> bool:
        while not self._fits(x, y, widget.width, widget.height):
            step = self._next_open_after(x, y)
            if step is None:
                return False
            x, y = step
        if not self._ensure_rows(y + widget.height):
            return False
        widget.x, widget.y = x, y
        return True

    def _drop(self, widget: Widget, x: int, y: int, before: Optional[Rect]) -> DropResult:
        if not (0 <= x < self.cols and 0 <= y < self.rows) or self._occupied[y, x]:
            log.debug(f"Cell ({x}, {y}) of zone '{self.zone}' cannot take {widget.id}")
            return self._revert(widget, before)

        widget.x, widget.y = x, y
        if x + widget.width > self.cols:
            if self.cols - x < widget.min_width:
                return self._revert(widget, before)
            widget.width = self.cols - x

        while True:
            hits = self._collisions(widget.rect, widget.id)
            if not hits:
                break
            if not self._shrink_against(widget, hits[0]):
                return self._revert(widget, before)

        if not self._ensure_rows(y + widget.height):
            return self._revert(widget, before)

        self._widgets[widget.id] = widget
        self._mark(widget, True)
        self._notify("drop", widget)
        return DropResult(widget)

    def _shrink_against(self, widget: Widget, other: Widget) -> bool:
        """Shrink widget so it stops short of other, on the axis with the larger gap first."""
        candidates = []
        if other.x > widget.x:
            gap = other.x - widget.x
            candidates.append((gap * self.column_width, "width", gap, widget.min_width))
        if other.y > widget.y:
            gap = other.y - widget.y
            candidates.append((gap * self.row_height, "height", gap, widget.min_height))
        for _, axis, size, minimum in sorted(candidates, reverse=True):
            if size >= minimum:
                setattr(widget, axis, size)
                return True
        return False

    def _revert(self, widget: Widget, before: Optional[Rect]) -> DropResult:
        if before is None:
            self._widgets.pop(widget.id, None)
            log.info(f"Drop reverted, {widget.id} goes back to '{widget.origin.container}'")
            self._notify("revert", widget)
            return DropResult(widget, reverted=True, returned_to=widget.origin.container)
        widget.restore(before)
        self._mark(widget, True)
        log.info(f"Drop reverted, {widget.id} stays at ({widget.x}, {widget.y})")
        self._notify("revert", widget)
        return DropResult(widget, reverted=True)
