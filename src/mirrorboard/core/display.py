"""
Screen layout for mirrorboard.

The screen is a fixed set of named regions. Each region wrapper holds the
containers of the modules positioned in it, in the order they were mounted.
Regions either sit where the stylesheet puts them or are laid out on a flex
grid, one widget per region.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..grid import FlexGrid, GridOptions, PixelRect, Widget
from .config import MirrorConfig
from .dom import Element

if TYPE_CHECKING:
    from ..modules.base import Module

log = logging.getLogger(__name__)

LAYOUT_TRANSITION = "left 0.4s, top 0.4s, width 0.4s, height 0.4s"


class Region(str, Enum):
    """Named placement slots of the screen, in document order."""

    TOP_BAR = "top_bar"
    TOP_LEFT = "top_left"
    TOP_CENTER = "top_center"
    TOP_RIGHT = "top_right"
    UPPER_THIRD = "upper_third"
    MIDDLE_CENTER = "middle_center"
    LOWER_THIRD = "lower_third"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_CENTER = "bottom_center"
    BOTTOM_RIGHT = "bottom_right"
    BOTTOM_BAR = "bottom_bar"
    FULLSCREEN_ABOVE = "fullscreen_above"
    FULLSCREEN_BELOW = "fullscreen_below"

    @property
    def class_name(self) -> str:
        return "region " + self.value.replace("_", " ")

    @classmethod
    def parse(cls, value: Any) -> Optional["Region"]:
        try:
            return cls(value)
        except ValueError:
            return None


class ModuleContainer:
    """
    Handle to the one container a module owns on screen.

    Layout:
        div#<identifier>.module.<name>.<classes>
            header.module-header
            div.module-content
    """

    def __init__(self, identifier: str, name: str, classes: str, region: Region):
        self.identifier = identifier
        self.region = region
        self.element = Element(
            "div", id=identifier, class_name=" ".join(c for c in ("module", name, classes) if c)
        )
        self.header = self.element.append(
            Element("header", class_name="module-header", style={"display": "none"})
        )
        self.content = self.element.append(Element("div", class_name="module-content"))

    @property
    def opacity(self) -> float:
        return float(self.element.style.get("opacity", 1))

    @opacity.setter
    def opacity(self, value: float) -> None:
        self.element.style["opacity"] = f"{value:g}"

    @property
    def position(self) -> str:
        return self.element.style.get("position", "")

    @position.setter
    def position(self, value: str) -> None:
        self.element.style["position"] = value

    @property
    def transition(self) -> str:
        return self.element.style.get("transition", "")

    @transition.setter
    def transition(self, value: str) -> None:
        self.element.style["transition"] = value

    @property
    def in_flow(self) -> bool:
        """Hidden modules are pinned out of the layout flow."""
        return self.position in ("", "static")

    @property
    def header_text(self) -> str:
        return self.header.text

    def content_html(self) -> str:
        return self.content.inner_html()

    def to_html(self) -> str:
        return self.element.to_html()

    def __repr__(self) -> str:
        return f"ModuleContainer({self.identifier} in {self.region.value})"


class RegionWrapper:
    """One region of the screen and the module containers mounted in it."""

    def __init__(self, region: Region):
        self.region = region
        self.element = Element("div", class_name=region.class_name)
        self.container = self.element.append(Element("div", class_name="container"))
        self.modules: List[ModuleContainer] = []
        self.geometry: Optional[PixelRect] = None

    @property
    def displayed(self) -> bool:
        return self.element.style.get("display") != "none"

    def add(self, module_container: ModuleContainer) -> None:
        self.container.append(module_container.element)
        self.modules.append(module_container)

    def place(self, geometry: PixelRect, animate: bool = False) -> None:
        """Pin the region to a pixel rectangle of the layout grid."""
        self.geometry = geometry
        self.element.style.update(
            {
                "position": "absolute",
                "left": f"{geometry.left}px",
                "top": f"{geometry.top}px",
                "width": f"{geometry.width}px",
                "height": f"{geometry.height}px",
            }
        )
        if animate:
            self.element.style["transition"] = LAYOUT_TRANSITION
        else:
            self.element.style.pop("transition", None)

    def unplace(self) -> None:
        """Drop the region back to where the stylesheet puts it."""
        self.geometry = None
        for key in ("position", "left", "top", "width", "height", "transition"):
            self.element.style.pop(key, None)

    def update_state(self) -> None:
        shown = any(container.in_flow for container in self.modules)
        self.element.style["display"] = "block" if shown else "none"


class Screen:
    """
    The mounted render tree.

    Handles:
    - Mounting module containers into their regions
    - Swapping a module's header and content
    - Region visibility
    - Optional region layout on a flex grid, kept in step with the grid
    """

    def __init__(self, grid: Optional[FlexGrid] = None):
        self.grid = grid
        self.regions: Dict[Region, RegionWrapper] = {r: RegionWrapper(r) for r in Region}
        self.body = Element("div", id="mirrorboard")
        for wrapper in self.regions.values():
            self.body.append(wrapper.element)
        self._containers: Dict[str, ModuleContainer] = {}
        self.mutations = 0
        if grid is not None:
            grid.on_change(self._on_grid_change)

    @classmethod
    def from_config(cls, config: MirrorConfig) -> "Screen":
        """Build the screen, laying regions out on a grid when the config has one."""
        if not config.grid:
            return cls()

        options = dict(config.grid)
        placements = options.pop("regions", [])
        grid = FlexGrid(GridOptions.from_mapping(options), zone="screen")
        screen = cls(grid)
        for placement in placements:
            screen.place_region(placement)
        return screen

    def place_region(self, placement: Mapping[str, Any]) -> bool:
        """Put a region on the layout grid as a widget."""
        region = Region.parse(placement.get("region"))
        if region is None:
            log.error(f"Unknown region in grid layout: {placement.get('region')!r}")
            return False
        if self.grid is None:
            log.error(f"Cannot place region {region.value}, the screen has no layout grid")
            return False
        if any(w.inner_content == region.value for w in self.grid.widgets()):
            log.error(f"Region {region.value} is already on the layout grid")
            return False

        cell = self.grid.add_widget(
            x=placement.get("x"),
            y=placement.get("y"),
            width=placement.get("width"),
            height=placement.get("height"),
            min_width=1,
            min_height=1,
            inner_content=region.value,
        )
        if cell is None:
            log.error(f"No room on the layout grid for region {region.value}")
            return False
        return True

    def sync_layout(self) -> None:
        """Pin each region to the grid widget that names it and release the others."""
        if self.grid is None:
            return
        hosts: Dict[Region, Widget] = {}
        for widget in self.grid.widgets():
            region = Region.parse(widget.inner_content)
            if region is not None:
                hosts.setdefault(region, widget)

        animate = self.grid.options.animate
        for region, wrapper in self.regions.items():
            widget = hosts.get(region)
            if widget is not None:
                wrapper.place(self.grid.geometry(widget), animate)
            elif wrapper.geometry is not None:
                log.debug(f"Region {region.value} left the layout grid")
                wrapper.unplace()

        width, height = self.grid.zone_size
        self.body.style.update({"width": f"{width}px", "height": f"{height}px"})

    def _on_grid_change(self, event: str, widget: Optional[Widget]) -> None:
        if event != "gridlines":
            self.sync_layout()

    def mount(self, module: "Module") -> Optional[ModuleContainer]:
        """Create the container for a module in its region."""
        if module.identifier in self._containers:
            return self._containers[module.identifier]

        region = Region.parse(module.data.position)
        if region is None:
            log.error(f"Module '{module.name}' has an unknown position: {module.data.position!r}")
            return None

        container = ModuleContainer(module.identifier, module.name, module.data.classes, region)
        self.regions[region].add(container)
        self._containers[module.identifier] = container
        log.debug(f"Mounted {module.identifier} in {region.value}")
        return container

    def container_for(self, module: "Module") -> Optional[ModuleContainer]:
        return self._containers.get(module.identifier)

    def containers(self) -> List[ModuleContainer]:
        return [c for wrapper in self.regions.values() for c in wrapper.modules]

    def replace_content(
        self, container: ModuleContainer, header: Optional[str], content: Element
    ) -> None:
        """Swap the live header and content of a module container."""
        container.content.clear()
        container.content.append(content)
        container.header.text = header or ""
        container.header.style["display"] = "block" if header else "none"
        self.mutations += 1

    def update_wrapper_states(self) -> None:
        """Show each region only while one of its modules is in the layout flow."""
        for wrapper in self.regions.values():
            wrapper.update_state()

    def to_html(self) -> str:
        return self.body.to_html()
