"""
mirrorboard Kernel - module lifecycle.

Owns the active module set, mounts modules into their regions, drives their
show/hide state and relays notifications between them. Everything runs on one
asyncio event loop.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Union

from ..modules.base import Module, ModuleCollection
from ..modules.registry import load_modules
from .config import MirrorConfig
from .display import Screen
from .ipc import (
    ALL_MODULES_STARTED,
    DOM_OBJECTS_CREATED,
    MISSING,
    MODULE_DOM_CREATED,
    NotificationBus,
    SocketBridge,
)
from .log import apply_log_levels
from .renderer import Renderer
from .scheduler import TransitionScheduler
from .translator import Translator

log = logging.getLogger(__name__)

LOCK_STRING_ACTIVE = "LOCK_STRING_ACTIVE"


class LockStringActive(Exception):
    """Handed to on_error when a show is refused because lock strings remain."""

    condition = LOCK_STRING_ACTIVE

    def __init__(self, module: Module, lock_strings: List[str]):
        super().__init__(LOCK_STRING_ACTIVE)
        self.module = module
        self.lock_strings = list(lock_strings)


@dataclass
class VisibilityOptions:
    """Options for show/hide."""

    lock_string: Optional[str] = None
    force: bool = False
    on_error: Optional[Callable[[LockStringActive], None]] = None

    @classmethod
    def coerce(cls, options: Any) -> "VisibilityOptions":
        """Accept VisibilityOptions, a mapping (camelCase keys allowed) or None."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            return cls(
                lock_string=options.get("lock_string", options.get("lockString")),
                force=bool(options.get("force", False)),
                on_error=options.get("on_error", options.get("onError")),
            )
        log.error(f"Invalid show/hide options: {options!r}")
        return cls()


class Kernel:
    """
    The mirrorboard kernel.

    Responsibilities:
    - Load the configuration and instantiate the configured modules
    - Mount modules into their regions and render them
    - Drive the show/hide state machine of every module
    - Relay notifications between modules
    """

    def __init__(
        self,
        config: Optional[Union[MirrorConfig, Mapping[str, Any]]] = None,
        screen: Optional[Screen] = None,
    ):
        if not isinstance(config, MirrorConfig):
            config = MirrorConfig.from_mapping(config)
        self.config = config

        # The active module set; the bus and the socket bridge read it
        self.modules = ModuleCollection()

        self.translator = Translator()
        self.scheduler = TransitionScheduler()
        self.screen = screen or Screen.from_config(config)
        self.bus = NotificationBus(self.modules)
        self.sockets = SocketBridge(self.modules)
        self.renderer = Renderer(self.screen, self)

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # Start-up

    def init(self) -> List[Module]:
        """Set verbosity and core translations, then instantiate the modules."""
        log.info("Initializing mirrorboard.")
        apply_log_levels(self.config.log_level)
        self.translator.load_core_translations(self.config.language)
        return load_modules(self, self.config.modules)

    async def start(self) -> None:
        """Run the whole start-up sequence. Returns once DOM_OBJECTS_CREATED was sent."""
        await self.modules_started(self.init())

    async def modules_started(self, module_objects: List[Module]) -> None:
        self.modules[:] = module_objects
        self._running = True
        log.info("All modules started!")
        self.bus.dispatch(ALL_MODULES_STARTED)
        await self.create_dom_objects()

    async def create_dom_objects(self) -> None:
        """Mount every positioned module in declaration order and render it."""
        renders = []
        for module in self.modules:
            if not module.data.position:
                continue
            if self.screen.mount(module) is None:
                continue
            renders.append(self._create_module_dom(module))

        self.screen.update_wrapper_states()
        await asyncio.gather(*renders)
        log.info("All DOM objects created")
        self.bus.dispatch(DOM_OBJECTS_CREATED)

    async def _create_module_dom(self, module: Module) -> None:
        if await self.renderer.update_dom(module, 0):
            self.bus.dispatch(MODULE_DOM_CREATED, None, None, module)

    def stop(self) -> None:
        log.info("Stopping mirrorboard")
        self._running = False
        for module in self.modules:
            try:
                module.stop()
            except Exception as e:
                log.error(f"Error stopping module '{module.identifier}': {e}")
        self.scheduler.cancel_all()

    # Public API

    def send_notification(
        self, notification: Any = MISSING, payload: Any = MISSING, sender: Any = MISSING
    ) -> Optional[int]:
        return self.bus.publish(notification, payload, sender)

    def update_dom(self, module: Module, speed: float = 0) -> Optional["asyncio.Task[bool]"]:
        """
        Schedule a re-render of a module.

        Returns the task resolving when the update completed, or None when the
        request was refused.
        """
        if not isinstance(module, Module):
            log.error("update_dom: Sender should be a module.")
            return None
        if not isinstance(speed, (int, float)):
            log.error("update_dom: Speed argument is not a number.")
            return None
        if not module.data.position:
            log.warning(
                f"Module '{module.identifier}' tries to update the DOM without being displayed."
            )
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.error("update_dom: No running event loop.")
            return None
        return loop.create_task(self.renderer.update_dom(module, speed))

    def hide_module(
        self,
        module: Module,
        speed: float = 0,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union[VisibilityOptions, Mapping[str, Any]]] = None,
    ) -> None:
        # Hidden right away so concurrent updates apply without animating
        module.hidden = True
        self.fade_out(module, speed, callback, options)

    def show_module(
        self,
        module: Module,
        speed: float = 0,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union[VisibilityOptions, Mapping[str, Any]]] = None,
    ) -> bool:
        return self.fade_in(module, speed, callback, options)

    def get_modules(self) -> ModuleCollection:
        return ModuleCollection(self.modules)

    def get_module(self, identifier: str) -> Optional[Module]:
        for module in self.modules:
            if module.identifier == identifier:
                return module
        return None

    # Transitions

    def fade_out(
        self,
        module: Module,
        speed: float,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union[VisibilityOptions, Mapping[str, Any]]] = None,
        on_cancel: Optional[Callable[[], None]] = None,
    ) -> None:
        """Fade a module's container out, then pin it out of the layout flow."""
        options = VisibilityOptions.coerce(options)
        if options.lock_string and options.lock_string not in module.lock_strings:
            module.lock_strings.append(options.lock_string)

        container = self.screen.container_for(module)
        if container is None:
            if callback:
                callback()
            return

        container.transition = f"opacity {speed / 1000:g}s"
        container.opacity = 0

        def faded_out() -> None:
            container.position = "fixed"
            self.screen.update_wrapper_states()
            if callback:
                callback()

        self.scheduler.schedule(module.identifier, "hide", speed, faded_out, on_cancel)

    def fade_in(
        self,
        module: Module,
        speed: float,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union[VisibilityOptions, Mapping[str, Any]]] = None,
    ) -> bool:
        """
        Put a module back in the layout flow and fade it in.

        Refused, without any change, while lock strings other than the given
        one remain and force is not set.
        """
        options = VisibilityOptions.coerce(options)
        if options.lock_string in module.lock_strings:
            module.lock_strings.remove(options.lock_string)

        if module.lock_strings and not options.force:
            active = ", ".join(module.lock_strings)
            log.info(f"Will not show {module.name}. LockStrings active: {active}")
            if options.on_error:
                options.on_error(LockStringActive(module, module.lock_strings))
            return False

        module.hidden = False
        if module.lock_strings:
            log.info(f"Force show of module: {module.name}")
            module.lock_strings.clear()

        container = self.screen.container_for(module)
        if container is None:
            if callback:
                callback()
            return True

        container.transition = f"opacity {speed / 1000:g}s"
        container.position = "static"
        self.screen.update_wrapper_states()
        container.opacity = 1

        def faded_in() -> None:
            if callback:
                callback()

        self.scheduler.schedule(module.identifier, "show", speed, faded_in)
        return True
