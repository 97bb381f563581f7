"""
Base module class for mirrorboard.

All modules must inherit from Module and implement get_dom().
"""

import logging
from abc import ABC, abstractmethod
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Union,
)

from ..core.config import ModuleData
from ..core.dom import Element

if TYPE_CHECKING:
    from ..core.display import ModuleContainer
    from ..core.kernel import Kernel, VisibilityOptions
    from ..core.scheduler import Transition

log = logging.getLogger(__name__)


class Module(ABC):
    """
    Base class for all mirrorboard modules.

    A module renders itself into the container of its region and talks to
    other modules through notifications. It only ever touches its own
    container.

    Lifecycle:
        1. __init__() - Called when the configuration is loaded
        2. start() - Called once every module of the configuration exists
        3. on_all_modules_started() - ALL_MODULES_STARTED was sent
        4. on_dom_created() - The first render of this module is mounted
        5. stop() - Called on shutdown

    Example:
        @register_module("greeting")
        class Greeting(Module):
            defaults = {"text": "Hi"}

            def get_dom(self) -> Element:
                return Element("div", text=self.config["text"])
    """

    defaults: Dict[str, Any] = {}

    def __init__(self, identifier: str, data: ModuleData, kernel: "Kernel"):
        self.identifier = identifier
        self.name = data.module
        self.data = data
        self.config: Dict[str, Any] = {**self.defaults, **data.config}
        self.hidden = False
        self.lock_strings: List[str] = []
        self._kernel = kernel

    @property
    def container(self) -> Optional["ModuleContainer"]:
        """This module's container on screen, None while not mounted."""
        return self._kernel.screen.container_for(self)

    @property
    def transition(self) -> Optional["Transition"]:
        """The pending show/hide transition, if any."""
        return self._kernel.scheduler.pending(self.identifier)

    # Hooks

    def start(self) -> None:
        log.info(f"Starting module: {self.name}")

    def stop(self) -> None:
        """Called on shutdown. Override to release resources."""

    def get_header(self) -> Optional[str]:
        return self.data.header

    @abstractmethod
    def get_dom(self) -> Union[Element, Awaitable[Element]]:
        """
        Render the module's content.

        May be a coroutine; the renderer awaits it before comparing.
        """

    def get_translations(self) -> Mapping[str, Mapping[str, str]]:
        """Translation strings per language code."""
        return {}

    def notification_received(self, notification: str, payload: Any, sender: Optional["Module"]):
        pass

    def socket_notification_received(self, notification: str, payload: Any):
        pass

    def on_all_modules_started(self) -> None:
        pass

    def on_dom_created(self) -> None:
        pass

    def receive_notification(self, notification: str, payload: Any, sender: Optional["Module"]):
        """Entry point used by the notification bus."""
        if sender is None:
            if notification == "ALL_MODULES_STARTED":
                self.on_all_modules_started()
            elif notification == "MODULE_DOM_CREATED":
                self.on_dom_created()
        self.notification_received(notification, payload, sender)

    # Utility methods for modules

    def update_dom(self, speed: float = 0):
        return self._kernel.update_dom(self, speed)

    def show(
        self,
        speed: float = 0,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union["VisibilityOptions", Mapping[str, Any]]] = None,
    ) -> bool:
        return self._kernel.show_module(self, speed, callback, options)

    def hide(
        self,
        speed: float = 0,
        callback: Optional[Callable[[], None]] = None,
        options: Optional[Union["VisibilityOptions", Mapping[str, Any]]] = None,
    ) -> None:
        self._kernel.hide_module(self, speed, callback, options)

    def send_notification(self, notification: str, payload: Any = None) -> Optional[int]:
        return self._kernel.send_notification(notification, payload, self)

    def send_socket_notification(self, notification: str, payload: Any = None) -> bool:
        return self._kernel.sockets.send(self.name, notification, payload)

    def translate(self, key: str, variables: Optional[Mapping[str, object]] = None) -> str:
        return self._kernel.translator.translate(self, key, variables)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier})"


class ModuleCollection(list):
    """The active modules, in configuration order, with selection helpers."""

    def with_class(self, class_names: Union[str, Iterable[str]]) -> "ModuleCollection":
        wanted = set(class_names.split() if isinstance(class_names, str) else class_names)
        return ModuleCollection(m for m in self if wanted & set(m.data.classes.split()))

    def except_with_class(self, class_names: Union[str, Iterable[str]]) -> "ModuleCollection":
        unwanted = set(class_names.split() if isinstance(class_names, str) else class_names)
        return ModuleCollection(m for m in self if not unwanted & set(m.data.classes.split()))

    def except_module(self, module: Module) -> "ModuleCollection":
        return ModuleCollection(m for m in self if m is not module)

    def enumerate(self, callback: Callable[[Module], None]) -> None:
        for module in self:
            callback(module)
