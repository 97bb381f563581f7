"""
Notification bus for mirrorboard.

Delivers notifications between module instances, synchronously and in
registration order. Socket notifications travel between a module and its
out-of-process helper through the SocketBridge.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from ..modules.base import Module

if TYPE_CHECKING:
    from ..modules.base import ModuleCollection

log = logging.getLogger(__name__)

# Core notifications, sent without a sender
ALL_MODULES_STARTED = "ALL_MODULES_STARTED"
MODULE_DOM_CREATED = "MODULE_DOM_CREATED"
DOM_OBJECTS_CREATED = "DOM_OBJECTS_CREATED"

MISSING = object()

SocketHandler = Callable[[str, Any], None]


@dataclass
class Notification:
    """A delivered notification, as seen by observers of the bus."""

    name: str
    payload: Any = None
    sender: Optional[Module] = None
    target: Optional[Module] = None
    timestamp: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        source = self.sender.identifier if self.sender else "core"
        target = self.target.identifier if self.target else "*"
        return f"Notification({self.name}, {source} -> {target})"


class NotificationBus:
    """
    In-process publish/subscribe between modules.

    The bus reads the active module set it was given; it never owns it.
    There is no queue: a notification sent while nobody listens is dropped.
    """

    def __init__(self, modules: "ModuleCollection"):
        self._modules = modules
        self._observers: List[Callable[[Notification], None]] = []

    def observe(self, callback: Callable[[Notification], None]) -> None:
        """Register a callback that sees every delivered notification."""
        self._observers.append(callback)

    def publish(
        self,
        notification: Any = MISSING,
        payload: Any = MISSING,
        sender: Any = MISSING,
        target: Optional[Module] = None,
    ) -> Optional[int]:
        """
        Send a notification on behalf of a module.

        Returns the number of modules it was delivered to, or None when the
        call was refused.
        """
        if any(arg is MISSING for arg in (notification, payload, sender)):
            log.error("send_notification: Missing arguments.")
            return None
        if not isinstance(notification, str):
            log.error("send_notification: Notification should be a string.")
            return None
        if not isinstance(sender, Module) or not any(m is sender for m in self._modules):
            log.error("send_notification: Sender should be a module.")
            return None
        return self.dispatch(notification, payload, sender, target)

    def dispatch(
        self,
        notification: str,
        payload: Any = None,
        sender: Optional[Module] = None,
        target: Optional[Module] = None,
    ) -> int:
        """Deliver to every module but the sender, or only to target if given."""
        delivered = 0
        for module in list(self._modules):
            if module is sender:
                continue
            if target is not None and module is not target:
                continue
            try:
                module.receive_notification(notification, payload, sender)
            except Exception as e:
                log.error(f"Module '{module.identifier}' failed to handle {notification}: {e}")
            delivered += 1

        if self._observers:
            message = Notification(notification, payload, sender, target)
            for observer in self._observers:
                try:
                    observer(message)
                except Exception as e:
                    log.error(f"Notification observer failed: {e}")
        return delivered


class SocketBridge:
    """
    Contract between modules and their out-of-process helpers.

    A helper connects a handler for a module name. Outbound socket
    notifications from any instance of that module go to the handler;
    inbound ones are handed to every instance of the module.
    """

    def __init__(self, modules: Sequence[Module]):
        self._modules = modules
        self._helpers: Dict[str, SocketHandler] = {}

    def connect(self, module_name: str, handler: SocketHandler) -> None:
        self._helpers[module_name] = handler
        log.info(f"Helper connected for module '{module_name}'")

    def disconnect(self, module_name: str) -> None:
        self._helpers.pop(module_name, None)

    def send(self, module_name: str, notification: str, payload: Any = None) -> bool:
        """Forward a socket notification from a module to its helper."""
        handler = self._helpers.get(module_name)
        if handler is None:
            log.warning(f"No helper for module '{module_name}', dropping {notification}")
            return False
        try:
            handler(notification, payload)
            return True
        except Exception as e:
            log.error(f"Helper for '{module_name}' failed on {notification}: {e}")
            return False

    def deliver(self, module_name: str, notification: str, payload: Any = None) -> int:
        """Hand a socket notification from a helper to the module's instances."""
        delivered = 0
        for module in list(self._modules):
            if module.name != module_name:
                continue
            try:
                module.socket_notification_received(notification, payload)
            except Exception as e:
                log.error(f"Module '{module.identifier}' failed on socket {notification}: {e}")
            delivered += 1
        return delivered
