"""
Transition scheduler for mirrorboard.

Every module has at most one pending show/hide transition. Scheduling a new
one cancels the stored handle, so only the latest transition's callback fires.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

log = logging.getLogger(__name__)


@dataclass
class Transition:
    """A pending show or hide of one module."""

    module_id: str
    kind: str  # "show" or "hide"
    handle: asyncio.TimerHandle
    on_cancel: Optional[Callable[[], None]] = None


class TransitionScheduler:
    """
    Cancellable per-module timers.

    Handles:
    - Delayed completion of fade-in and fade-out
    - Latest-wins replacement of a module's pending transition
    - Cancellation hooks for work that must not be lost when superseded
    """

    def __init__(self):
        self._pending: Dict[str, Transition] = {}

    def schedule(
        self,
        module_id: str,
        kind: str,
        delay_ms: float,
        callback: Callable[[], None],
        on_cancel: Optional[Callable[[], None]] = None,
    ) -> Optional[Transition]:
        """Run callback after delay_ms, replacing the module's pending transition."""
        self.cancel(module_id)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to wait on, finish now
            log.debug(f"No running loop, completing {kind} of {module_id} immediately")
            callback()
            return None

        def fire() -> None:
            current = self._pending.get(module_id)
            if current is not None and current.handle is handle:
                del self._pending[module_id]
            try:
                callback()
            except Exception as e:
                log.error(f"Transition callback for {module_id} failed: {e}")

        handle = loop.call_later(max(delay_ms, 0) / 1000, fire)
        transition = Transition(module_id, kind, handle, on_cancel)
        self._pending[module_id] = transition
        return transition

    def cancel(self, module_id: str) -> bool:
        """Drop the module's pending transition. Its callback never fires."""
        transition = self._pending.pop(module_id, None)
        if transition is None:
            return False
        transition.handle.cancel()
        log.debug(f"Cancelled pending {transition.kind} of {module_id}")
        if transition.on_cancel is not None:
            transition.on_cancel()
        return True

    def pending(self, module_id: str) -> Optional[Transition]:
        return self._pending.get(module_id)

    def cancel_all(self) -> None:
        for module_id in list(self._pending):
            self.cancel(module_id)
