"""
DOM reconciliation for mirrorboard.

A module update renders the module's header and content, compares them with
what is mounted, and only touches the live tree when something changed. With a
transition speed the swap happens inside a cross-fade.
"""

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from .display import ModuleContainer, Screen
from .dom import Element

if TYPE_CHECKING:
    from ..modules.base import Module
    from .kernel import Kernel

log = logging.getLogger(__name__)

UpdateListener = Callable[[ModuleContainer], None]


class Renderer:
    """
    Renders modules into their containers.

    The kernel is passed in for the fade transitions; the renderer never
    decides visibility on its own.
    """

    def __init__(self, screen: Screen, kernel: "Kernel"):
        self._screen = screen
        self._kernel = kernel
        self._listeners: List[UpdateListener] = []

    def on_update(self, listener: UpdateListener) -> None:
        """Register a callback invoked with the container after each applied update."""
        self._listeners.append(listener)

    def remove_listener(self, listener: UpdateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def update_dom(self, module: "Module", speed: float = 0) -> bool:
        """
        Render a module and apply the result.

        Resolves True once the update sequence completed, False when it was
        abandoned because the module has no container or failed to render.
        """
        try:
            content = module.get_dom()
            if inspect.isawaitable(content):
                content = await content
        except Exception as e:
            log.error(f"Failed to render module '{module.identifier}': {e}")
            return False

        if not isinstance(content, Element):
            kind = type(content).__name__
            log.error(f"Module '{module.identifier}' returned {kind}, not an Element")
            return False

        return await self.update_dom_with_content(module, speed, module.get_header(), content)

    async def update_dom_with_content(
        self, module: "Module", speed: float, header: Optional[str], content: Element
    ) -> bool:
        container = self._screen.container_for(module)
        if container is None:
            log.debug(f"Module '{module.identifier}' has no container, skipping update")
            return False

        if not self.module_needs_update(container, header, content):
            return True

        if module.hidden or not speed:
            self.update_module_content(container, header, content)
            return True

        done = asyncio.get_running_loop().create_future()

        def finish() -> None:
            if not done.done():
                done.set_result(True)

        def swap() -> None:
            self.update_module_content(container, header, content)
            if not module.hidden:
                self._kernel.fade_in(module, speed / 2)
            finish()

        def superseded() -> None:
            # Another show/hide took over before the swap
            self.update_module_content(container, header, content)
            finish()

        self._kernel.fade_out(module, speed / 2, swap, on_cancel=superseded)
        return await done

    def module_needs_update(
        self, container: ModuleContainer, header: Optional[str], content: Element
    ) -> bool:
        if (header or "") != container.header_text:
            return True
        return content.to_html() != container.content_html()

    def update_module_content(
        self, container: ModuleContainer, header: Optional[str], content: Element
    ) -> None:
        self._screen.replace_content(container, header, content)
        for listener in list(self._listeners):
            try:
                listener(container)
            except Exception as e:
                log.error(f"Update listener failed for {container.identifier}: {e}")
