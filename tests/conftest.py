"""Shared fixtures for mirrorboard tests."""

import asyncio

import pytest

from mirrorboard.core import Element, Kernel
from mirrorboard.grid import FlexGrid, GridOptions
from mirrorboard.modules import Module, register_module


@register_module("test_text")
class TextModule(Module):
    """Renders config["text"] and records what it receives."""

    defaults = {"text": "hello", "journal": None}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.received = []
        self.socket_received = []
        self.renders = 0
        self.started_hooks = 0
        self.dom_created_hooks = 0

    def get_dom(self):
        self.renders += 1
        return Element("div", class_name="text", text=self.config["text"])

    def notification_received(self, notification, payload, sender):
        self.received.append((notification, payload, sender))
        if self.config["journal"] is not None:
            self.config["journal"].append((self.identifier, notification))

    def socket_notification_received(self, notification, payload):
        self.socket_received.append((notification, payload))

    def on_all_modules_started(self):
        self.started_hooks += 1

    def on_dom_created(self):
        self.dom_created_hooks += 1


@register_module("test_async")
class AsyncTextModule(TextModule):
    """Renders asynchronously."""

    async def get_dom(self):
        await asyncio.sleep(0)
        return super().get_dom()


@register_module("test_failing")
class FailingModule(TextModule):
    """Fails every render."""

    def get_dom(self):
        raise RuntimeError("render failed")


@register_module("test_raising")
class RaisingModule(TextModule):
    """Fails on every notification."""

    def notification_received(self, notification, payload, sender):
        raise ValueError("cannot handle")


@pytest.fixture
def make_kernel():
    """Build a kernel from module entries and optional global settings."""

    def factory(*entries, **settings) -> Kernel:
        return Kernel({"modules": list(entries), **settings})

    return factory


@pytest.fixture
def started_kernel(make_kernel):
    """Build a kernel and run its start-up sequence on a fresh event loop."""

    def factory(*entries, **settings) -> Kernel:
        kernel = make_kernel(*entries, **settings)
        asyncio.run(kernel.start())
        return kernel

    return factory


@pytest.fixture
def grid():
    """A 6x6 zone of 100px cells whose widgets default to a single cell."""
    return FlexGrid(
        GridOptions(default_width=1, default_height=1, min_width=1, min_height=1),
        zone="test",
    )
