"""
Hello world module

Shows a fixed text. Used by the default configuration.
"""

from ..core.dom import Element
from .base import Module
from .registry import register_module


@register_module("helloworld")
class HelloWorldModule(Module):
    """Displays config["text"]."""

    defaults = {"text": "Hello World!"}

    def get_dom(self) -> Element:
        return Element("div", text=self.config["text"])

    def notification_received(self, notification, payload, sender):
        if notification == "HELLO_TEXT" and isinstance(payload, str):
            self.config["text"] = payload
            self.update_dom()
