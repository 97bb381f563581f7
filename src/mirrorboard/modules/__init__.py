"""
mirrorboard modules.

Importing this package registers the built-in modules.
"""

from .base import Module, ModuleCollection
from .clock import ClockModule
from .helloworld import HelloWorldModule
from .registry import MODULE_REGISTRY, load_modules, register_module

__all__ = [
    "MODULE_REGISTRY",
    "ClockModule",
    "HelloWorldModule",
    "Module",
    "ModuleCollection",
    "load_modules",
    "register_module",
]
