"""
mirrorboard - A modular information dashboard.

Architecture:
    - Core: Kernel, Screen, Notification bus, Renderer, Scheduler
    - Modules: independent units that render into a screen region
    - Grid: flex grid engine placing rectangular widgets on a column/row grid

Modules only touch their own container; everything else goes through
notifications and the kernel.

Example:
    import asyncio
    from mirrorboard.core import Kernel

    kernel = Kernel({"modules": [{"module": "clock", "position": "top_left"}]})
    asyncio.run(kernel.start())
"""

from .core import Element, Kernel, MirrorConfig, Screen
from .grid import FlexGrid, GridOptions
from .modules import Module, ModuleCollection, register_module

__version__ = "1.0.0"
__author__ = "mirrorboard Team"

__all__ = [
    # Core
    "Kernel",
    "Screen",
    "Element",
    "MirrorConfig",
    # Modules
    "Module",
    "ModuleCollection",
    "register_module",
    # Grid
    "FlexGrid",
    "GridOptions",
]
