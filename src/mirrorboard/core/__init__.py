"""
mirrorboard Core - Kernel, screen, notifications, rendering and configuration.
"""

from .config import DEFAULTS, EnvSettings, MirrorConfig, ModuleData, load_config, merge_config
from .display import ModuleContainer, Region, RegionWrapper, Screen
from .dom import Element
from .ipc import (
    ALL_MODULES_STARTED,
    DOM_OBJECTS_CREATED,
    MODULE_DOM_CREATED,
    Notification,
    NotificationBus,
    SocketBridge,
)
from .kernel import LOCK_STRING_ACTIVE, Kernel, LockStringActive, VisibilityOptions
from .log import apply_log_levels
from .renderer import Renderer
from .scheduler import Transition, TransitionScheduler
from .translator import Translator

__all__ = [
    "Kernel",
    "LockStringActive",
    "LOCK_STRING_ACTIVE",
    "VisibilityOptions",
    "Screen",
    "Region",
    "RegionWrapper",
    "ModuleContainer",
    "Element",
    "Renderer",
    "NotificationBus",
    "Notification",
    "SocketBridge",
    "ALL_MODULES_STARTED",
    "MODULE_DOM_CREATED",
    "DOM_OBJECTS_CREATED",
    "TransitionScheduler",
    "Transition",
    "Translator",
    "apply_log_levels",
    "EnvSettings",
    "MirrorConfig",
    "ModuleData",
    "DEFAULTS",
    "load_config",
    "merge_config",
]
