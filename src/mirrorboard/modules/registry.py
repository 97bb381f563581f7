"""
Module registry and loader.

Module classes register under the name used in the configuration's
``modules`` list.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Type

from ..core.config import ModuleData
from .base import Module

if TYPE_CHECKING:
    from ..core.kernel import Kernel

log = logging.getLogger(__name__)

MODULE_REGISTRY: Dict[str, Type[Module]] = {}


def register_module(name: str) -> Callable[[Type[Module]], Type[Module]]:
    """Class decorator registering a module class under a configuration name."""

    def decorator(cls: Type[Module]) -> Type[Module]:
        if name in MODULE_REGISTRY and MODULE_REGISTRY[name] is not cls:
            log.warning(f"Module '{name}' re-registered by {cls.__name__}")
        MODULE_REGISTRY[name] = cls
        return cls

    return decorator


def load_modules(kernel: "Kernel", entries: Iterable[ModuleData]) -> List[Module]:
    """
    Instantiate and start every configured module, in declaration order.

    Unknown module names and modules failing to start are logged and skipped.
    """
    modules: List[Module] = []
    for data in entries:
        cls = MODULE_REGISTRY.get(data.module)
        if cls is None:
            log.error(f"Unknown module '{data.module}', skipping")
            continue

        identifier = f"module_{data.index}_{data.module}"
        try:
            module = cls(identifier, data, kernel)
            kernel.translator.load_module_translations(module)
            module.start()
        except Exception as e:
            log.error(f"Failed to start module '{identifier}': {e}")
            continue

        modules.append(module)
        log.info(f"Loaded module {identifier}")
    return modules
