"""
Log verbosity for mirrorboard.

The configuration lists the levels to emit (``["INFO", "LOG", "WARN",
"ERROR"]``); everything else is filtered out on the root handlers.
"""

import logging
from typing import Iterable, Optional, Set

log = logging.getLogger(__name__)

LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "LOG": logging.INFO,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class LevelFilter(logging.Filter):
    """Let through records whose level is enabled. CRITICAL always passes."""

    def __init__(self, levels: Set[int]):
        super().__init__()
        self.levels = levels

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno in self.levels or record.levelno >= logging.CRITICAL


_active_filter: Optional[LevelFilter] = None


def parse_levels(names: Iterable[str]) -> Set[int]:
    levels = set()
    for name in names:
        level = LEVEL_NAMES.get(str(name).upper())
        if level is None:
            log.warning(f"Unknown log level '{name}'")
            continue
        levels.add(level)
    return levels


def apply_log_levels(names: Iterable[str]) -> LevelFilter:
    """Install a filter for the given levels on every root handler, replacing the last one."""
    global _active_filter
    root = logging.getLogger()
    levels = parse_levels(names)

    if _active_filter is not None:
        for handler in root.handlers:
            handler.removeFilter(_active_filter)

    _active_filter = LevelFilter(levels)
    for handler in root.handlers:
        handler.addFilter(_active_filter)

    if levels:
        root.setLevel(min(levels))
    return _active_filter
