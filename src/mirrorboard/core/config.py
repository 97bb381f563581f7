"""
Configuration for mirrorboard.

Process settings (where the config file lives, where to serve) come from the
environment. The dashboard configuration is a JSON file merged key by key over
the built-in defaults.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class EnvSettings(BaseSettings):
    """Environment-based settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_prefix="MIRRORBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: str = "config/config.json"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"


DEFAULT_LOG_LEVELS = ["INFO", "LOG", "WARN", "ERROR"]

DEFAULTS: Dict[str, Any] = {
    "address": "localhost",
    "port": 8080,
    "language": "en",
    "locale": "en-US",
    "logLevel": DEFAULT_LOG_LEVELS,
    "timeFormat": 24,
    "units": "metric",
    "modules": [
        {
            "module": "helloworld",
            "position": "upper_third",
            "classes": "large thin",
            "config": {"text": "mirrorboard"},
        },
        {
            "module": "helloworld",
            "position": "middle_center",
            "config": {"text": "Please create a config file."},
        },
        {
            "module": "helloworld",
            "position": "middle_center",
            "classes": "small dimmed",
            "config": {"text": "See config/config.sample.json for an example."},
        },
        {
            "module": "helloworld",
            "position": "bottom_bar",
            "classes": "xsmall dimmed",
            "config": {"text": "mirrorboard"},
        },
    ],
}


@dataclass
class ModuleData:
    """One entry of the modules list."""

    module: str
    position: Optional[str] = None
    header: Optional[str] = None
    classes: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    index: int = 0

    @classmethod
    def from_mapping(cls, entry: Any, index: int = 0) -> Optional["ModuleData"]:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("module"), str):
            log.error(f"Invalid module entry #{index}: {entry!r}")
            return None
        return cls(
            module=entry["module"],
            position=entry.get("position") or None,
            header=entry.get("header"),
            classes=entry.get("classes") or "",
            config=dict(entry.get("config") or {}),
            index=index,
        )


@dataclass
class MirrorConfig:
    """Dashboard configuration, after merging with the defaults."""

    address: str = "localhost"
    port: int = 8080
    language: str = "en"
    locale: str = "en-US"
    log_level: List[str] = field(default_factory=lambda: list(DEFAULT_LOG_LEVELS))
    time_format: int = 24
    units: str = "metric"
    modules: List[ModuleData] = field(default_factory=list)
    grid: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]]) -> "MirrorConfig":
        merged = merge_config(config)
        modules = []
        for index, entry in enumerate(merged.pop("modules", None) or []):
            data = ModuleData.from_mapping(entry, index)
            if data is not None:
                modules.append(data)

        return cls(
            address=merged.pop("address"),
            port=merged.pop("port"),
            language=merged.pop("language"),
            locale=merged.pop("locale"),
            log_level=_as_list(merged.pop("logLevel")),
            time_format=merged.pop("timeFormat"),
            units=merged.pop("units"),
            modules=modules,
            grid=merged.pop("grid", None),
            extra=merged,
        )


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    return list(value or [])


def merge_config(config: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow merge over the defaults: supplied keys win, nested values are not merged."""
    if config is None:
        log.error("Config file is missing! Please create a config file.")
        return dict(DEFAULTS)
    return {**DEFAULTS, **config}


def load_config(path: str) -> Optional[Dict[str, Any]]:
    """Read a JSON configuration file. Returns None when it is missing or unreadable."""
    if not os.path.exists(path):
        log.error(f"Config file {path} does not exist")
        return None
    try:
        with open(path, encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        log.error(f"Could not read config file {path}: {e}")
        return None
    if not isinstance(config, dict):
        log.error(f"Config file {path} must hold a JSON object")
        return None
    return config
