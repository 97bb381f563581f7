"""
Clock module

Digital clock with the current date.
"""

import asyncio
import logging
import zoneinfo
from datetime import datetime
from typing import Optional

from ..core.dom import Element
from .base import Module
from .registry import register_module

log = logging.getLogger(__name__)


@register_module("clock")
class ClockModule(Module):
    """Digital clock, refreshed every second."""

    defaults = {
        "timezone": None,
        "time_format": None,  # 12 or 24, falls back to the global timeFormat
        "display_seconds": True,
        "show_date": True,
        "date_format": "%A, %B %-d, %Y",
        "update_interval": 1.0,  # seconds
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._ticker: Optional[asyncio.Task] = None

    @property
    def timezone(self) -> Optional[zoneinfo.ZoneInfo]:
        name = self.config.get("timezone")
        if not name:
            return None
        try:
            return zoneinfo.ZoneInfo(name)
        except zoneinfo.ZoneInfoNotFoundError:
            log.warning(f"Unknown timezone '{name}', using local time")
            return None

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def format_time(self, now: datetime) -> str:
        time_format = self.config.get("time_format") or self._kernel.config.time_format
        seconds = ":%S" if self.config["display_seconds"] else ""
        if time_format == 12:
            return now.strftime(f"%-I:%M{seconds} %p")
        return now.strftime(f"%H:%M{seconds}")

    def get_dom(self) -> Element:
        now = self.now()
        wrapper = Element("div", class_name="clock")
        if self.config["show_date"]:
            date = now.strftime(self.config["date_format"])
            wrapper.append(Element("div", class_name="date normal medium", text=date))
        time = self.format_time(now)
        wrapper.append(Element("div", class_name="time bright large light", text=time))
        return wrapper

    def on_dom_created(self) -> None:
        """Start ticking once the first render is mounted."""
        if self._ticker is None:
            self._ticker = asyncio.get_running_loop().create_task(self._tick())

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.config["update_interval"])
            self.update_dom()

    def stop(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
