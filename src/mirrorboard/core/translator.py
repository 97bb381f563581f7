"""
Localized strings for mirrorboard.

Core strings ship with the package. Modules add their own through
get_translations(); lookups fall back from the module to the core strings,
then to English, then to the key itself.
"""

import logging
from typing import TYPE_CHECKING, Dict, Mapping, Optional

if TYPE_CHECKING:
    from ..modules.base import Module

log = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

CORE_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "LOADING": "Loading …",
        "TODAY": "Today",
        "TOMORROW": "Tomorrow",
        "DAYAFTERTOMORROW": "In 2 days",
        "RUNNING": "Ends in",
        "EMPTY": "No upcoming events.",
        "WEEK": "Week {weekNumber}",
        "UPDATE_NOTIFICATION": "Update available.",
    },
    "de": {
        "LOADING": "Lade …",
        "TODAY": "Heute",
        "TOMORROW": "Morgen",
        "DAYAFTERTOMORROW": "Übermorgen",
        "RUNNING": "noch",
        "EMPTY": "Keine Termine.",
        "WEEK": "{weekNumber}. Kalenderwoche",
        "UPDATE_NOTIFICATION": "Aktualisierung verfügbar.",
    },
    "nb": {
        "LOADING": "Laster …",
        "TODAY": "I dag",
        "TOMORROW": "I morgen",
        "DAYAFTERTOMORROW": "I overmorgen",
        "RUNNING": "Slutter om",
        "EMPTY": "Ingen kommende arrangementer.",
        "WEEK": "Uke {weekNumber}",
        "UPDATE_NOTIFICATION": "Oppdatering tilgjengelig.",
    },
}


class Translator:
    """Resolves translation keys for the core and for each module."""

    def __init__(self):
        self.language = FALLBACK_LANGUAGE
        self.core_strings: Dict[str, str] = {}
        self._module_strings: Dict[str, Dict[str, str]] = {}

    def load_core_translations(self, language: str) -> None:
        if language not in CORE_TRANSLATIONS:
            log.warning(f"No core translations for '{language}', using '{FALLBACK_LANGUAGE}'")
            language = FALLBACK_LANGUAGE
        self.language = language
        self.core_strings = dict(CORE_TRANSLATIONS[language])
        log.info(f"Loaded core translations for '{language}'")

    def load_module_translations(self, module: "Module") -> None:
        translations: Mapping[str, Mapping[str, str]] = module.get_translations() or {}
        strings = translations.get(self.language) or translations.get(FALLBACK_LANGUAGE)
        if strings is None and translations:
            strings = next(iter(translations.values()))
        self._module_strings[module.identifier] = dict(strings or {})

    def translate(
        self, module: Optional["Module"], key: str, variables: Optional[Mapping[str, object]] = None
    ) -> str:
        template = None
        if module is not None:
            template = self._module_strings.get(module.identifier, {}).get(key)
        if template is None:
            template = self.core_strings.get(key)
        if template is None:
            template = CORE_TRANSLATIONS[FALLBACK_LANGUAGE].get(key, key)

        for name, value in (variables or {}).items():
            template = template.replace("{" + name + "}", str(value))
        return template
