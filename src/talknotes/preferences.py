"""Theme preference state."""

from __future__ import annotations

import logging

from .errors import StorageError, ValidationError
from .storage import KeyValueStore

logger = logging.getLogger("talknotes")

THEME_KEY = "theme"
THEMES = ("light", "dark")


class ThemePreference:
    """The saved ``light``/``dark`` choice, falling back to ``system_default``."""

    def __init__(self, kv: KeyValueStore, system_default: str = "light"):
        if system_default not in THEMES:
            raise ValidationError(f"Unknown theme: {system_default}")
        self._kv = kv
        self.value = self._load(system_default)

    def _load(self, system_default: str) -> str:
        try:
            saved = self._kv.get(THEME_KEY)
        except StorageError as exc:
            logger.warning("Theme preference unreadable: %s", exc.detail or exc.message)
            return system_default
        saved = (saved or "").strip().strip('"')
        return saved if saved in THEMES else system_default

    def set(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme}", detail="Use light or dark.")
        self.value = theme
        self._kv.set(THEME_KEY, theme)
        return theme

    def toggle(self) -> str:
        return self.set("dark" if self.value == "light" else "light")
