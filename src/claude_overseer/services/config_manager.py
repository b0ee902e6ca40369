"""Application configuration manager wrapping QSettings."""

import logging
import os
import shutil
from pathlib import Path

from PySide6.QtCore import QObject, Signal, Slot, QSettings

from claude_overseer.services.cost_ledger import CACHE_DIR, CACHE_FILE

logger = logging.getLogger(__name__)

# Default values
DEFAULTS = {
    "general/sessionDir": "~/.claude/projects",
    "general/showCosts": True,
    "watcher/debounceMs": 100,
    "costs/saveDelayMs": 5000,
    "costs/cacheFile": "",
    "advanced/debugLogging": False,
}


class ConfigManager(QObject):
    """Centralized application settings."""

    settings_changed = Signal(str)  # key

    def __init__(self, parent=None):
        super().__init__(parent)
        self._settings = QSettings()

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._settings.value(key, DEFAULTS.get(key, "")))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        val = self._settings.value(key, DEFAULTS.get(key, 0))
        try:
            return int(val)
        except (ValueError, TypeError):
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        val = self._settings.value(key, DEFAULTS.get(key, False))
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ("true", "1", "yes")
        return bool(val)

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    def projects_root(self) -> Path:
        """The session tree root with ~ expanded."""
        return Path(os.path.expanduser(self.get_string("general/sessionDir")))

    def cache_file(self) -> Path:
        """Location of the persisted cost cache."""
        configured = self.get_string("costs/cacheFile")
        if configured:
            return Path(os.path.expanduser(configured))
        return CACHE_FILE

    @Slot()
    def clear_cache(self):
        """Clear the application cache directory (or a custom cost cache file)."""
        if self.get_string("costs/cacheFile"):
            self.cache_file().unlink(missing_ok=True)
            return
        if CACHE_DIR.exists():
            shutil.rmtree(CACHE_DIR, ignore_errors=True)
            CACHE_DIR.mkdir(parents=True, exist_ok=True)
            logger.info("Cleared cache directory %s", CACHE_DIR)
