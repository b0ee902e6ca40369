"""Tests for claude_overseer.services.config_manager."""

from pathlib import Path

import pytest

from claude_overseer.services.config_manager import DEFAULTS, ConfigManager
from claude_overseer.services.cost_ledger import CACHE_FILE


@pytest.fixture
def config(qapp, tmp_path):
    """Create a ConfigManager with isolated QSettings."""
    from PySide6.QtCore import QSettings
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path / "config"))
    return ConfigManager()


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def test_default_session_dir(config):
    assert config.get_string("general/sessionDir") == "~/.claude/projects"


def test_default_intervals(config):
    assert config.get_int("watcher/debounceMs") == 100
    assert config.get_int("costs/saveDelayMs") == 5000


def test_default_bools(config):
    assert config.get_bool("general/showCosts") is True
    assert config.get_bool("advanced/debugLogging") is False


def test_unknown_key_falls_back(config):
    assert config.get_string("nope/missing") == ""
    assert config.get_int("nope/missing") == 0


# ---------------------------------------------------------------------------
# Round trips
# ---------------------------------------------------------------------------

def test_set_get_string(config):
    config.set_string("general/sessionDir", "/custom/path")
    assert config.get_string("general/sessionDir") == "/custom/path"


def test_set_get_int(config):
    config.set_int("watcher/debounceMs", 250)
    assert config.get_int("watcher/debounceMs") == 250


def test_set_get_bool(config):
    config.set_bool("general/showCosts", False)
    assert config.get_bool("general/showCosts") is False


def test_garbage_int_uses_default(config):
    config.set_string("costs/saveDelayMs", "soon")
    assert config.get_int("costs/saveDelayMs") == DEFAULTS["costs/saveDelayMs"]


def test_settings_changed_signal(config):
    changed = []
    config.settings_changed.connect(changed.append)
    config.set_bool("advanced/debugLogging", True)
    assert changed == ["advanced/debugLogging"]


# ---------------------------------------------------------------------------
# Derived paths
# ---------------------------------------------------------------------------

def test_projects_root_expands_home(config):
    assert config.projects_root() == Path.home() / ".claude" / "projects"


def test_projects_root_custom(config, tmp_path):
    config.set_string("general/sessionDir", str(tmp_path / "elsewhere"))
    assert config.projects_root() == tmp_path / "elsewhere"


def test_cache_file_default(config):
    assert config.cache_file() == CACHE_FILE


def test_cache_file_custom(config, tmp_path):
    config.set_string("costs/cacheFile", str(tmp_path / "costs.json"))
    assert config.cache_file() == tmp_path / "costs.json"


def test_clear_custom_cache_file(config, tmp_path):
    cache = tmp_path / "state" / "costs.json"
    cache.parent.mkdir()
    cache.write_text("{}")
    sibling = cache.parent / "keep.txt"
    sibling.write_text("keep")
    config.set_string("costs/cacheFile", str(cache))

    config.clear_cache()

    assert not cache.exists()
    assert sibling.exists()


def test_clear_missing_custom_cache_file(config, tmp_path):
    config.set_string("costs/cacheFile", str(tmp_path / "never-written.json"))
    config.clear_cache()
