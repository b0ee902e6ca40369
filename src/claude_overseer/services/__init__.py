"""Services for claude-overseer."""

from claude_overseer.services.session_manager import SessionManager
from claude_overseer.services.cost_ledger import CostLedger
from claude_overseer.services.debouncer import Debouncer
from claude_overseer.services.directory_watcher import DirectoryWatcher
from claude_overseer.services.tail_watcher import TailWatcher, TailWatcherRegistry
from claude_overseer.services.config_manager import ConfigManager

__all__ = [
    "SessionManager",
    "CostLedger",
    "Debouncer",
    "DirectoryWatcher",
    "TailWatcher",
    "TailWatcherRegistry",
    "ConfigManager",
]
