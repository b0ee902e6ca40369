"""Central orchestrator: project/session discovery, live watching and cost tracking."""

import logging
import os
from pathlib import Path

from PySide6.QtCore import QObject, Signal, Slot

from claude_overseer.services.config_manager import ConfigManager
from claude_overseer.services.cost_ledger import SAVE_DEBOUNCE_MS, CostLedger
from claude_overseer.services.directory_watcher import DEBOUNCE_MS, DirectoryWatcher
from claude_overseer.services.project_scanner import discover_sessions, scan_projects
from claude_overseer.services.tail_watcher import TailWatcher, TailWatcherRegistry
from claude_overseer.types import ProjectEntry, SessionEntry

logger = logging.getLogger(__name__)

CLAUDE_PROJECTS_DIR = Path.home() / ".claude" / "projects"


class SessionManager(QObject):
    """Keeps the project tree, open-session tails and the cost ledger live."""

    projects_changed = Signal()
    sessions_changed = Signal(str)    # project encoded name
    new_messages = Signal(str, list)  # file_path, list[SessionRecord]
    cost_updated = Signal()
    watch_error = Signal(str)

    def __init__(
        self,
        parent=None,
        projects_root: str | None = None,
        ledger: CostLedger | None = None,
        config: ConfigManager | None = None,
    ):
        super().__init__(parent)
        if projects_root:
            self._projects_root = Path(projects_root)
        elif config is not None:
            self._projects_root = config.projects_root()
        else:
            self._projects_root = CLAUDE_PROJECTS_DIR

        debounce_ms = config.get_int("watcher/debounceMs") if config is not None else DEBOUNCE_MS
        if ledger is None:
            ledger = CostLedger(
                cache_file=config.cache_file() if config is not None else None,
                save_delay_ms=config.get_int("costs/saveDelayMs") if config is not None else SAVE_DEBOUNCE_MS,
                parent=self,
            )
        self._ledger = ledger
        self._watcher = DirectoryWatcher(debounce_ms, self)
        self._tails = TailWatcherRegistry(self)
        self._projects: list[ProjectEntry] = []
        self._sessions: dict[str, list[SessionEntry]] = {}

        self._watcher.projects_changed.connect(self._on_projects_changed)
        self._watcher.sessions_changed.connect(self._on_sessions_changed)
        self._watcher.error.connect(self._on_watch_error)
        self._tails.new_messages.connect(self.new_messages)
        self._tails.error.connect(self._on_tail_error)
        self._ledger.cost_updated.connect(self.cost_updated)
        if config is not None:
            config.settings_changed.connect(self._on_setting_changed)
        self._config = config

    @property
    def projects_root(self) -> Path:
        return self._projects_root

    @property
    def ledger(self) -> CostLedger:
        return self._ledger

    @property
    def directory_watcher(self) -> DirectoryWatcher:
        return self._watcher

    @property
    def tails(self) -> TailWatcherRegistry:
        return self._tails

    def start(self):
        """Load cached costs, scan the tree, start watching and catch up on stale costs."""
        self._ledger.load()
        self.scan_projects()
        self._watcher.start(str(self._projects_root))
        self._ledger.recompute_in_background(self.all_session_paths())

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @Slot()
    def scan_projects(self) -> list[ProjectEntry]:
        """Rebuild the project list from disk and announce it."""
        self._projects = scan_projects(self._projects_root)
        known = {p.encoded_name for p in self._projects}
        for name in list(self._sessions):
            if name not in known:
                del self._sessions[name]
        self.projects_changed.emit()
        return self._projects

    def get_projects(self) -> list[ProjectEntry]:
        return self._projects

    def project_dir(self, encoded_name: str) -> str:
        return str(self._projects_root / encoded_name)

    def load_sessions(self, encoded_name: str) -> list[SessionEntry]:
        sessions = discover_sessions(self.project_dir(encoded_name))
        self._sessions[encoded_name] = sessions
        return sessions

    def get_sessions(self, encoded_name: str) -> list[SessionEntry]:
        if encoded_name not in self._sessions:
            return self.load_sessions(encoded_name)
        return self._sessions[encoded_name]

    def all_session_paths(self) -> list[str]:
        paths = []
        for project in self._projects:
            paths.extend(s.file_path for s in self.load_sessions(project.encoded_name))
        return paths

    # ------------------------------------------------------------------
    # Live tailing
    # ------------------------------------------------------------------

    @Slot(str)
    def open_session(self, file_path: str) -> TailWatcher:
        """Start streaming records appended to file_path through new_messages."""
        return self._tails.watch(file_path)

    @Slot(str)
    def close_session(self, file_path: str):
        self._tails.unwatch(file_path)

    # ------------------------------------------------------------------
    # Costs
    # ------------------------------------------------------------------

    def refresh_costs(self, encoded_name: str | None = None):
        """Queue a recompute of stale sessions for one project, or all of them."""
        if encoded_name is None:
            paths = self.all_session_paths()
        else:
            paths = [s.file_path for s in self.load_sessions(encoded_name)]
        self._ledger.recompute_in_background(paths)

    def get_session_costs(self, encoded_name: str) -> dict[str, float]:
        return self._ledger.get_session_costs(self.project_dir(encoded_name))

    def get_project_costs_by_model(self, encoded_name: str) -> dict[str, float]:
        return self._ledger.get_project_costs_by_model(self.project_dir(encoded_name))

    def get_project_cost(self, encoded_name: str) -> float:
        return self._ledger.get_project_cost(self.project_dir(encoded_name))

    def get_all_project_costs(self) -> dict[str, float]:
        return {p.encoded_name: self.get_project_cost(p.encoded_name) for p in self._projects}

    # ------------------------------------------------------------------
    # Watcher callbacks
    # ------------------------------------------------------------------

    @Slot()
    def _on_projects_changed(self):
        self.scan_projects()

    @Slot(str)
    def _on_sessions_changed(self, encoded_name: str):
        sessions = self.load_sessions(encoded_name)
        paths = [s.file_path for s in sessions]
        self._forget_removed_sessions(encoded_name, set(paths))
        self._ledger.recompute_in_background(paths)
        self.sessions_changed.emit(encoded_name)

    def _forget_removed_sessions(self, encoded_name: str, current: set[str]):
        for path in self._ledger.get_session_costs(self.project_dir(encoded_name)):
            if path not in current and not os.path.exists(path):
                self._ledger.forget(path)

    @Slot(str)
    def _on_watch_error(self, message: str):
        logger.error("Directory watcher stopped: %s", message)
        self.watch_error.emit(message)

    @Slot(str)
    def _on_setting_changed(self, key: str):
        if key == "watcher/debounceMs":
            self._watcher.set_debounce_interval(self._config.get_int(key))
        elif key == "costs/saveDelayMs":
            self._ledger.set_save_delay(self._config.get_int(key))

    @Slot(str, str)
    def _on_tail_error(self, file_path: str, message: str):
        logger.debug("Tail error on %s: %s", file_path, message)

    def cleanup(self):
        """Stop all watchers, finish background work and persist costs."""
        self._tails.stop_all()
        self._watcher.stop()
        self._ledger.wait_for_background()
        self._ledger.flush()
