"""Watch the projects tree and turn raw filesystem events into debounced notifications."""

import logging
import os
from enum import Enum
from pathlib import Path

from PySide6.QtCore import QObject, QTimer, Signal, Slot
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from claude_overseer.services.debouncer import Debouncer

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 100
# projects/<project>/<session>/subagents/<agent>.jsonl
MAX_DEPTH = 4
# How often a running watch checks that its root and observer are still alive
HEALTH_CHECK_MS = 1000
SESSION_SUFFIX = ".jsonl"

PROJECTS_KEY = "projects"
SESSIONS_KEY_PREFIX = "sessions:"


class EventKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


def classify_event(root: str, path: str, kind: EventKind, is_directory: bool) -> str | None:
    """Map a raw event to its debounce key, or None if it should be ignored.

    A project directory appearing or disappearing changes the project set.
    Anything below a project changes that project's sessions, except that
    modifications only count for session files.
    """
    rel = os.path.relpath(path, root)
    if rel == "." or rel.startswith(".."):
        return None
    segments = Path(rel).parts
    if not segments or len(segments) > MAX_DEPTH:
        return None

    if len(segments) == 1:
        if is_directory and kind in (EventKind.ADDED, EventKind.REMOVED):
            return PROJECTS_KEY
        return None

    if kind == EventKind.MODIFIED and (is_directory or not path.endswith(SESSION_SUFFIX)):
        return None

    return SESSIONS_KEY_PREFIX + segments[0]


def _decode_path(event_path) -> str:
    if isinstance(event_path, bytes):
        return event_path.decode("utf-8", errors="replace")
    return str(event_path)


class _TreeEventHandler(FileSystemEventHandler):
    """Forwards watchdog events, still on the observer thread, to a sink."""

    def __init__(self, sink):
        self._sink = sink

    def on_created(self, event: FileSystemEvent) -> None:
        self._sink(_decode_path(event.src_path), EventKind.ADDED, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._sink(_decode_path(event.src_path), EventKind.REMOVED, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._sink(_decode_path(event.src_path), EventKind.MODIFIED, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._sink(_decode_path(event.src_path), EventKind.REMOVED, event.is_directory)
        self._sink(_decode_path(event.dest_path), EventKind.ADDED, event.is_directory)


class DirectoryWatcher(QObject):
    """Watches the Claude projects root for project and session changes.

    A watch that dies after start(), because the root was deleted, moved
    away or the observer thread exited, is reported once through error and
    leaves the watcher stopped.
    """

    projects_changed = Signal()
    sessions_changed = Signal(str)   # project encoded name
    error = Signal(str)

    # generation, path, kind, is_directory; queued from the observer thread
    _raw_event = Signal(int, str, str, bool)

    def __init__(self, debounce_ms: int = DEBOUNCE_MS, parent=None, health_check_ms: int = HEALTH_CHECK_MS):
        super().__init__(parent)
        self._debouncer = Debouncer(debounce_ms, self)
        self._observer: Observer | None = None
        self._root = ""
        self._running = False
        self._generation = 0
        self._health_timer = QTimer(self)
        self._health_timer.setInterval(health_check_ms)
        self._health_timer.timeout.connect(self._check_health)
        self._raw_event.connect(self._handle_event)

    @property
    def root(self) -> str:
        return self._root

    def is_running(self) -> bool:
        return self._running

    @property
    def debounce_interval(self) -> int:
        return self._debouncer.interval_ms

    def set_debounce_interval(self, debounce_ms: int):
        self._debouncer.set_interval(debounce_ms)

    def start(self, root_dir: str) -> bool:
        """Start watching root_dir recursively. Returns False if the watch failed."""
        self.stop()
        self._root = os.path.abspath(str(root_dir))
        self._generation += 1

        if not os.path.isdir(self._root):
            self._fail(f"Projects root does not exist: {self._root}")
            return False

        observer = Observer()
        try:
            observer.schedule(_TreeEventHandler(self.dispatch), self._root, recursive=True)
            observer.start()
        except OSError as e:
            self._fail(f"Cannot watch {self._root}: {e}")
            return False

        self._observer = observer
        self._running = True
        self._health_timer.start()
        logger.debug("Watching %s", self._root)
        return True

    def stop(self):
        """Stop watching. Pending notifications are dropped; safe to call repeatedly."""
        self._running = False
        self._health_timer.stop()
        self._debouncer.cancel_all()
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join()

    def dispatch(self, path: str, kind: EventKind, is_directory: bool):
        """Feed a raw filesystem event in. Callable from any thread."""
        self._raw_event.emit(self._generation, path, EventKind(kind).value, is_directory)

    @Slot(int, str, str, bool)
    def _handle_event(self, generation: int, path: str, kind: str, is_directory: bool):
        if not self._running or generation != self._generation:
            return
        if kind == EventKind.REMOVED.value and os.path.abspath(path) == self._root:
            self._lose_watch(f"Projects root was removed: {self._root}")
            return
        try:
            key = classify_event(self._root, path, EventKind(kind), is_directory)
        except ValueError as e:
            logger.debug("Cannot classify event for %s: %s", path, e)
            return
        if key is None:
            return

        if key == PROJECTS_KEY:
            self._debouncer.trigger(key, self._emit_projects_changed)
        else:
            project = key[len(SESSIONS_KEY_PREFIX):]
            self._debouncer.trigger(key, lambda p=project: self._emit_sessions_changed(p))

    @Slot()
    def _check_health(self):
        if not self._running:
            return
        if not os.path.isdir(self._root):
            self._lose_watch(f"Projects root is gone: {self._root}")
        elif self._observer is None or not self._observer.is_alive():
            self._lose_watch(f"Watcher thread for {self._root} exited")

    def _emit_projects_changed(self):
        if self._running:
            self.projects_changed.emit()

    def _emit_sessions_changed(self, project: str):
        if self._running:
            self.sessions_changed.emit(project)

    def _lose_watch(self, message: str):
        self.stop()
        self._fail(message)

    def _fail(self, message: str):
        logger.warning(message)
        self._running = False
        self.error.emit(message)
