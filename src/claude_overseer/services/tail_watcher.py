"""Tail a growing session file and emit only newly appended records."""

import logging
import os

from PySide6.QtCore import QObject, Signal, Slot, QFileSystemWatcher

from claude_overseer.services.jsonl_parser import decode_line
from claude_overseer.types.messages import SessionRecord

logger = logging.getLogger(__name__)


class TailWatcher(QObject):
    """Watches one session file and emits records appended after start()."""

    new_messages = Signal(str, list)   # file_path, list[SessionRecord]
    error = Signal(str, str)           # file_path, message

    def __init__(self, file_path: str, parent=None):
        super().__init__(parent)
        self._file_path = os.path.abspath(str(file_path))
        self._offset = 0
        self._active = False
        self._watcher: QFileSystemWatcher | None = None

    @property
    def file_path(self) -> str:
        return self._file_path

    @property
    def offset(self) -> int:
        return self._offset

    def is_active(self) -> bool:
        return self._active

    def start(self):
        """Start tailing from the current end of the file (history is not replayed)."""
        if self._active:
            return
        try:
            self._offset = os.stat(self._file_path).st_size
        except OSError:
            self._offset = 0

        self._watcher = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self._on_changed)
        self._watcher.directoryChanged.connect(self._on_changed)
        self._active = True
        self._ensure_watched()

    def stop(self):
        """Stop tailing. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.fileChanged.disconnect(self._on_changed)
            watcher.directoryChanged.disconnect(self._on_changed)
            if watcher.files():
                watcher.removePaths(watcher.files())
            if watcher.directories():
                watcher.removePaths(watcher.directories())
            watcher.deleteLater()

    def _ensure_watched(self):
        """Watch the file and its directory.

        Qt drops a file from its watch list when it is replaced or removed,
        and cannot watch a file that does not exist yet, so the parent
        directory is watched too and the file is re-added on every change.
        """
        if self._watcher is None:
            return
        parent_dir = os.path.dirname(self._file_path)
        if parent_dir not in self._watcher.directories() and os.path.isdir(parent_dir):
            self._watcher.addPath(parent_dir)
        if self._file_path not in self._watcher.files() and os.path.exists(self._file_path):
            self._watcher.addPath(self._file_path)

    @Slot(str)
    def _on_changed(self, _path: str):
        if not self._active:
            return
        self._ensure_watched()
        self.check()

    def check(self) -> list[SessionRecord]:
        """Read bytes appended since the last check and emit parsed records.

        Only whole lines are consumed. An unterminated trailing fragment stays
        unread and is picked up, completed, on a later check.
        """
        path = self._file_path
        try:
            size = os.stat(path).st_size
        except OSError as e:
            self._report(f"stat failed: {e}")
            return []

        if size < self._offset:
            logger.info("%s was truncated, re-reading from start", path)
            self._offset = 0
        if size == self._offset:
            return []

        try:
            with open(path, "rb") as f:
                f.seek(self._offset)
                data = f.read(size - self._offset)
        except OSError as e:
            self._report(f"read failed: {e}")
            return []

        end = data.rfind(b"\n")
        if end == -1:
            return []
        complete = data[:end + 1]
        self._offset += len(complete)

        records = []
        for line in complete.split(b"\n"):
            try:
                record = decode_line(line)
            except ValueError as e:
                self._report(f"malformed line: {e}")
                continue
            if record is not None:
                records.append(record)

        if records and self._active:
            self.new_messages.emit(path, records)
        return records

    def _report(self, message: str):
        logger.debug("Tail watcher %s: %s", self._file_path, message)
        if self._active:
            self.error.emit(self._file_path, message)


class TailWatcherRegistry(QObject):
    """Owns the active TailWatchers, at most one per file path."""

    new_messages = Signal(str, list)   # file_path, list[SessionRecord]
    error = Signal(str, str)           # file_path, message

    def __init__(self, parent=None):
        super().__init__(parent)
        self._watchers: dict[str, TailWatcher] = {}

    def watch(self, file_path: str) -> TailWatcher:
        """Start tailing file_path, replacing any existing watcher for it."""
        key = os.path.abspath(str(file_path))
        self.unwatch(key)
        watcher = TailWatcher(key, self)
        watcher.new_messages.connect(self.new_messages)
        watcher.error.connect(self.error)
        watcher.start()
        self._watchers[key] = watcher
        return watcher

    def unwatch(self, file_path: str):
        watcher = self._watchers.pop(os.path.abspath(str(file_path)), None)
        if watcher is not None:
            watcher.stop()
            watcher.deleteLater()

    def get(self, file_path: str) -> TailWatcher | None:
        return self._watchers.get(os.path.abspath(str(file_path)))

    def is_watching(self, file_path: str) -> bool:
        return os.path.abspath(str(file_path)) in self._watchers

    def paths(self) -> list[str]:
        return list(self._watchers)

    def stop_all(self):
        for path in list(self._watchers):
            self.unwatch(path)
