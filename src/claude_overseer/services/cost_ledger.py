"""Per-session USD cost cache, kept in sync with session files and persisted to disk.

Architecture:
    session file changes -> recompute_session(path) -> in-memory map updated
                                                    -> cost_updated broadcast
                                                    -> debounced atomic save
"""

import logging
import os
import threading
from pathlib import Path
from typing import Iterable

import orjson
from PySide6.QtCore import QObject, QThread, Signal, Slot

from claude_overseer.services.debouncer import Debouncer
from claude_overseer.services.jsonl_parser import parse_session_file
from claude_overseer.types.costs import CostCacheEntry
from claude_overseer.types.messages import MessageType, SessionRecord
from claude_overseer.utils.pricing import PricingTable, default_pricing, normalize_model_id

logger = logging.getLogger(__name__)

CACHE_DIR = Path.home() / ".cache" / "claude-overseer"
CACHE_FILE = CACHE_DIR / "cost-cache.json"
SAVE_DEBOUNCE_MS = 5_000

_SAVE_KEY = "save"


def _mtime_ms(path: str) -> float:
    return os.stat(path).st_mtime_ns / 1_000_000


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _entry_from_json(raw) -> CostCacheEntry | None:
    """Rebuild an entry from its on-disk form; None if any required field is missing."""
    if not isinstance(raw, dict):
        return None
    total = raw.get("total")
    by_model = raw.get("byModel")
    last_modified = raw.get("lastModified")
    if not _is_number(total) or not _is_number(last_modified) or not isinstance(by_model, dict):
        return None
    if not all(_is_number(v) for v in by_model.values()):
        return None
    return CostCacheEntry(
        total=float(total),
        by_model={str(k): float(v) for k, v in by_model.items()},
        last_modified=float(last_modified),
    )


def _entry_to_json(entry: CostCacheEntry) -> dict:
    return {
        "total": entry.total,
        "byModel": dict(entry.by_model),
        "lastModified": entry.last_modified,
    }


class _RecomputeWorker(QThread):
    """Background thread running recompute_all_stale over a batch of paths."""

    def __init__(self, ledger: "CostLedger", paths: list[str]):
        super().__init__(ledger)
        self._ledger = ledger
        self._paths = paths

    def run(self):
        try:
            self._ledger.recompute_all_stale(self._paths)
        except Exception:
            logger.exception("Background cost recompute failed")


class CostLedger(QObject):
    """Computes and caches per-session costs, keyed by absolute session file path."""

    cost_updated = Signal()

    def __init__(
        self,
        cache_file: str | Path | None = None,
        pricing: PricingTable | None = None,
        save_delay_ms: int = SAVE_DEBOUNCE_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._cache_file = Path(cache_file) if cache_file else CACHE_FILE
        self._pricing = pricing if pricing is not None else default_pricing()
        self._store: dict[str, CostCacheEntry] = {}
        self._lock = threading.Lock()
        self._path_locks: dict[str, threading.Lock] = {}
        self._dirty = False
        self._save_debouncer = Debouncer(save_delay_ms, self)
        self._workers: list[_RecomputeWorker] = []

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    @property
    def save_delay(self) -> int:
        return self._save_debouncer.interval_ms

    def set_save_delay(self, save_delay_ms: int):
        self._save_debouncer.set_interval(save_delay_ms)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Load cached costs from disk. Returns the number of usable entries.

        Entries from an older schema or with missing fields are dropped so
        those sessions get recomputed.
        """
        try:
            data = self._cache_file.read_bytes()
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning("Cannot read cost cache %s: %s", self._cache_file, e)
            return 0

        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            logger.warning("Corrupt cost cache %s: %s", self._cache_file, e)
            return 0
        if not isinstance(parsed, dict):
            return 0

        loaded = 0
        with self._lock:
            for path, raw in parsed.items():
                entry = _entry_from_json(raw)
                if entry is None:
                    logger.debug("Dropping incomplete cost cache entry for %s", path)
                    continue
                # Anything computed since startup is newer than the disk copy
                self._store.setdefault(path, entry)
                loaded += 1
        logger.debug("Loaded %d cost entries from %s", loaded, self._cache_file)
        return loaded

    def save(self) -> bool:
        """Atomically write the whole map (temp file + rename).

        On failure the ledger stays dirty and another save is scheduled.
        """
        with self._lock:
            snapshot = {path: _entry_to_json(e) for path, e in self._store.items()}
            self._dirty = False

        tmp_file = self._cache_file.with_name(self._cache_file.name + ".tmp")
        try:
            self._cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file.write_bytes(orjson.dumps(snapshot))
            os.replace(tmp_file, self._cache_file)
        except OSError:
            logger.exception("Failed to save cost cache to %s", self._cache_file)
            with self._lock:
                self._dirty = True
            try:
                tmp_file.unlink(missing_ok=True)
            except OSError:
                pass
            self._schedule_save()
            return False
        return True

    def flush(self) -> bool:
        """Save immediately if there are unsaved changes."""
        self._save_debouncer.cancel(_SAVE_KEY)
        if not self.is_dirty():
            return True
        return self.save()

    def _schedule_save(self):
        self._save_debouncer.trigger(_SAVE_KEY, self._save_if_dirty)

    def _save_if_dirty(self):
        if self.is_dirty():
            self.save()

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def is_stale(self, path: str) -> bool:
        """True if path has no entry or its file changed since the entry was computed.

        A file that cannot be stat'd is reported as not stale.
        """
        path = os.path.abspath(str(path))
        with self._lock:
            entry = self._store.get(path)
        if entry is None:
            return True
        try:
            return _mtime_ms(path) > entry.last_modified
        except OSError:
            return False

    def recompute_session(self, path: str) -> bool:
        """Re-read one session file and replace its entry.

        Returns False, leaving any previous entry untouched, if the file
        cannot be read.
        """
        path = os.path.abspath(str(path))
        with self._path_lock(path):
            try:
                mtime = _mtime_ms(path)
                records = parse_session_file(path)
            except OSError as e:
                logger.debug("Cannot recompute cost for %s: %s", path, e)
                return False

            total, by_model = self._sum_costs(records)
            with self._lock:
                self._store[path] = CostCacheEntry(total=total, by_model=by_model, last_modified=mtime)
                self._dirty = True
        self._schedule_save()
        return True

    def recompute_all_stale(self, paths: Iterable[str]) -> bool:
        """Recompute every stale path, then broadcast cost_updated once if anything changed."""
        changed = False
        for path in paths:
            if self.is_stale(path) and self.recompute_session(path):
                changed = True
        if changed:
            self.cost_updated.emit()
        return changed

    def recompute_in_background(self, paths: Iterable[str]):
        """Run recompute_all_stale(paths) on a worker thread."""
        worker = _RecomputeWorker(self, list(paths))
        worker.finished.connect(self._on_worker_finished)
        self._workers.append(worker)
        worker.start()

    def wait_for_background(self, msecs: int = -1) -> bool:
        """Block until every background recompute is done, or msecs elapse."""
        done = True
        for worker in list(self._workers):
            if msecs < 0:
                worker.wait()
            elif not worker.wait(msecs):
                done = False
        return done

    @Slot()
    def _on_worker_finished(self):
        worker = self.sender()
        if worker in self._workers:
            self._workers.remove(worker)
            worker.deleteLater()

    def forget(self, path: str):
        """Drop the entry for a session file that no longer exists."""
        path = os.path.abspath(str(path))
        with self._lock:
            removed = self._store.pop(path, None) is not None
            lock = self._path_locks.get(path)
            if lock is not None and not lock.locked():
                del self._path_locks[path]
            if removed:
                self._dirty = True
        if removed:
            self._schedule_save()

    def _path_lock(self, path: str) -> threading.Lock:
        with self._lock:
            lock = self._path_locks.get(path)
            if lock is None:
                lock = self._path_locks[path] = threading.Lock()
            return lock

    def _sum_costs(self, records: list[SessionRecord]) -> tuple[float, dict[str, float]]:
        total = 0.0
        by_model: dict[str, float] = {}
        for record in records:
            if record.type != MessageType.ASSISTANT:
                continue
            usage = record.usage
            model = record.model
            if usage is None or not model:
                continue
            cost = self._pricing.calculate_cost(usage, model)
            if cost is None:
                # Unknown model: under-count rather than guess
                continue
            key = normalize_model_id(model)
            by_model[key] = by_model.get(key, 0.0) + cost
            total += cost
        return total, by_model

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_entry(self, path: str) -> CostCacheEntry | None:
        with self._lock:
            entry = self._store.get(os.path.abspath(str(path)))
            if entry is None:
                return None
            return CostCacheEntry(entry.total, dict(entry.by_model), entry.last_modified)

    def get_session_costs(self, project_dir: str) -> dict[str, float]:
        """Cost of every cached session under project_dir, keyed by path."""
        prefix = _dir_prefix(project_dir)
        with self._lock:
            return {p: e.total for p, e in self._store.items() if p.startswith(prefix)}

    def get_project_costs_by_model(self, project_dir: str) -> dict[str, float]:
        """Per-model cost totals across all cached sessions under project_dir."""
        prefix = _dir_prefix(project_dir)
        result: dict[str, float] = {}
        with self._lock:
            for path, entry in self._store.items():
                if not path.startswith(prefix):
                    continue
                for model, cost in entry.by_model.items():
                    result[model] = result.get(model, 0.0) + cost
        return result

    def get_project_cost(self, project_dir: str) -> float:
        prefix = _dir_prefix(project_dir)
        with self._lock:
            return sum(e.total for p, e in self._store.items() if p.startswith(prefix))

    def get_all_project_costs(self, project_dirs: Iterable[str]) -> dict[str, float]:
        return {d: self.get_project_cost(d) for d in project_dirs}


def _dir_prefix(project_dir: str) -> str:
    """Match whole directories only, so -home-x-app never matches -home-x-app-v2."""
    return os.path.abspath(str(project_dir)).rstrip(os.sep) + os.sep
