"""Project and session discovery under the Claude projects root."""

import logging
import os
import time
from pathlib import Path

from claude_overseer.types import ProjectEntry, SessionEntry, SessionKind, SessionStatus
from claude_overseer.utils.path_codec import extract_project_name, resolve_path

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".jsonl"
BACKGROUND_PREFIX = "agent-"
SUBAGENTS_DIR = "subagents"

# Directories under the projects root that are not projects
IGNORED_DIRS = {"memory"}

ACTIVE_SECONDS = 60
RECENT_SECONDS = 300


def scan_projects(projects_dir: str | Path) -> list[ProjectEntry]:
    """Scan the projects root and build one ProjectEntry per project directory."""
    root = Path(projects_dir)
    try:
        entries = list(os.scandir(root))
    except OSError as e:
        logger.warning("Cannot scan projects root %s: %s", root, e)
        return []

    projects = []
    for entry in entries:
        name = entry.name
        if name in IGNORED_DIRS or name.startswith("."):
            continue
        try:
            if not entry.is_dir():
                continue
            dir_mtime = entry.stat().st_mtime
        except OSError:
            continue

        session_count, newest = _count_sessions(entry.path)
        resolved, verified = resolve_path(name)
        projects.append(ProjectEntry(
            encoded_name=name,
            resolved_path=resolved,
            path_verified=verified,
            session_count=session_count,
            last_modified=max(dir_mtime, newest),
            name=extract_project_name(resolved),
        ))

    projects.sort(key=lambda p: p.name.lower())
    return projects


def _count_sessions(project_dir: str) -> tuple[int, float]:
    """Count top-level session files and return the newest mtime among them."""
    count = 0
    newest = 0.0
    try:
        with os.scandir(project_dir) as it:
            for entry in it:
                if not entry.name.endswith(SESSION_SUFFIX):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    newest = max(newest, entry.stat().st_mtime)
                except OSError:
                    continue
                count += 1
    except OSError:
        logger.debug("Cannot list project dir %s", project_dir, exc_info=True)
    return count, newest


def session_kind(file_name: str, in_subagents_dir: bool = False) -> SessionKind:
    """Derive a session's kind from its file name and location."""
    if in_subagents_dir:
        return SessionKind.SUBAGENT
    if file_name.startswith(BACKGROUND_PREFIX):
        return SessionKind.BACKGROUND
    return SessionKind.MAIN


def discover_sessions(project_dir: str | Path) -> list[SessionEntry]:
    """Discover main, background and subagent sessions for a project, newest first."""
    project_dir = Path(project_dir)
    sessions: list[SessionEntry] = []

    try:
        entries = list(os.scandir(project_dir))
    except OSError as e:
        logger.debug("Cannot list sessions in %s: %s", project_dir, e)
        return []

    for entry in entries:
        try:
            if entry.is_file() and entry.name.endswith(SESSION_SUFFIX):
                sessions.append(SessionEntry(
                    id=entry.name[:-len(SESSION_SUFFIX)],
                    kind=session_kind(entry.name),
                    file_path=entry.path,
                    last_modified=entry.stat().st_mtime,
                ))
            elif entry.is_dir():
                sessions.extend(_discover_subagents(Path(entry.path)))
        except OSError:
            continue

    sessions.sort(key=lambda s: s.last_modified, reverse=True)
    return sessions


def _discover_subagents(session_dir: Path) -> list[SessionEntry]:
    subagents_dir = session_dir / SUBAGENTS_DIR
    found = []
    try:
        with os.scandir(subagents_dir) as it:
            for entry in it:
                if not entry.name.endswith(SESSION_SUFFIX):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    mtime = entry.stat().st_mtime
                except OSError:
                    continue
                found.append(SessionEntry(
                    id=entry.name[:-len(SESSION_SUFFIX)],
                    kind=session_kind(entry.name, in_subagents_dir=True),
                    file_path=entry.path,
                    last_modified=mtime,
                    parent_id=session_dir.name,
                ))
    except OSError:
        # No subagents directory for this session
        pass
    return found


def session_status(last_modified: float, now: float | None = None) -> SessionStatus:
    """Classify a session by how recently it was written to."""
    if now is None:
        now = time.time()
    age = now - last_modified
    if age < ACTIVE_SECONDS:
        return SessionStatus.ACTIVE
    if age < RECENT_SECONDS:
        return SessionStatus.RECENT
    return SessionStatus.STALE
