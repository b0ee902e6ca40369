"""Project and session metadata types."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionKind(str, Enum):
    MAIN = "main"
    BACKGROUND = "background"
    SUBAGENT = "subagent"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    RECENT = "recent"
    STALE = "stale"


@dataclass
class ProjectEntry:
    encoded_name: str      # Directory name under the projects root
    resolved_path: str     # Best-effort decoded filesystem path
    path_verified: bool    # True if resolved_path was confirmed on disk
    session_count: int = 0
    last_modified: float = 0.0
    name: str = ""         # Last path segment


@dataclass
class SessionEntry:
    id: str
    kind: SessionKind
    file_path: str
    last_modified: float
    parent_id: Optional[str] = None   # Owning session for subagents
