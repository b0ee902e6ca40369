"""Type definitions for claude-overseer."""

from claude_overseer.types.messages import MessageType, SessionRecord, TokenUsage
from claude_overseer.types.sessions import (
    ProjectEntry,
    SessionEntry,
    SessionKind,
    SessionStatus,
)
from claude_overseer.types.costs import CostCacheEntry, ModelPricing

__all__ = [
    "MessageType",
    "SessionRecord",
    "TokenUsage",
    "ProjectEntry",
    "SessionEntry",
    "SessionKind",
    "SessionStatus",
    "CostCacheEntry",
    "ModelPricing",
]
