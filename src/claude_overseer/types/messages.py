"""Record-level types for parsed JSONL data."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class MessageType(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    QUEUE_OP = "queue-operation"


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation_input_tokens: int = 0

    @property
    def total(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_read_input_tokens + self.cache_creation_input_tokens)


@dataclass
class SessionRecord:
    type: MessageType
    timestamp: str = ""
    session_id: str = ""
    uuid: str = ""
    message: dict = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def model(self) -> str:
        model = self.message.get("model", "")
        return model if isinstance(model, str) else ""

    @property
    def usage(self) -> Optional[TokenUsage]:
        raw_usage = self.message.get("usage")
        if not isinstance(raw_usage, dict):
            return None
        return TokenUsage(
            input_tokens=_as_int(raw_usage.get("input_tokens")),
            output_tokens=_as_int(raw_usage.get("output_tokens")),
            cache_read_input_tokens=_as_int(raw_usage.get("cache_read_input_tokens")),
            cache_creation_input_tokens=_as_int(raw_usage.get("cache_creation_input_tokens")),
        )


def _as_int(value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0
