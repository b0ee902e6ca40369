"""JSONL parser for Claude Code session files."""

import logging
from pathlib import Path

import orjson

from claude_overseer.types.messages import MessageType, SessionRecord

logger = logging.getLogger(__name__)

# Max size for a single JSONL line (10MB)
MAX_LINE_SIZE = 10 * 1024 * 1024


def parse_line(line: str | bytes) -> SessionRecord | None:
    """Parse a single JSONL line into a SessionRecord.

    Returns None for blank, malformed, non-object, or unsupported record types.
    """
    try:
        return decode_line(line)
    except ValueError as e:
        logger.debug("Malformed JSONL line: %s", e)
        return None


def decode_line(line: str | bytes) -> SessionRecord | None:
    """Like parse_line, but raises ValueError for malformed or oversized lines.

    Blank lines and well-formed records of other types still return None.
    """
    line = line.strip()
    if not line:
        return None

    if len(line) > MAX_LINE_SIZE:
        raise ValueError(f"line exceeds {MAX_LINE_SIZE // (1024 * 1024)}MB")

    raw = orjson.loads(line)

    if not isinstance(raw, dict):
        return None

    try:
        msg_type = MessageType(raw.get("type", ""))
    except ValueError:
        return None

    message = raw.get("message")
    if not isinstance(message, dict):
        message = {}

    return SessionRecord(
        type=msg_type,
        timestamp=str(raw.get("timestamp", "")),
        session_id=str(raw.get("sessionId", "")),
        uuid=str(raw.get("uuid", "") or ""),
        message=message,
        raw=raw,
    )


def parse_content(data: str | bytes) -> list[SessionRecord]:
    """Parse JSONL content, skipping lines that do not yield a record."""
    if isinstance(data, str):
        lines = data.split("\n")
    else:
        lines = data.split(b"\n")
    records = []
    for line in lines:
        record = parse_line(line)
        if record is not None:
            records.append(record)
    return records


def parse_session_file(file_path: str | Path) -> list[SessionRecord]:
    """Parse an entire JSONL session file.

    Raises OSError if the file cannot be read.
    """
    return parse_content(Path(file_path).read_bytes())
