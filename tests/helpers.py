"""Shared test helpers."""

import json
import time

from PySide6.QtCore import QCoreApplication


def process_events(duration: float = 0.0):
    """Pump the Qt event loop for roughly `duration` seconds."""
    deadline = time.monotonic() + duration
    while True:
        QCoreApplication.processEvents()
        if time.monotonic() >= deadline:
            break
        time.sleep(0.01)


def wait_until(predicate, timeout: float = 3.0) -> bool:
    """Pump events until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(0.01)
    QCoreApplication.processEvents()
    return predicate()


def user_line(uuid: str, content: str = "Hello", session_id: str = "sess-001") -> str:
    return json.dumps({
        "type": "user",
        "uuid": uuid,
        "sessionId": session_id,
        "timestamp": "2026-02-13T10:00:00.000Z",
        "message": {"role": "user", "content": content},
    })


def assistant_line(
    uuid: str,
    model: str | None = "claude-opus-4-6",
    input_tokens: int = 0,
    output_tokens: int = 0,
    cache_creation_input_tokens: int = 0,
    cache_read_input_tokens: int = 0,
    with_usage: bool = True,
    session_id: str = "sess-001",
) -> str:
    message = {"role": "assistant", "content": [{"type": "text", "text": "ok"}]}
    if model is not None:
        message["model"] = model
    if with_usage:
        message["usage"] = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cache_creation_input_tokens": cache_creation_input_tokens,
            "cache_read_input_tokens": cache_read_input_tokens,
        }
    return json.dumps({
        "type": "assistant",
        "uuid": uuid,
        "sessionId": session_id,
        "timestamp": "2026-02-13T10:00:01.000Z",
        "message": message,
    })


def append(path, *lines: str):
    """Append newline-terminated lines to a file."""
    with open(path, "a") as f:
        for line in lines:
            f.write(line + "\n")
