"""Line-delimited JSON codec for the Claude CLI stream-json protocol.

Outbound, every request is a single ``user`` object::

    {"type": "user", "message": {"role": "user", "content": "<text>"}}

Inbound, the CLI emits one JSON object per line:

* ``system``    - ``subtype == "init"`` announces a ready session.
* ``assistant`` - partial output; text lives in ``message.content[]`` blocks.
* ``result``    - terminal event of one exchange; ``is_error`` flags failure.
* ``user``      - tool results echoed back to the model (ignored).

Decoding never raises. Anything unrecognised becomes :class:`OtherEvent` so
hook output or stray log lines cannot take the session down.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

_DEFAULT_ERROR_MESSAGE = "Unknown error"


@dataclass(slots=True)
class InitEvent:
    identity: str | None = None


@dataclass(slots=True)
class AssistantTextEvent:
    text: str
    identity: str | None = None


@dataclass(slots=True)
class ResultEvent:
    text: str | None
    identity: str | None = None


@dataclass(slots=True)
class ResultErrorEvent:
    message: str
    identity: str | None = None


@dataclass(slots=True)
class OtherEvent:
    event_type: str | None = None
    identity: str | None = None


ParsedEvent = InitEvent | AssistantTextEvent | ResultEvent | ResultErrorEvent | OtherEvent


def encode_user_message(text: str) -> str:
    """Render one outbound user message as a single JSON line (no newline)."""

    payload = {
        "type": "user",
        "message": {
            "role": "user",
            "content": text,
        },
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_line(line: str) -> ParsedEvent:
    """Decode one inbound line into a tagged event."""

    stripped = line.strip()
    if not stripped:
        return OtherEvent()
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return OtherEvent()
    if not isinstance(payload, dict):
        return OtherEvent()

    identity = _string_or_none(payload.get("session_id"))
    event_type = payload.get("type")

    if event_type == "system":
        if payload.get("subtype") == "init":
            return InitEvent(identity=identity)
        return OtherEvent(event_type="system", identity=identity)

    if event_type == "assistant":
        text = _last_text_block(payload.get("message"))
        if text is None:
            return OtherEvent(event_type="assistant", identity=identity)
        return AssistantTextEvent(text=text, identity=identity)

    if event_type == "result":
        if payload.get("is_error") is True:
            message = (
                _string_or_none(payload.get("error"))
                or _string_or_none(payload.get("result"))
                or _DEFAULT_ERROR_MESSAGE
            )
            return ResultErrorEvent(message=message, identity=identity)
        text = payload.get("result")
        return ResultEvent(text=text if isinstance(text, str) else None, identity=identity)

    return OtherEvent(
        event_type=event_type if isinstance(event_type, str) else None,
        identity=identity,
    )


def _last_text_block(message: Any) -> str | None:
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, list):
        return None
    text: str | None = None
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        value = block.get("text")
        if isinstance(value, str):
            text = value
    return text


def _string_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
