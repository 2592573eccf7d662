"""Local stream-json agent for supervisor integration tests and smoke runs."""

from __future__ import annotations

import argparse
import json
import sys
import time
from uuid import uuid4

_CANNED_REPLIES = {
    "ping": "pong",
    "/compact": "compacted",
}
_HANG_SECONDS = 3600


def main(argv: list[str] | None = None) -> int:
    """Answer stream-json user messages deterministically until stdin closes."""

    parser = argparse.ArgumentParser(allow_abbrev=False)
    parser.add_argument("--preamble", type=int, default=0)
    parser.add_argument("--exit-on-start", action="store_true")
    args, _ = parser.parse_known_args(argv)

    if args.exit_on_start:
        return 2

    session_id = str(uuid4())
    for index in range(args.preamble):
        _write_raw(f"hook output {index}")
        _emit({"type": "system", "subtype": "hook_response", "session_id": session_id})

    initialized = False
    for raw in sys.stdin:
        text = _user_text(raw)
        if text is None:
            continue
        if not initialized:
            _emit({"type": "system", "subtype": "init", "session_id": session_id})
            initialized = True

        if text == "!exit":
            return 3
        if text == "!hang":
            # Stop reading stdin and never answer until killed.
            time.sleep(_HANG_SECONDS)
            return 4
        if text == "!noise":
            _write_raw("not json")
            _emit({"type": "unknown"})
        if text == "!error":
            _emit(
                {
                    "type": "result",
                    "is_error": True,
                    "error": "simulated failure",
                    "session_id": session_id,
                },
            )
            continue

        reply = _CANNED_REPLIES.get(text, f"echo: {text}")
        _emit(
            {
                "type": "assistant",
                "message": {"content": [{"type": "text", "text": reply}]},
                "session_id": session_id,
            },
        )
        _emit({"type": "result", "result": reply, "session_id": session_id})
    return 0


def _user_text(raw: str) -> str | None:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or payload.get("type") != "user":
        return None
    message = payload.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _emit(payload: dict[str, object]) -> None:
    _write_raw(json.dumps(payload))


def _write_raw(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
