"""Server-sent event framing for streamed responses."""

from __future__ import annotations

import json
from typing import Any

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # disable proxy buffering (nginx)
}

DONE_SENTINEL = "[DONE]"


def sse_event(payload: dict[str, Any] | str) -> str:
    """Frame one event: ``data: <json>`` (or a raw string) and a blank line."""
    if isinstance(payload, str):
        data = payload
    else:
        data = json.dumps(payload, default=str, ensure_ascii=False)
    return f"data: {data}\n\n"


def sse_done() -> str:
    return sse_event(DONE_SENTINEL)

