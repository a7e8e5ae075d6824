"""Server-sent event framing."""

from __future__ import annotations

import json
from typing import Any, Optional


def format_sse(event: str, data: Any, *, event_id: Optional[int] = None) -> str:
    """One SSE frame; multi-line payloads become repeated data: lines."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, default=str)
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event}")
    lines.extend(f"data: {line}" for line in payload.split("\n"))
    return "\n".join(lines) + "\n\n"


def format_retry(retry_ms: int) -> str:
    return f"retry: {int(retry_ms)}\n\n"
