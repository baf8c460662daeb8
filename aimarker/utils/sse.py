"""
Server-Sent Events framing
"""

import json
from typing import Any, Optional

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(data: Any, event: Optional[str] = None) -> str:
    """Frame one SSE message; non-string data is JSON encoded"""
    payload = data if isinstance(data, str) else json.dumps(data)
    lines = []
    if event:
        lines.append(f"event: {event}")
    for line in payload.splitlines() or [""]:
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


def sse_error(message: str, status: Optional[int] = None) -> str:
    body = {"error": message}
    if status is not None:
        body["status"] = status
    return format_sse(body, event="error")


def sse_delta(content: str) -> str:
    """OpenAI-style streaming chunk carrying the whole completion"""
    return format_sse({"choices": [{"delta": {"content": content}}]})


def sse_done() -> str:
    return "data: [DONE]\n\n"
