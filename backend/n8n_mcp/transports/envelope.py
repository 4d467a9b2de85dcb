# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Response Envelope Writer

Serializes dispatcher output into the wire format of each transport. Replies
become a JSON body or SSE ``data:`` frames; a request carrying only
notifications gets an empty 202. JSON-RPC ids are never rewritten here.
"""

import json
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from n8n_mcp.config_resolver import ConfigSource, params_from_headers
from n8n_mcp.core.config import get_env_defaults

SESSION_HEADER = "Mcp-Session-Id"
SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_event(
    data: Any,
    event: Optional[str] = None,
    event_id: Optional[str] = None,
    retry: Optional[int] = None,
) -> str:
    """
    Format one Server-Sent Event.

    Args:
        data: Event data (JSON-serialized unless already a string)
        event: Optional event type
        event_id: Optional event id
        retry: Optional reconnect interval in milliseconds

    Returns:
        The framed event, terminated by a blank line
    """
    lines: List[str] = []
    if event:
        lines.append(f"event: {event}")
    if event_id:
        lines.append(f"id: {event_id}")
    if retry is not None:
        lines.append(f"retry: {retry}")

    data_str = data if isinstance(data, str) else json.dumps(data)
    # Multi-line data uses one data: line per line
    for line in data_str.split("\n"):
        lines.append(f"data: {line}")

    lines.append("")
    lines.append("")
    return "\n".join(lines)


def format_sse_comment(comment: str) -> str:
    """Comment frame, ignored by clients (keep-alives)"""
    return f": {comment}\n\n"


def _collapse(outbox: List[Any]) -> Optional[Any]:
    """One reply per request: a single frame stays as is, several become a list"""
    if not outbox:
        return None
    if len(outbox) == 1:
        return outbox[0]
    collapsed: List[Any] = []
    for frame in outbox:
        if isinstance(frame, list):
            collapsed.extend(frame)
        else:
            collapsed.append(frame)
    return collapsed


def json_reply(
    outbox: List[Any],
    headers: Optional[Mapping[str, str]] = None,
    status_code: int = 200,
) -> Response:
    """JSON body for the replies, or 202 Accepted when there are none"""
    body = _collapse(outbox)
    if body is None:
        return Response(status_code=202, headers=dict(headers or {}))
    return JSONResponse(content=body, status_code=status_code, headers=dict(headers or {}))


def sse_reply(outbox: List[Any], headers: Optional[Mapping[str, str]] = None) -> Response:
    """Replies written as a short SSE stream, one message event per response"""
    frames: List[Any] = []
    for frame in outbox:
        frames.extend(frame if isinstance(frame, list) else [frame])
    if not frames:
        return Response(status_code=202, headers=dict(headers or {}))

    async def stream():
        for frame in frames:
            yield format_sse_event(frame, event="message")

    return StreamingResponse(
        stream(),
        media_type=SSE_MEDIA_TYPE,
        headers={**SSE_HEADERS, **dict(headers or {})},
    )


def wants_event_stream(request: Request) -> bool:
    """True when the client accepts SSE but not JSON"""
    accept = request.headers.get("accept", "").lower()
    return SSE_MEDIA_TYPE in accept and "application/json" not in accept and "*/*" not in accept


def config_source_from_request(request: Request) -> ConfigSource:
    """
    Capture the configuration inputs of one request.

    Environment defaults are read per request, never cached across requests.
    """
    return ConfigSource(
        env_defaults=get_env_defaults(),
        query_params=dict(request.query_params),
        header_params=params_from_headers(request.headers),
    )


def session_headers(session_id: Optional[str]) -> Dict[str, str]:
    return {SESSION_HEADER: session_id} if session_id else {}
