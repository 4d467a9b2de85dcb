# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
SSE to streamable-HTTP bridge.

Exposes the legacy SSE contract but forwards every POST body, unchanged
apart from authentication, to a remote streamable-HTTP MCP endpoint and
relays the reply. The upstream body is decoded before it is relayed, so
Content-Encoding and the hop-by-hop length headers are never copied.
"""

import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from n8n_mcp.core.config import Settings
from n8n_mcp.core.logging import get_logger, log_event
from n8n_mcp.dispatcher import MCPDispatcher
from n8n_mcp.mcp_exceptions import INTERNAL_ERROR
from n8n_mcp.mcp_jsonrpc import build_error, build_log_notification, extract_id
from n8n_mcp.mcp_session_manager import MCPSessionManager
from n8n_mcp.transports.envelope import SESSION_HEADER, SSE_MEDIA_TYPE
from n8n_mcp.transports.sse import SSETransport

logger = get_logger(__name__)

DEPRECATION_NOTICE = "SSE transport is deprecated. This bridge converts to streamable HTTP."

# Never relayed: the body is re-serialized after decoding, and the server
# and CORS middleware set their own date, server and access-control headers
DROPPED_RESPONSE_HEADERS = frozenset([
    "content-encoding",
    "content-length",
    "transfer-encoding",
    "connection",
    "keep-alive",
    "content-type",
    "date",
    "server",
])
DROPPED_RESPONSE_PREFIXES = ("access-control-",)

# Inbound headers passed through to the upstream server
FORWARDED_REQUEST_HEADERS = ("mcp-protocol-version", "x-n8n-api-url", "x-n8n-api-key",
                             "x-n8n-webhook-username", "x-n8n-webhook-password")


def read_sse_message(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull the JSON-RPC response out of an SSE body.

    Events are dispatched on blank lines; the first one carrying a result or
    error wins. Notifications and comments are skipped.
    """
    data_buffer: List[str] = []
    for line in text.split("\n") + [""]:
        line = line.rstrip("\r")

        if not line:
            if data_buffer:
                data = "\n".join(data_buffer)
                data_buffer = []
                try:
                    parsed = json.loads(data)
                except json.JSONDecodeError as e:
                    logger.warning(f"Failed to parse SSE data: {e}")
                    continue
                if isinstance(parsed, list) or "result" in parsed or "error" in parsed:
                    return parsed
            continue

        if line.startswith("data:"):
            data_buffer.append(line[5:].strip())
        # id:, event:, retry: and comments carry nothing we relay

    return None


class SSEBridgeTransport(SSETransport):
    """SSE adapter whose POSTs are proxied to an upstream streamable-HTTP server"""

    transport_name = "sse-bridge"

    def __init__(
        self,
        dispatcher: MCPDispatcher,
        sessions: MCPSessionManager,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(dispatcher, sessions, settings, clock=clock)
        self.target_url = settings.bridge_target_url
        self.target_api_key = settings.bridge_api_key
        self.client = client or httpx.AsyncClient(timeout=settings.bridge_timeout)

    def opening_frames(self) -> List[Dict[str, Any]]:
        return [build_log_notification(DEPRECATION_NOTICE)] + super().opening_frames()

    def upstream_params(self, request: Request) -> Dict[str, str]:
        """Client query parameters, with the client's access key replaced by ours"""
        params = {k: v for k, v in request.query_params.items() if k != "apiKey"}
        if self.target_api_key:
            params["apiKey"] = self.target_api_key
        return params

    def upstream_headers(self, request: Request, session_id: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": f"application/json, {SSE_MEDIA_TYPE}",
        }
        for name in FORWARDED_REQUEST_HEADERS:
            value = request.headers.get(name)
            if value:
                headers[name] = value
        if session_id:
            headers[SESSION_HEADER] = session_id
        if self.target_api_key:
            headers["Authorization"] = f"Bearer {self.target_api_key}"
        return headers

    async def post(self, request: Request) -> Response:
        body = await request.body()
        self.sessions.maybe_sweep()

        client_session = request.headers.get(SESSION_HEADER)
        session_id = client_session or self._session_for_post(request)
        request_id = _peek_id(body)

        log_event(logger, "bridge_forward", target=self.target_url, session_id=session_id)
        try:
            upstream = await self.client.post(
                self.target_url,
                content=body,
                params=self.upstream_params(request),
                headers=self.upstream_headers(request, client_session),
            )
        except httpx.HTTPError as e:
            logger.error(f"Bridge request to {self.target_url} failed: {e}")
            return JSONResponse(
                content=build_error(
                    request_id, INTERNAL_ERROR, "SSE Bridge proxy error",
                    {"error": str(e) or e.__class__.__name__, "target": self.target_url},
                ),
                status_code=500,
                headers={SESSION_HEADER: session_id},
            )

        relay_headers = {k: v for k, v in upstream.headers.items() if _relayed(k)}
        relay_headers[SESSION_HEADER] = upstream.headers.get(SESSION_HEADER) or session_id

        if not upstream.is_success:
            logger.warning(f"Bridge upstream returned {upstream.status_code}")
            return JSONResponse(
                content=build_error(
                    request_id, INTERNAL_ERROR, "Upstream MCP server error",
                    {
                        "status": upstream.status_code,
                        "reason": upstream.reason_phrase,
                        "body": upstream.text[:1000],
                    },
                ),
                headers=relay_headers,
            )

        if upstream.status_code == 202 or not upstream.content:
            return Response(status_code=202, headers=relay_headers)

        content_type = upstream.headers.get("content-type", "")
        try:
            if SSE_MEDIA_TYPE in content_type:
                payload = read_sse_message(upstream.text)
                if payload is None:
                    return Response(status_code=202, headers=relay_headers)
            else:
                payload = upstream.json()
        except ValueError as e:
            return JSONResponse(
                content=build_error(
                    request_id, INTERNAL_ERROR, "Invalid upstream response",
                    {"error": str(e), "status": upstream.status_code},
                ),
                headers=relay_headers,
            )

        return JSONResponse(content=payload, status_code=upstream.status_code, headers=relay_headers)

    async def aclose(self) -> None:
        await self.client.aclose()


def _peek_id(body: bytes) -> Any:
    """Request id for bridge-generated errors; the body itself is never altered"""
    try:
        return extract_id(json.loads(body))
    except (ValueError, UnicodeDecodeError):
        return None


def _relayed(name: str) -> bool:
    name = name.lower()
    if name in DROPPED_RESPONSE_HEADERS or name == SESSION_HEADER.lower():
        return False
    return not name.startswith(DROPPED_RESPONSE_PREFIXES)
