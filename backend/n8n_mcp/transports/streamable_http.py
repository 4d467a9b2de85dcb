# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Streamable HTTP transport (ANY /mcp).

One POST carries one JSON-RPC message or a batch. The Mcp-Session-Id header
is optional: requests without it, or with an id the server no longer knows,
are handled session-less. An initialize request without a live session
creates one and the id is echoed back in the response header.
"""

from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from n8n_mcp.core.logging import get_logger, log_event
from n8n_mcp.dispatcher import ConnectionContext, ConnectionState, MCPDispatcher
from n8n_mcp.mcp_exceptions import ParseError
from n8n_mcp.mcp_jsonrpc import build_error, parse_body
from n8n_mcp.mcp_session_manager import MCPSessionManager
from n8n_mcp.transports.channel import BufferedChannel, bind
from n8n_mcp.transports.envelope import (
    SESSION_HEADER,
    config_source_from_request,
    json_reply,
    session_headers,
    sse_reply,
    wants_event_stream,
)

logger = get_logger(__name__)

TRANSPORT_NAME = "streamable-http"


def contains_initialize(payload: Any) -> bool:
    messages = payload if isinstance(payload, list) else [payload]
    return any(isinstance(m, dict) and m.get("method") == "initialize" for m in messages)


class StreamableHTTPTransport:
    """Terminates streamable-HTTP requests and hands them to the dispatcher"""

    def __init__(self, dispatcher: MCPDispatcher, sessions: MCPSessionManager):
        self.dispatcher = dispatcher
        self.sessions = sessions

    def info(self) -> Dict[str, Any]:
        return {
            "transport": TRANSPORT_NAME,
            "server": self.dispatcher.server_info,
            "methods": self.dispatcher.methods,
            "tools": len(self.dispatcher.registry),
            "sessionHeader": SESSION_HEADER,
        }

    async def handle(self, request: Request) -> Response:
        if request.method == "GET":
            return JSONResponse(content=self.info())
        if request.method == "DELETE":
            return self._terminate(request)
        if request.method != "POST":
            return JSONResponse(
                content={"error": "Method not allowed"},
                status_code=405,
                headers={"Allow": "GET, POST, DELETE, OPTIONS"},
            )
        return await self._post(request)

    def _terminate(self, request: Request) -> Response:
        session_id = request.headers.get(SESSION_HEADER)
        if not self.sessions.remove(session_id):
            return JSONResponse(
                content={"error": "Session not found", "sessionId": session_id},
                status_code=404,
            )
        log_event(logger, "session_terminated", session_id=session_id, transport=TRANSPORT_NAME)
        return Response(status_code=204)

    async def _post(self, request: Request) -> Response:
        try:
            payload = parse_body(await request.body())
        except ParseError as e:
            return JSONResponse(
                content=build_error(None, e.code, e.message, e.data),
                status_code=400,
            )

        self.sessions.maybe_sweep()

        session_id = request.headers.get(SESSION_HEADER)
        live = self.sessions.touch(session_id)
        if session_id and not live:
            logger.debug(f"Unknown session {session_id}, handling request session-less")
            session_id = None
        if session_id is None and contains_initialize(payload):
            session_id = self.sessions.create()

        context = ConnectionContext(
            config_source=config_source_from_request(request),
            transport=TRANSPORT_NAME,
            session_id=session_id,
            state=ConnectionState.INITIALIZED if live else ConnectionState.UNINITIALIZED,
        )
        channel = bind(BufferedChannel(), self.dispatcher, context)
        try:
            await channel.receive(payload)
        finally:
            channel.close()

        headers = session_headers(session_id)
        if wants_event_stream(request):
            return sse_reply(channel.outbox, headers)
        return json_reply(channel.outbox, headers)
