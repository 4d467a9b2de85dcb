# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Legacy Server-Sent Events transport (GET|POST /mcp/sse).

GET opens a stream that announces the connection, emits
notifications/initialized and then only keep-alive comments until the
client disconnects or the maximum lifetime is reached. POST carries one
JSON-RPC request answered as a plain JSON body; correlation is by JSON-RPC
id only.

The session record created on GET outlives the stream on purpose: it is
left to the session sweep.
"""

import asyncio
import secrets
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List

from fastapi import Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from n8n_mcp.core.config import Settings
from n8n_mcp.core.logging import get_logger, log_event
from n8n_mcp.dispatcher import ConnectionContext, ConnectionState, MCPDispatcher
from n8n_mcp.mcp_exceptions import ParseError
from n8n_mcp.mcp_jsonrpc import build_error, build_initialized_notification, parse_body
from n8n_mcp.mcp_session_manager import MCPSessionManager
from n8n_mcp.transports.channel import BufferedChannel, StreamChannel, bind
from n8n_mcp.transports.envelope import (
    SESSION_HEADER,
    SSE_HEADERS,
    SSE_MEDIA_TYPE,
    config_source_from_request,
    format_sse_comment,
    format_sse_event,
    json_reply,
    session_headers,
)

logger = get_logger(__name__)


def new_connection_id(clock: Callable[[], float] = time.time) -> str:
    return f"conn_{int(clock() * 1000)}_{secrets.token_hex(5)}"


class SSETransport:
    """Direct SSE adapter: POSTs are dispatched in-process"""

    transport_name = "sse"

    def __init__(
        self,
        dispatcher: MCPDispatcher,
        sessions: MCPSessionManager,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.dispatcher = dispatcher
        self.sessions = sessions
        self.keepalive_interval = settings.sse_keepalive_interval
        self.max_lifetime = settings.sse_max_lifetime
        self._clock = clock

    # ------------------------------------------------------------------
    # GET: event stream
    # ------------------------------------------------------------------

    def opening_frames(self) -> List[Dict[str, Any]]:
        """JSON-RPC notifications sent right after the connection event"""
        return [build_initialized_notification()]

    async def open_stream(self, request: Request) -> Response:
        self.sessions.maybe_sweep()
        session_id = self.sessions.create()
        connection_id = new_connection_id()

        # Outbound only: requests arrive by POST and are answered inline
        channel = StreamChannel()
        for frame in self.opening_frames():
            await channel.send(frame)

        log_event(
            logger, "sse_stream_opened",
            session_id=session_id, connection_id=connection_id, transport=self.transport_name,
        )
        return StreamingResponse(
            self.events(request, channel, session_id, connection_id),
            media_type=SSE_MEDIA_TYPE,
            headers={**SSE_HEADERS, SESSION_HEADER: session_id},
        )

    async def events(
        self,
        request: Request,
        channel: StreamChannel,
        session_id: str,
        connection_id: str,
    ) -> AsyncIterator[str]:
        """
        Yields the stream frames.

        Ends on client disconnect or at the maximum lifetime; the channel is
        closed either way.
        """
        started = self._clock()
        reason = "max_lifetime"
        try:
            yield format_sse_event({"type": "connection", "id": connection_id, "sessionId": session_id})

            while True:
                remaining = self.max_lifetime - (self._clock() - started)
                if remaining <= 0:
                    break
                if await request.is_disconnected():
                    reason = "client_disconnected"
                    break
                try:
                    frame = await channel.next_frame(timeout=min(self.keepalive_interval, remaining))
                except asyncio.TimeoutError:
                    if self._clock() - started >= self.max_lifetime:
                        break
                    yield format_sse_comment(f"ping - {datetime.now(timezone.utc).isoformat()}")
                    continue
                except EOFError:
                    reason = "channel_closed"
                    break
                yield format_sse_event(frame)
        except asyncio.CancelledError:
            reason = "cancelled"
            raise
        finally:
            channel.close()
            log_event(
                logger, "sse_stream_closed",
                session_id=session_id, connection_id=connection_id, reason=reason,
            )

    # ------------------------------------------------------------------
    # POST: one request, one JSON reply
    # ------------------------------------------------------------------

    def _session_for_post(self, request: Request) -> str:
        """
        Known session from header or sessionId query.

        Otherwise an untracked id for the response header; the session table
        only grows on GET.
        """
        session_id = request.headers.get(SESSION_HEADER) or request.query_params.get("sessionId")
        if session_id and self.sessions.touch(session_id):
            return session_id
        return self.sessions.new_session_id()

    async def post(self, request: Request) -> Response:
        try:
            payload = parse_body(await request.body())
        except ParseError as e:
            return JSONResponse(content=build_error(None, e.code, e.message, e.data))

        self.sessions.maybe_sweep()
        session_id = self._session_for_post(request)

        context = ConnectionContext(
            config_source=config_source_from_request(request),
            transport=self.transport_name,
            session_id=session_id,
            state=ConnectionState.INITIALIZED,
        )
        channel = bind(BufferedChannel(), self.dispatcher, context)
        try:
            await channel.receive(payload)
        finally:
            channel.close()

        return json_reply(channel.outbox, session_headers(session_id))

    async def aclose(self) -> None:
        """Nothing to release for the in-process adapter"""
        return None
