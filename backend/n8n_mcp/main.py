# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
n8n MCP Server - FastAPI application

Builds the app, owns the process-wide runtime objects (session manager,
dispatcher, transports) and runs it under uvicorn.
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from n8n_mcp.api import mcp, system
from n8n_mcp.core.config import Settings, get_settings, load_environment_file
from n8n_mcp.core.errors import ConfigurationError
from n8n_mcp.core.logging import configure_logging, get_logger, log_event
from n8n_mcp.dispatcher import MCPDispatcher
from n8n_mcp.mcp_session_manager import MCPSessionManager
from n8n_mcp.tools.base import ClientFactory
from n8n_mcp.tools.registry import ToolRegistry
from n8n_mcp.transports.bridge import SSEBridgeTransport
from n8n_mcp.transports.sse import SSETransport
from n8n_mcp.transports.streamable_http import StreamableHTTPTransport

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
    tool_registry: Optional[ToolRegistry] = None,
    bridge_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Runtime objects are created on startup and torn down on shutdown.

    Args:
        settings: Process settings (defaults to get_settings())
        client_factory: n8n API client factory handed to tool handlers
        tool_registry: Tool table (defaults to the built-in tools)
        bridge_client: Outbound client for the SSE bridge
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sessions = MCPSessionManager(
            ttl=settings.session_ttl,
            sweep_probability=settings.session_sweep_probability,
        )
        dispatcher = MCPDispatcher(settings, tool_registry=tool_registry, client_factory=client_factory)
        if settings.bridge_enabled:
            sse_transport = SSEBridgeTransport(dispatcher, sessions, settings, client=bridge_client)
        else:
            sse_transport = SSETransport(dispatcher, sessions, settings)

        app.state.session_manager = sessions
        app.state.streamable_transport = StreamableHTTPTransport(dispatcher, sessions)
        app.state.sse_transport = sse_transport

        log_event(
            logger, "server_started",
            service=settings.service_name, version=settings.service_version,
            sse_mode=settings.sse_mode, tools=len(dispatcher.registry),
        )
        try:
            yield
        finally:
            await sse_transport.aclose()
            sessions.close()
            logger.info("Server shutdown complete")

    app = FastAPI(
        title="n8n MCP Server",
        description="Model Context Protocol server for n8n workflow automation",
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id"],
    )

    app.include_router(system.router)
    app.include_router(mcp.router)
    return app


def run() -> None:
    """Console entry point"""
    load_environment_file()
    try:
        settings = get_settings()
    except ConfigurationError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e.message}")
        sys.exit(1)
    configure_logging(settings.log_level, settings.log_format)

    logger.info(f"n8n MCP Server listening on {settings.host}:{settings.port}")
    try:
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    except OSError as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
