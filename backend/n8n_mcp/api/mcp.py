# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP API - protocol endpoints

Endpoints:
- ANY /mcp - Streamable HTTP (POST messages, GET info, DELETE session)
- GET /mcp/sse - Open an SSE stream
- POST /mcp/sse - Send one JSON-RPC request (direct or bridged)
"""

from fastapi import APIRouter, Depends, Request

from n8n_mcp.core.dependencies import (
    get_sse_transport,
    get_streamable_transport,
    require_access_key,
)

router = APIRouter(prefix="/mcp", tags=["mcp"], dependencies=[Depends(require_access_key)])


@router.api_route("", methods=["GET", "POST", "DELETE", "PUT", "PATCH"])
async def streamable_http(request: Request, transport=Depends(get_streamable_transport)):
    """Streamable HTTP transport"""
    return await transport.handle(request)


@router.get("/sse")
async def sse_stream(request: Request, transport=Depends(get_sse_transport)):
    """Open a Server-Sent Events stream"""
    return await transport.open_stream(request)


@router.post("/sse")
async def sse_message(request: Request, transport=Depends(get_sse_transport)):
    """Send one JSON-RPC message over the SSE transport"""
    return await transport.post(request)
