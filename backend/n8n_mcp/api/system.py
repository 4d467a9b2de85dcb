# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
System API - Health and server information

Endpoints:
- GET /health - Liveness check
- GET / - Server name, version and endpoint map
- OPTIONS /{path} - Bare OPTIONS (CORS preflights are answered by the middleware)
"""

from fastapi import APIRouter, Depends, Response

from n8n_mcp.core.config import Settings
from n8n_mcp.core.dependencies import get_current_settings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(settings: Settings = Depends(get_current_settings)):
    """Liveness check"""
    return {"status": "ok", "service": settings.service_name}


@router.get("/")
async def root(settings: Settings = Depends(get_current_settings)):
    """Server information"""
    return {
        "message": "n8n MCP Server",
        "version": settings.service_version,
        "endpoints": {
            "health": "/health",
            "mcp": "/mcp",
            "sse": "/mcp/sse",
        },
        "sseMode": settings.sse_mode,
    }


@router.options("/{path:path}", include_in_schema=False)
async def options(path: str):
    return Response(status_code=200)
