# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the n8n MCP server.

Runtime objects are created in the application lifespan and stored in
app.state; these dependencies hand them to the routes.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from n8n_mcp.core.config import Settings
from n8n_mcp.core.logging import get_logger

logger = get_logger(__name__)


def get_current_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_streamable_transport(request: Request):
    return request.app.state.streamable_transport


def get_sse_transport(request: Request):
    """Direct SSE adapter or the bridge, depending on MCP_SSE_MODE."""
    return request.app.state.sse_transport


def _presented_key(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.headers.get("x-api-key") or request.query_params.get("apiKey")


def require_access_key(
    request: Request,
    settings: Settings = Depends(get_current_settings),
) -> None:
    """
    Enforce MCP_AUTH_KEY when it is configured.

    Raises:
        HTTPException: 401 when the key is missing or wrong
    """
    if not settings.auth_key:
        return

    presented = _presented_key(request)
    if presented and secrets.compare_digest(presented, settings.auth_key):
        return

    logger.warning(f"Rejected unauthenticated request to {request.url.path}")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
