# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
n8n API Client

Async wrapper around the n8n public REST API (v1) for workflows,
executions and webhooks.
"""

from typing import Any, Dict, List, Optional

import httpx

from n8n_mcp.config_resolver import ApiConfig
from n8n_mcp.core.errors import N8nApiError
from n8n_mcp.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


def webhook_base_url(api_base_url: str) -> str:
    """
    Derive the instance root from the API URL.

    >>> webhook_base_url("https://n8n.example.com/api/v1")
    'https://n8n.example.com'
    """
    url = api_base_url.rstrip("/")
    for suffix in ("/api/v1", "/api"):
        if url.endswith(suffix):
            return url[: -len(suffix)]
    return url


class N8nApiClient:
    """
    n8n REST client bound to one request's ApiConfig.

    Use as an async context manager so the connection pool is released
    when the tool call finishes.
    """

    def __init__(
        self,
        config: ApiConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "N8nApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "X-N8N-API-KEY": self.config.api_key,
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Clean up resources"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.config.api_base_url}{path}"
        if self.config.debug:
            logger.debug(f"n8n API {method} {url} params={params}")

        try:
            response = await self._get_client().request(method, url, params=params, json=json)
        except httpx.TimeoutException as e:
            raise N8nApiError(f"n8n API request timed out: {method} {path}", status_code=504) from e
        except httpx.HTTPError as e:
            raise N8nApiError(f"n8n API request failed: {e}", status_code=502) from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        if response.is_error:
            message = response.reason_phrase or "Request failed"
            try:
                payload = response.json()
                if isinstance(payload, dict) and payload.get("message"):
                    message = payload["message"]
            except ValueError:
                if response.text:
                    message = response.text[:500]
            raise N8nApiError(
                f"n8n API error ({response.status_code}): {message}",
                status_code=response.status_code,
                details={"url": str(response.request.url)},
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def list_workflows(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        params = {}
        if active is not None:
            params["active"] = "true" if active else "false"
        payload = await self._request("GET", "/workflows", params=params or None)
        return _data(payload)

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/workflows/{workflow_id}")

    async def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/workflows", json=workflow)

    async def update_workflow(self, workflow_id: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/workflows/{workflow_id}", json=workflow)

    async def delete_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/workflows/{workflow_id}")

    async def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/workflows/{workflow_id}/activate")

    async def deactivate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/workflows/{workflow_id}/deactivate")

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if workflow_id:
            params["workflowId"] = workflow_id
        if status:
            params["status"] = status
        if limit:
            params["limit"] = limit
        payload = await self._request("GET", "/executions", params=params or None)
        return _data(payload)

    async def get_execution(self, execution_id: str, include_data: bool = True) -> Dict[str, Any]:
        params = {"includeData": "true"} if include_data else None
        return await self._request("GET", f"/executions/{execution_id}", params=params)

    async def delete_execution(self, execution_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/executions/{execution_id}")

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def run_webhook(
        self,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """POST to <instance>/webhook/<path>, with basic auth when configured"""
        url = f"{webhook_base_url(self.config.api_base_url)}/webhook/{path.lstrip('/')}"

        auth = None
        if self.config.webhook_username and self.config.webhook_password:
            auth = httpx.BasicAuth(self.config.webhook_username, self.config.webhook_password)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=data or {}, headers=headers, auth=auth)
        except httpx.TimeoutException as e:
            raise N8nApiError(f"Webhook request timed out: {path}", status_code=504) from e
        except httpx.HTTPError as e:
            raise N8nApiError(f"Webhook request failed: {e}", status_code=502) from e

        return self._handle_response(response)


def _data(payload: Any) -> List[Dict[str, Any]]:
    """List endpoints wrap results in {"data": [...], "nextCursor": ...}"""
    if isinstance(payload, dict):
        return payload.get("data", [])
    if isinstance(payload, list):
        return payload
    return []
