# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Dispatcher

Routes parsed JSON-RPC messages to protocol behaviour and tool handlers and
guarantees one envelope per request id, whatever the transport.

Connection lifecycle (per logical connection):

    UNINITIALIZED -> INITIALIZED -> (calls)* -> CLOSED

- initialize is idempotent: a repeat returns the same result.
- tools/list, tools/call and resources/* are accepted before initialize so
  stateless HTTP clients keep working.
- A CLOSED connection rejects every further request.
"""

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from n8n_mcp.config_resolver import ConfigSource
from n8n_mcp.core.config import Settings
from n8n_mcp.core.errors import N8nApiError, NotFoundError, sanitize_error_for_user
from n8n_mcp.core.logging import get_logger, log_event
from n8n_mcp.mcp_exceptions import (
    InvalidParamsError,
    InvalidRequestError,
    InternalError,
    MCPProtocolError,
    MethodNotFoundError,
    UpstreamError,
)
from n8n_mcp.mcp_jsonrpc import (
    JSONRPCRequest,
    batch_members,
    build_error,
    build_result,
    extract_id,
    is_batch,
    parse_message,
)
from n8n_mcp.n8n_client import N8nApiClient
from n8n_mcp.resources import ResourceReader, is_known_uri, list_resource_templates, list_resources
from n8n_mcp.tools.base import ClientFactory, error_result, text_result
from n8n_mcp.tools.registry import ToolRegistry, registry as default_registry

logger = get_logger(__name__)

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")


class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


@dataclass
class ConnectionContext:
    """State the dispatcher keeps for one logical connection"""
    config_source: ConfigSource
    transport: str = "streamable-http"
    session_id: Optional[str] = None
    state: ConnectionState = ConnectionState.UNINITIALIZED
    client_info: Optional[Dict[str, Any]] = None

    def close(self) -> None:
        self.state = ConnectionState.CLOSED

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED


Method = Callable[[JSONRPCRequest, ConnectionContext], Awaitable[Dict[str, Any]]]
Reply = Union[Dict[str, Any], List[Dict[str, Any]]]


class MCPDispatcher:
    """JSON-RPC method router"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        tool_registry: Optional[ToolRegistry] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings or Settings()
        self.registry = tool_registry or default_registry
        self.client_factory = client_factory or functools.partial(
            N8nApiClient, timeout=self.settings.n8n_http_timeout
        )
        self.server_info = {
            "name": self.settings.service_name,
            "version": self.settings.service_version,
        }
        self.capabilities = {"tools": {}, "resources": {}}

        self._methods: Dict[str, Method] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "resources/list": self._resources_list,
            "resources/templates/list": self._resource_templates_list,
            "resources/read": self._resources_read,
            # Some clients call this unconditionally
            "prompts/list": self._prompts_list,
        }

    @property
    def methods(self) -> List[str]:
        return list(self._methods)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def dispatch_payload(self, payload: Any, context: ConnectionContext) -> Optional[Reply]:
        """
        Dispatch a decoded body (single message or batch).

        Returns:
            A response, a list of responses for a batch, or None when nothing
            needs answering (notifications only)
        """
        try:
            members = batch_members(payload)
        except InvalidRequestError as e:
            return build_error(None, e.code, e.message, e.data)

        responses = []
        for message in members:
            response = await self.dispatch(message, context)
            if response is not None:
                responses.append(response)

        if not is_batch(payload):
            return responses[0] if responses else None
        return responses or None

    async def dispatch(self, message: Any, context: ConnectionContext) -> Optional[Dict[str, Any]]:
        """Dispatch one decoded message; never raises"""
        try:
            request = parse_message(message)
        except MCPProtocolError as e:
            return build_error(extract_id(message), e.code, e.message, e.data)

        if request.method.startswith("notifications/"):
            self._notification(request, context)
            return None

        if context.closed:
            return self._reply(request, error=InvalidRequestError("Connection closed"))

        method = self._methods.get(request.method)
        if method is None:
            return self._reply(
                request,
                error=MethodNotFoundError(data={"method": request.method}),
            )

        try:
            result = await method(request, context)
        except MCPProtocolError as e:
            return self._reply(request, error=e)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method}")
            detail = sanitize_error_for_user(e) if self._debug(context) else None
            return self._reply(request, error=InternalError(data=detail))

        return self._reply(request, result=result)

    def _reply(
        self,
        request: JSONRPCRequest,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[MCPProtocolError] = None,
    ) -> Optional[Dict[str, Any]]:
        if request.is_notification:
            return None
        if error is not None:
            return build_error(request.id, error.code, error.message, error.data)
        return build_result(request.id, result if result is not None else {})

    def _debug(self, context: ConnectionContext) -> bool:
        return self.settings.debug or context.config_source.debug

    def _notification(self, request: JSONRPCRequest, context: ConnectionContext) -> None:
        if request.method == "notifications/cancelled":
            log_event(
                logger, "request_cancelled",
                request_id=request.params.get("requestId"),
                reason=request.params.get("reason"),
                session_id=context.session_id,
            )
        else:
            logger.debug(f"Notification {request.method} (session {context.session_id})")

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def initialize_result(self, requested_version: Optional[str] = None) -> Dict[str, Any]:
        version = requested_version if requested_version in SUPPORTED_PROTOCOL_VERSIONS else DEFAULT_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": {key: dict(value) for key, value in self.capabilities.items()},
            "serverInfo": dict(self.server_info),
        }

    async def _initialize(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        if context.state is ConnectionState.INITIALIZED:
            logger.debug(f"Repeated initialize on session {context.session_id}")
        context.client_info = request.params.get("clientInfo") or context.client_info
        context.state = ConnectionState.INITIALIZED
        return self.initialize_result(request.params.get("protocolVersion"))

    async def _ping(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        return {}

    async def _prompts_list(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        return {"prompts": []}

    async def _tools_list(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        return {"tools": self.registry.list()}

    async def _tools_call(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        name = request.params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Missing tool name")

        arguments = request.params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("Tool arguments must be an object", data={"name": name})

        # Older clients route prompts/list through tools/call
        if name == "prompts/list":
            return text_result("Prompts list acknowledged.").model_dump()

        handler_cls = self.registry.resolve(name)
        config = context.config_source.resolve()
        self.registry.validate(name, arguments)

        log_event(logger, "tool_call", tool=name, session_id=context.session_id, transport=context.transport)
        handler = handler_cls(config, self.client_factory)
        try:
            result = await handler.execute(arguments)
        except Exception as e:
            logger.exception(f"Tool {name} raised")
            result = error_result(str(e) or e.__class__.__name__)

        return result.model_dump()

    async def _resources_list(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        return {"resources": list_resources()}

    async def _resource_templates_list(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        return {"resourceTemplates": list_resource_templates()}

    async def _resources_read(self, request: JSONRPCRequest, context: ConnectionContext) -> Dict[str, Any]:
        uri = request.params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise InvalidParamsError("Missing resource uri")
        if not is_known_uri(uri):
            raise InvalidParamsError(f"Resource not found: {uri}", data={"uri": uri})

        config = context.config_source.resolve()
        reader = ResourceReader(config, self.client_factory)
        try:
            return await reader.read(uri)
        except NotFoundError as e:
            raise InvalidParamsError(e.message, data={"uri": uri})
        except N8nApiError as e:
            raise UpstreamError(
                f"Error retrieving resource: {e.message}",
                data={"status": e.status_code, "uri": uri},
            )
