# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for MCPDispatcher

Tests the connection state machine, id correlation and the error envelope.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from n8n_mcp.core.config import Settings
from n8n_mcp.dispatcher import ConnectionState, MCPDispatcher
from n8n_mcp.mcp_exceptions import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
)
from n8n_mcp.tools.base import ToolHandler
from n8n_mcp.tools.registry import ToolRegistry


def request(method, params=None, id=1):
    message = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def tool_call(name, arguments=None, id=1):
    return request("tools/call", {"name": name, "arguments": arguments or {}}, id=id)


class BoomHandler(ToolHandler):
    name = "boom"
    description = "Always raises"
    input_schema = {"type": "object", "properties": {}}

    async def execute(self, args):
        raise RuntimeError("kaboom")


class TestInitialize:
    """Test initialize"""

    @pytest.mark.asyncio
    async def test_initialize_result(self, dispatcher, bare_context):
        """Should return version, capabilities and server info"""
        response = await dispatcher.dispatch(request("initialize", {"protocolVersion": "2024-11-05"}), bare_context)

        result = response["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["capabilities"] == {"tools": {}, "resources": {}}
        assert result["serverInfo"] == {"name": "n8n-mcp-server", "version": "0.1.3"}
        assert bare_context.state is ConnectionState.INITIALIZED

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, dispatcher, bare_context):
        """Should return the same result when repeated"""
        first = await dispatcher.dispatch(request("initialize", {}, id=1), bare_context)
        second = await dispatcher.dispatch(request("initialize", {}, id=2), bare_context)

        assert first["result"] == second["result"]
        assert bare_context.state is ConnectionState.INITIALIZED

    @pytest.mark.asyncio
    async def test_unsupported_version_falls_back(self, dispatcher, bare_context):
        """Should answer with the default version for unknown requests"""
        response = await dispatcher.dispatch(request("initialize", {"protocolVersion": "1999-01-01"}), bare_context)

        assert response["result"]["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_initialize_needs_no_config(self, dispatcher, bare_context):
        """Should not resolve n8n configuration"""
        response = await dispatcher.dispatch(request("initialize"), bare_context)

        assert "result" in response


class TestIdCorrelation:
    """Test id round-trip"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_id", [1, 0, 1.5, "abc", "req-42", 2 ** 40])
    async def test_id_round_trips(self, dispatcher, bare_context, request_id):
        """Should echo the request id verbatim"""
        response = await dispatcher.dispatch(request("tools/list", id=request_id), bare_context)

        assert response["id"] == request_id
        assert type(response["id"]) is type(request_id)

    @pytest.mark.asyncio
    async def test_boolean_id_rejected(self, dispatcher, bare_context):
        """Should not treat true as a numeric id"""
        response = await dispatcher.dispatch(request("ping", id=True), bare_context)

        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_error_keeps_id(self, dispatcher, bare_context):
        """Should echo the id on errors too"""
        response = await dispatcher.dispatch(request("nope", id="x-1"), bare_context)

        assert response["id"] == "x-1"
        assert response["error"]["code"] == METHOD_NOT_FOUND


class TestNotifications:
    """Test notifications"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", [
        "notifications/initialized",
        "notifications/cancelled",
        "notifications/anything",
    ])
    async def test_no_response(self, dispatcher, bare_context, method):
        """Should never answer a notification"""
        assert await dispatcher.dispatch({"jsonrpc": "2.0", "method": method}, bare_context) is None

    @pytest.mark.asyncio
    async def test_unknown_method_notification_gets_no_error(self, dispatcher, bare_context):
        """Should stay silent even when the method is unknown"""
        assert await dispatcher.dispatch({"jsonrpc": "2.0", "method": "nope"}, bare_context) is None


class TestMethods:
    """Test simple methods"""

    @pytest.mark.asyncio
    async def test_tools_list_before_initialize(self, dispatcher, bare_context):
        """Should serve tools/list to uninitialized connections"""
        response = await dispatcher.dispatch(request("tools/list"), bare_context)

        assert len(response["result"]["tools"]) == 11
        assert bare_context.state is ConnectionState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_ping(self, dispatcher, bare_context):
        """Should answer ping with an empty result"""
        assert (await dispatcher.dispatch(request("ping"), bare_context))["result"] == {}

    @pytest.mark.asyncio
    async def test_prompts_list(self, dispatcher, bare_context):
        """Should answer prompts/list with no prompts"""
        assert (await dispatcher.dispatch(request("prompts/list"), bare_context))["result"] == {"prompts": []}

    @pytest.mark.asyncio
    async def test_prompts_list_through_tools_call(self, dispatcher, bare_context):
        """Should acknowledge the prompts/list shim without config"""
        response = await dispatcher.dispatch(tool_call("prompts/list"), bare_context)

        assert response["result"]["content"][0]["text"] == "Prompts list acknowledged."

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher, bare_context):
        """Should return method not found"""
        response = await dispatcher.dispatch(request("does/not/exist"), bare_context)

        assert response["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_request(self, dispatcher, bare_context):
        """Should reject a message without method"""
        response = await dispatcher.dispatch({"jsonrpc": "2.0", "id": 5}, bare_context)

        assert response["id"] == 5
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_closed_connection_rejects(self, dispatcher, bare_context):
        """Should reject requests after close"""
        bare_context.close()

        response = await dispatcher.dispatch(request("tools/list"), bare_context)

        assert response["error"]["code"] == INVALID_REQUEST


class TestToolsCall:
    """Test tools/call"""

    @pytest.mark.asyncio
    async def test_unknown_tool_makes_no_upstream_call(self, dispatcher, configured_context, fake_n8n):
        """Should return -32601 with the name and never contact n8n"""
        response = await dispatcher.dispatch(tool_call("does_not_exist"), configured_context)

        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert response["error"]["data"] == {"name": "does_not_exist"}
        assert fake_n8n.requests == []

    @pytest.mark.asyncio
    async def test_unknown_tool_checked_before_config(self, dispatcher, bare_context):
        """Should report the unknown tool even without configuration"""
        response = await dispatcher.dispatch(tool_call("does_not_exist"), bare_context)

        assert response["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_config_never_invokes_handler(self, dispatcher, bare_context):
        """Should fail with invalid params before any handler runs"""
        with patch("n8n_mcp.tools.workflow.ListWorkflowsHandler.execute", new_callable=AsyncMock) as execute:
            response = await dispatcher.dispatch(tool_call("list_workflows"), bare_context)

        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"] == {"missing": ["n8n.apiUrl", "n8n.apiKey"]}
        execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_partial_config_rejected(self, dispatcher, context_factory):
        """Should fail when only the url is present"""
        context = context_factory({"n8n.apiUrl": "https://n8n.example.com/api/v1"})

        response = await dispatcher.dispatch(tool_call("list_workflows"), context)

        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"] == {"missing": ["n8n.apiKey"]}

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, dispatcher, configured_context, fake_n8n):
        """Should validate arguments against the schema"""
        response = await dispatcher.dispatch(tool_call("get_workflow", {}), configured_context)

        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"]["name"] == "get_workflow"
        assert fake_n8n.requests == []

    @pytest.mark.asyncio
    async def test_non_object_arguments(self, dispatcher, configured_context):
        """Should reject non-object arguments"""
        message = request("tools/call", {"name": "list_workflows", "arguments": [1]})

        response = await dispatcher.dispatch(message, configured_context)

        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_successful_call(self, dispatcher, configured_context, fake_n8n):
        """Should return the handler result and use request config"""
        fake_n8n.add("GET", "/api/v1/workflows", payload={"data": [{"id": "1", "name": "A"}]})

        response = await dispatcher.dispatch(tool_call("list_workflows", id=7), configured_context)

        assert response["id"] == 7
        assert response["result"]["isError"] is False
        assert json.loads(response["result"]["content"][0]["text"])[0]["name"] == "A"
        assert fake_n8n.requests[0].headers["X-N8N-API-KEY"] == "test-api-key"

    @pytest.mark.asyncio
    async def test_env_config(self, dispatcher, n8n_env, fake_n8n, context_factory):
        """Should fall back to environment credentials"""
        from n8n_mcp.core.config import get_env_defaults

        fake_n8n.add("GET", "/api/v1/workflows", payload={"data": []})
        context = context_factory(env_defaults=get_env_defaults())

        response = await dispatcher.dispatch(tool_call("list_workflows"), context)

        assert response["result"]["isError"] is False

    @pytest.mark.asyncio
    async def test_api_error_is_soft(self, dispatcher, configured_context):
        """Should report n8n failures as isError results"""
        response = await dispatcher.dispatch(tool_call("get_workflow", {"id": "1"}), configured_context)

        assert "error" not in response
        assert response["result"]["isError"] is True

    @pytest.mark.asyncio
    async def test_handler_exception_is_soft_error(self, configured_context):
        """Should catch handler exceptions at the dispatch boundary"""
        dispatcher = MCPDispatcher(Settings(), tool_registry=ToolRegistry([BoomHandler]))

        response = await dispatcher.dispatch(tool_call("boom", id=11), configured_context)

        assert response["id"] == 11
        assert response["result"] == {
            "content": [{"type": "text", "text": "Error: kaboom"}],
            "isError": True,
        }


class TestInternalErrors:
    """Test the -32603 boundary"""

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_detail(self, dispatcher, bare_context):
        """Should return a generic internal error"""
        with patch.object(dispatcher.registry, "list", MagicMock(side_effect=RuntimeError("secret detail"))):
            response = await dispatcher.dispatch(request("tools/list"), bare_context)

        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == "Internal error"
        assert "data" not in response["error"]

    @pytest.mark.asyncio
    async def test_debug_includes_detail(self, dispatcher, context_factory):
        """Should include the detail when debug is on"""
        context = context_factory({"debug": "true"})

        with patch.object(dispatcher.registry, "list", MagicMock(side_effect=RuntimeError("secret detail"))):
            response = await dispatcher.dispatch(request("tools/list"), context)

        assert response["error"]["data"] == "RuntimeError: secret detail"


class TestResources:
    """Test resources methods"""

    @pytest.mark.asyncio
    async def test_resources_list(self, dispatcher, bare_context):
        """Should list static resources without config"""
        response = await dispatcher.dispatch(request("resources/list"), bare_context)

        assert len(response["result"]["resources"]) == 2

    @pytest.mark.asyncio
    async def test_resource_templates_list(self, dispatcher, bare_context):
        """Should list templates"""
        response = await dispatcher.dispatch(request("resources/templates/list"), bare_context)

        assert len(response["result"]["resourceTemplates"]) == 2

    @pytest.mark.asyncio
    async def test_read_unknown_uri(self, dispatcher, configured_context):
        """Should return invalid params for unknown URIs"""
        response = await dispatcher.dispatch(request("resources/read", {"uri": "n8n://nope"}), configured_context)

        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"] == {"uri": "n8n://nope"}

    @pytest.mark.asyncio
    async def test_read_api_failure(self, dispatcher, configured_context):
        """Should return -32603 with the upstream status"""
        response = await dispatcher.dispatch(
            request("resources/read", {"uri": "n8n://workflow/9"}), configured_context
        )

        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["data"]["status"] == 404

    @pytest.mark.asyncio
    async def test_read_success(self, dispatcher, configured_context, fake_n8n):
        """Should return resource contents"""
        fake_n8n.add("GET", "/api/v1/workflows/9", payload={"id": "9"})

        response = await dispatcher.dispatch(
            request("resources/read", {"uri": "n8n://workflow/9"}), configured_context
        )

        assert response["result"]["contents"][0]["uri"] == "n8n://workflow/9"


class TestBatches:
    """Test dispatch_payload"""

    @pytest.mark.asyncio
    async def test_batch_responses_in_order(self, dispatcher, bare_context):
        """Should answer each request in a batch and skip notifications"""
        responses = await dispatcher.dispatch_payload([
            request("ping", id=1),
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            request("tools/list", id=2),
        ], bare_context)

        assert [r["id"] for r in responses] == [1, 2]

    @pytest.mark.asyncio
    async def test_notification_only_batch(self, dispatcher, bare_context):
        """Should return None when nothing needs answering"""
        payload = [{"jsonrpc": "2.0", "method": "notifications/initialized"}]

        assert await dispatcher.dispatch_payload(payload, bare_context) is None

    @pytest.mark.asyncio
    async def test_empty_batch(self, dispatcher, bare_context):
        """Should reject an empty batch"""
        response = await dispatcher.dispatch_payload([], bare_context)

        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_single_message(self, dispatcher, bare_context):
        """Should return a single response for a single message"""
        response = await dispatcher.dispatch_payload(request("ping", id=3), bare_context)

        assert response["id"] == 3
