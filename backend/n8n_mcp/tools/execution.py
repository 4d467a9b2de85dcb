# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution tools: list, get, delete, plus run_webhook.
"""

from typing import Any, Dict

from n8n_mcp.n8n_client import N8nApiClient
from n8n_mcp.tools.base import ToolHandler, ToolCallResult, id_schema, json_result, text_result

EXECUTION_STATUSES = ["error", "success", "waiting", "running", "canceled"]


def summarize_execution(execution: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": execution.get("id"),
        "workflowId": execution.get("workflowId"),
        "status": execution.get("status") or ("success" if execution.get("finished") else "unknown"),
        "mode": execution.get("mode"),
        "startedAt": execution.get("startedAt"),
        "stoppedAt": execution.get("stoppedAt"),
    }


class ListExecutionsHandler(ToolHandler):
    name = "list_executions"
    description = "List workflow executions, optionally filtered by workflow and status"
    input_schema = {
        "type": "object",
        "properties": {
            "workflowId": {"type": "string", "description": "Only executions of this workflow"},
            "status": {
                "type": "string",
                "enum": EXECUTION_STATUSES,
                "description": "Only executions with this status",
            },
            "limit": {
                "type": "number",
                "minimum": 1,
                "maximum": 250,
                "description": "Maximum number of executions to return",
            },
        },
        "required": [],
    }

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        limit = args.get("limit")
        executions = await client.list_executions(
            workflow_id=args.get("workflowId"),
            status=args.get("status"),
            limit=int(limit) if limit else None,
        )
        return json_result([summarize_execution(e) for e in executions])


class GetExecutionHandler(ToolHandler):
    name = "get_execution"
    description = "Retrieve an execution by ID, including its run data"
    input_schema = id_schema("Execution ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        return json_result(await client.get_execution(args["id"]))


class DeleteExecutionHandler(ToolHandler):
    name = "delete_execution"
    description = "Delete an execution by ID"
    input_schema = id_schema("Execution ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        await client.delete_execution(args["id"])
        return text_result(f"Execution {args['id']} deleted successfully")


class RunWebhookHandler(ToolHandler):
    name = "run_webhook"
    description = "Execute a workflow through its webhook trigger"
    input_schema = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Webhook path, the part after /webhook/ (e.g. \"hello-world\")",
            },
            "data": {"type": "object", "description": "JSON payload sent to the webhook"},
            "headers": {
                "type": "object",
                "additionalProperties": {"type": "string"},
                "description": "Extra HTTP headers for the webhook request",
            },
        },
        "required": ["path"],
    }

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        response = await client.run_webhook(
            args["path"],
            data=args.get("data"),
            headers=args.get("headers"),
        )
        return json_result(response)
