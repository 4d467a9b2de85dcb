# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow tools: list, get, create, update, delete, activate, deactivate.
"""

from typing import Any, Dict

from n8n_mcp.n8n_client import N8nApiClient
from n8n_mcp.tools.base import ToolHandler, ToolCallResult, id_schema, json_result, text_result


def summarize_workflow(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """Compact view used in listings"""
    return {
        "id": workflow.get("id"),
        "name": workflow.get("name"),
        "active": workflow.get("active", False),
        "createdAt": workflow.get("createdAt"),
        "updatedAt": workflow.get("updatedAt"),
        "nodeCount": len(workflow.get("nodes") or []),
    }


class ListWorkflowsHandler(ToolHandler):
    name = "list_workflows"
    description = "List all workflows in n8n, optionally filtered by active status"
    input_schema = {
        "type": "object",
        "properties": {
            "active": {
                "type": "boolean",
                "description": "Only return active (true) or inactive (false) workflows",
            },
        },
        "required": [],
    }

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        workflows = await client.list_workflows(active=args.get("active"))
        return json_result([summarize_workflow(w) for w in workflows])


class GetWorkflowHandler(ToolHandler):
    name = "get_workflow"
    description = "Retrieve a workflow by ID"
    input_schema = id_schema("Workflow ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        return json_result(await client.get_workflow(args["id"]))


class CreateWorkflowHandler(ToolHandler):
    name = "create_workflow"
    description = "Create a new workflow in n8n"
    input_schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Name of the workflow"},
            "nodes": {
                "type": "array",
                "items": {"type": "object"},
                "description": "Workflow nodes",
            },
            "connections": {"type": "object", "description": "Connections between nodes"},
            "active": {"type": "boolean", "description": "Activate the workflow after creation"},
            "settings": {"type": "object", "description": "Workflow settings"},
        },
        "required": ["name"],
    }

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        workflow = {
            "name": args["name"],
            "nodes": args.get("nodes", []),
            "connections": args.get("connections", {}),
            "settings": args.get("settings", {}),
        }
        created = await client.create_workflow(workflow)

        if args.get("active") and created.get("id"):
            created = await client.activate_workflow(created["id"])

        return json_result(created)


class UpdateWorkflowHandler(ToolHandler):
    name = "update_workflow"
    description = "Update an existing workflow; fields not supplied keep their current value"
    input_schema = {
        "type": "object",
        "properties": {
            "id": {"type": "string", "description": "Workflow ID"},
            "workflow": {"type": "object", "description": "Full or partial workflow definition"},
            "name": {"type": "string", "description": "New workflow name"},
            "nodes": {"type": "array", "items": {"type": "object"}, "description": "Workflow nodes"},
            "connections": {"type": "object", "description": "Connections between nodes"},
            "active": {"type": "boolean", "description": "Activate or deactivate the workflow"},
        },
        "required": ["id"],
    }

    UPDATABLE = ("name", "nodes", "connections", "settings")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        workflow_id = args["id"]
        current = await client.get_workflow(workflow_id)

        changes = dict(args.get("workflow") or {})
        for key in ("name", "nodes", "connections"):
            if key in args:
                changes[key] = args[key]

        # The n8n API rejects read-only fields on PUT
        body = {key: changes.get(key, current.get(key)) for key in self.UPDATABLE}
        body["settings"] = body.get("settings") or {}
        updated = await client.update_workflow(workflow_id, body)

        if "active" in args and args["active"] != updated.get("active", current.get("active")):
            if args["active"]:
                updated = await client.activate_workflow(workflow_id)
            else:
                updated = await client.deactivate_workflow(workflow_id)

        return json_result(updated)


class DeleteWorkflowHandler(ToolHandler):
    name = "delete_workflow"
    description = "Delete a workflow by ID"
    input_schema = id_schema("Workflow ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        await client.delete_workflow(args["id"])
        return text_result(f"Workflow {args['id']} deleted successfully")


class ActivateWorkflowHandler(ToolHandler):
    name = "activate_workflow"
    description = "Activate a workflow by ID"
    input_schema = id_schema("Workflow ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        workflow = await client.activate_workflow(args["id"])
        return json_result(summarize_workflow(workflow) if workflow else {"id": args["id"], "active": True})


class DeactivateWorkflowHandler(ToolHandler):
    name = "deactivate_workflow"
    description = "Deactivate a workflow by ID"
    input_schema = id_schema("Workflow ID")

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        workflow = await client.deactivate_workflow(args["id"])
        return json_result(summarize_workflow(workflow) if workflow else {"id": args["id"], "active": False})
