# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP resources for n8n workflows and executions.

Static resources:
- n8n://workflows/list     all workflows (summary)
- n8n://execution-stats    execution counts by status

Resource templates:
- n8n://workflow/{id}
- n8n://execution/{id}
"""

import json
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List

from n8n_mcp.config_resolver import ApiConfig
from n8n_mcp.core.errors import NotFoundError
from n8n_mcp.n8n_client import N8nApiClient
from n8n_mcp.tools.base import ClientFactory
from n8n_mcp.tools.workflow import summarize_workflow

WORKFLOWS_URI = "n8n://workflows/list"
EXECUTION_STATS_URI = "n8n://execution-stats"
WORKFLOW_TEMPLATE = "n8n://workflow/{id}"
EXECUTION_TEMPLATE = "n8n://execution/{id}"

_WORKFLOW_RE = re.compile(r"^n8n://workflow/([^/]+)$")
_EXECUTION_RE = re.compile(r"^n8n://execution/([^/]+)$")

MIME_TYPE = "application/json"
STATS_SAMPLE_SIZE = 100


def list_resources() -> List[Dict[str, Any]]:
    return [
        {
            "uri": WORKFLOWS_URI,
            "name": "n8n Workflows",
            "description": "List of all workflows in the n8n instance",
            "mimeType": MIME_TYPE,
        },
        {
            "uri": EXECUTION_STATS_URI,
            "name": "n8n Execution Statistics",
            "description": "Summary statistics of recent workflow executions",
            "mimeType": MIME_TYPE,
        },
    ]


def list_resource_templates() -> List[Dict[str, Any]]:
    return [
        {
            "uriTemplate": WORKFLOW_TEMPLATE,
            "name": "n8n Workflow Details",
            "description": "Detailed information about a specific n8n workflow",
            "mimeType": MIME_TYPE,
        },
        {
            "uriTemplate": EXECUTION_TEMPLATE,
            "name": "n8n Execution Details",
            "description": "Detailed information about a specific workflow execution",
            "mimeType": MIME_TYPE,
        },
    ]


def execution_stats(executions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate a page of executions into counts"""
    counts = Counter(e.get("status") or ("success" if e.get("finished") else "unknown") for e in executions)
    total = len(executions)
    return {
        "total": total,
        "byStatus": dict(counts),
        "successRate": round(counts.get("success", 0) / total * 100, 1) if total else None,
        "sampleSize": STATS_SAMPLE_SIZE,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }


class ResourceReader:
    """Reads one resource URI against the n8n API"""

    def __init__(self, config: ApiConfig, client_factory: ClientFactory = N8nApiClient):
        self.config = config
        self.client_factory = client_factory

    async def read(self, uri: str) -> Dict[str, Any]:
        """
        Returns:
            {"contents": [{"uri", "mimeType", "text"}]}

        Raises:
            NotFoundError: URI not recognised
            N8nApiError: API call failed
        """
        async with self.client_factory(self.config) as client:
            payload = await self._fetch(client, uri)

        return {
            "contents": [
                {
                    "uri": uri,
                    "mimeType": MIME_TYPE,
                    "text": json.dumps(payload, indent=2, default=str),
                }
            ]
        }

    async def _fetch(self, client: N8nApiClient, uri: str) -> Any:
        if uri == WORKFLOWS_URI:
            workflows = await client.list_workflows()
            return {"workflows": [summarize_workflow(w) for w in workflows], "count": len(workflows)}

        if uri == EXECUTION_STATS_URI:
            executions = await client.list_executions(limit=STATS_SAMPLE_SIZE)
            return execution_stats(executions)

        match = _WORKFLOW_RE.match(uri)
        if match:
            return await client.get_workflow(match.group(1))

        match = _EXECUTION_RE.match(uri)
        if match:
            return await client.get_execution(match.group(1))

        raise NotFoundError("Resource", uri)


def is_known_uri(uri: str) -> bool:
    return (
        uri in (WORKFLOWS_URI, EXECUTION_STATS_URI)
        or bool(_WORKFLOW_RE.match(uri))
        or bool(_EXECUTION_RE.match(uri))
    )
