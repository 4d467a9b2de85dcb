# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for n8n resources"""

import json

import pytest

from n8n_mcp.core.errors import N8nApiError, NotFoundError
from n8n_mcp.resources import (
    ResourceReader,
    execution_stats,
    is_known_uri,
    list_resource_templates,
    list_resources,
)


def test_list_resources():
    """Test static resource listing"""
    uris = [r["uri"] for r in list_resources()]

    assert uris == ["n8n://workflows/list", "n8n://execution-stats"]


def test_list_resource_templates():
    """Test template listing"""
    templates = [t["uriTemplate"] for t in list_resource_templates()]

    assert templates == ["n8n://workflow/{id}", "n8n://execution/{id}"]


@pytest.mark.parametrize("uri,known", [
    ("n8n://workflows/list", True),
    ("n8n://execution-stats", True),
    ("n8n://workflow/abc", True),
    ("n8n://execution/12", True),
    ("n8n://workflow/", False),
    ("n8n://workflow/a/b", False),
    ("file:///etc/passwd", False),
])
def test_is_known_uri(uri, known):
    """Test URI matching"""
    assert is_known_uri(uri) is known


def test_execution_stats():
    """Test execution aggregation"""
    stats = execution_stats([
        {"status": "success"},
        {"status": "success"},
        {"status": "error"},
        {"finished": True},
    ])

    assert stats["total"] == 4
    assert stats["byStatus"] == {"success": 3, "error": 1}
    assert stats["successRate"] == 75.0


def test_execution_stats_empty():
    """Test empty aggregation has no rate"""
    assert execution_stats([])["successRate"] is None


@pytest.mark.asyncio
async def test_read_workflow_list(api_config, fake_n8n):
    """Test workflows resource content"""
    fake_n8n.add("GET", "/api/v1/workflows", payload={"data": [{"id": "1", "name": "A", "nodes": []}]})

    result = await ResourceReader(api_config, fake_n8n.client_factory()).read("n8n://workflows/list")

    content = result["contents"][0]
    assert content["uri"] == "n8n://workflows/list"
    assert content["mimeType"] == "application/json"
    assert json.loads(content["text"])["count"] == 1


@pytest.mark.asyncio
async def test_read_execution_stats_requests_sample(api_config, fake_n8n):
    """Test stats resource queries recent executions"""
    fake_n8n.add("GET", "/api/v1/executions", payload={"data": [{"status": "error"}]})

    result = await ResourceReader(api_config, fake_n8n.client_factory()).read("n8n://execution-stats")

    assert json.loads(result["contents"][0]["text"])["byStatus"] == {"error": 1}
    assert fake_n8n.requests[0].url.params["limit"] == "100"


@pytest.mark.asyncio
async def test_read_workflow_template(api_config, fake_n8n):
    """Test templated workflow resource"""
    fake_n8n.add("GET", "/api/v1/workflows/7", payload={"id": "7"})

    result = await ResourceReader(api_config, fake_n8n.client_factory()).read("n8n://workflow/7")

    assert json.loads(result["contents"][0]["text"]) == {"id": "7"}


@pytest.mark.asyncio
async def test_read_unknown_uri(api_config, fake_n8n):
    """Test unknown URIs raise NotFoundError"""
    with pytest.raises(NotFoundError):
        await ResourceReader(api_config, fake_n8n.client_factory()).read("n8n://nothing")


@pytest.mark.asyncio
async def test_read_api_failure(api_config, fake_n8n):
    """Test API failures propagate as N8nApiError"""
    with pytest.raises(N8nApiError):
        await ResourceReader(api_config, fake_n8n.client_factory()).read("n8n://execution/404")
