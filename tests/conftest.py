# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared test fixtures.

n8n is never contacted: API clients are built on httpx.MockTransport and
record every request they receive.
"""

import functools
import json
import os
import sys
from typing import Any, Callable, Dict, List

import httpx
import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from n8n_mcp.config_resolver import ApiConfig, ConfigSource
from n8n_mcp.core.config import Settings
from n8n_mcp.dispatcher import ConnectionContext, MCPDispatcher
from n8n_mcp.n8n_client import N8nApiClient

API_URL = "https://n8n.example.com/api/v1"
API_KEY = "test-api-key"

ENV_VARS = (
    "N8N_API_URL",
    "N8N_API_KEY",
    "N8N_WEBHOOK_USERNAME",
    "N8N_WEBHOOK_PASSWORD",
    "DEBUG",
)


class FakeN8n:
    """
    Programmable n8n API.

    Routes are keyed by (method, path); unmatched requests get 404.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]] = {}

    def add(self, method: str, path: str, status_code: int = 200, payload: Any = None) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=payload if payload is not None else {})
        self.routes[(method, path)] = respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self) -> Callable[[ApiConfig], N8nApiClient]:
        return functools.partial(N8nApiClient, transport=self.transport)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Tests start without n8n credentials in the environment"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def n8n_env(monkeypatch):
    monkeypatch.setenv("N8N_API_URL", API_URL)
    monkeypatch.setenv("N8N_API_KEY", API_KEY)


@pytest.fixture
def api_config():
    return ApiConfig(api_base_url=API_URL, api_key=API_KEY)


@pytest.fixture
def fake_n8n():
    return FakeN8n()


@pytest.fixture
def settings():
    return Settings(
        session_sweep_probability=0.0,
        sse_keepalive_interval=0.05,
        sse_max_lifetime=0.3,
    )


@pytest.fixture
def dispatcher(settings, fake_n8n):
    return MCPDispatcher(settings, client_factory=fake_n8n.client_factory())


def make_context(query_params=None, env_defaults=None, header_params=None) -> ConnectionContext:
    return ConnectionContext(
        config_source=ConfigSource(
            env_defaults=env_defaults or {},
            query_params=query_params or {},
            header_params=header_params or {},
        )
    )


@pytest.fixture
def configured_context():
    """Connection whose request carried full n8n credentials"""
    return make_context({"n8n.apiUrl": API_URL, "n8n.apiKey": API_KEY})


@pytest.fixture
def bare_context():
    """Connection with no configuration at all"""
    return make_context()


@pytest.fixture
def context_factory():
    return make_context
