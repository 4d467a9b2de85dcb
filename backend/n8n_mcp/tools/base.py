# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Base Tool Handler

Every tool returns a ToolCallResult, whatever transport invoked it.
n8n API failures become soft errors (isError=True) visible to the client.
"""

import json
from typing import Any, Callable, ClassVar, Dict, List, Literal

from pydantic import BaseModel

from n8n_mcp.config_resolver import ApiConfig
from n8n_mcp.core.errors import N8nApiError
from n8n_mcp.core.logging import get_logger
from n8n_mcp.n8n_client import N8nApiClient

logger = get_logger(__name__)

ClientFactory = Callable[[ApiConfig], N8nApiClient]


class TextContent(BaseModel):
    """MCP text content item"""
    type: Literal["text"] = "text"
    text: str


class ToolCallResult(BaseModel):
    """Uniform tool output"""
    content: List[TextContent]
    isError: bool = False


class ToolDefinition(BaseModel):
    """MCP Tool Definition"""
    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_mcp(self) -> Dict[str, Any]:
        # Wire format uses camelCase
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def text_result(text: str, is_error: bool = False) -> ToolCallResult:
    return ToolCallResult(content=[TextContent(text=text)], isError=is_error)


def json_result(payload: Any) -> ToolCallResult:
    return text_result(json.dumps(payload, indent=2, default=str))


def error_result(message: str) -> ToolCallResult:
    return text_result(f"Error: {message}", is_error=True)


def id_schema(description: str) -> Dict[str, Any]:
    """Schema for tools that take a single string id"""
    return {
        "type": "object",
        "properties": {
            "id": {"type": "string", "description": description},
        },
        "required": ["id"],
    }


class ToolHandler:
    """
    Base class for tool handlers.

    Subclasses set name, description and input_schema and implement run().
    """

    name: ClassVar[str]
    description: ClassVar[str]
    input_schema: ClassVar[Dict[str, Any]]

    def __init__(self, config: ApiConfig, client_factory: ClientFactory = N8nApiClient):
        self.config = config
        self.client_factory = client_factory

    @classmethod
    def definition(cls) -> ToolDefinition:
        return ToolDefinition(
            name=cls.name,
            description=cls.description,
            input_schema=cls.input_schema,
        )

    async def execute(self, args: Dict[str, Any]) -> ToolCallResult:
        """Run the tool, translating n8n API failures into soft errors"""
        try:
            async with self.client_factory(self.config) as client:
                return await self.run(client, args)
        except N8nApiError as e:
            logger.warning(f"Tool {self.name} failed: {e.message}")
            return error_result(e.message)

    async def run(self, client: N8nApiClient, args: Dict[str, Any]) -> ToolCallResult:
        raise NotImplementedError
