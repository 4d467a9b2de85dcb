# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Registry

Static, read-only table from tool name to handler class. Arguments are
validated against the advertised inputSchema before a handler runs.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Type

from jsonschema import Draft7Validator

from n8n_mcp.mcp_exceptions import InvalidParamsError, MethodNotFoundError
from n8n_mcp.tools.base import ToolHandler
from n8n_mcp.tools.execution import (
    ListExecutionsHandler,
    GetExecutionHandler,
    DeleteExecutionHandler,
    RunWebhookHandler,
)
from n8n_mcp.tools.workflow import (
    ListWorkflowsHandler,
    GetWorkflowHandler,
    CreateWorkflowHandler,
    UpdateWorkflowHandler,
    DeleteWorkflowHandler,
    ActivateWorkflowHandler,
    DeactivateWorkflowHandler,
)

DEFAULT_HANDLERS = (
    ListWorkflowsHandler,
    GetWorkflowHandler,
    CreateWorkflowHandler,
    UpdateWorkflowHandler,
    DeleteWorkflowHandler,
    ActivateWorkflowHandler,
    DeactivateWorkflowHandler,
    ListExecutionsHandler,
    GetExecutionHandler,
    DeleteExecutionHandler,
    RunWebhookHandler,
)


class ToolRegistry:
    """Name -> handler class lookup plus discovery metadata"""

    def __init__(self, handlers: Iterable[Type[ToolHandler]] = DEFAULT_HANDLERS):
        table: Dict[str, Type[ToolHandler]] = {}
        validators: Dict[str, Draft7Validator] = {}
        for handler in handlers:
            if handler.name in table:
                raise ValueError(f"Duplicate tool name: {handler.name}")
            Draft7Validator.check_schema(handler.input_schema)
            table[handler.name] = handler
            validators[handler.name] = Draft7Validator(handler.input_schema)

        self._handlers: Mapping[str, Type[ToolHandler]] = MappingProxyType(table)
        self._validators: Mapping[str, Draft7Validator] = MappingProxyType(validators)
        self._metadata = tuple(h.definition().to_mcp() for h in table.values())

    def list(self) -> List[Dict[str, Any]]:
        """Tool metadata for tools/list"""
        return [dict(tool) for tool in self._metadata]

    def names(self) -> List[str]:
        return list(self._handlers)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def resolve(self, name: str) -> Type[ToolHandler]:
        """
        Raises:
            MethodNotFoundError: unknown tool, with the name in data
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise MethodNotFoundError(f"Unknown tool: {name}", data={"name": name})
        return handler

    def validate(self, name: str, arguments: Dict[str, Any]) -> None:
        """
        Raises:
            InvalidParamsError: arguments do not match the tool's inputSchema
        """
        validator = self._validators[name]
        errors = sorted(validator.iter_errors(arguments), key=lambda e: list(e.absolute_path))
        if errors:
            raise InvalidParamsError(
                f"Invalid arguments for tool {name}",
                data={
                    "name": name,
                    "errors": [
                        {
                            "path": "/".join(str(p) for p in error.absolute_path),
                            "message": error.message,
                        }
                        for error in errors
                    ],
                },
            )


# Built once at import time
registry = ToolRegistry()
