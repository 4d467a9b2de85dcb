# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
n8n tool handlers.

- base: ToolHandler contract and result models
- workflow: workflow CRUD and activation
- execution: execution listing/deletion and webhooks
- registry: static name -> handler table
"""

from n8n_mcp.tools.base import ToolHandler, ToolCallResult, TextContent, ToolDefinition
from n8n_mcp.tools.registry import ToolRegistry, registry

__all__ = [
    "ToolHandler",
    "ToolCallResult",
    "TextContent",
    "ToolDefinition",
    "ToolRegistry",
    "registry",
]
