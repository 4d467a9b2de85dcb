# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Protocol Exception Classes

Each exception maps onto one JSON-RPC 2.0 error code.
"""

from typing import Any, Optional

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MCPProtocolError(Exception):
    """Raised when a JSON-RPC exchange must end in an error envelope"""

    code = INTERNAL_ERROR
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class ParseError(MCPProtocolError):
    """Raised when the body is not valid JSON"""
    code = PARSE_ERROR
    default_message = "Parse error"


class InvalidRequestError(MCPProtocolError):
    """Raised when the message is not a JSON-RPC request object"""
    code = INVALID_REQUEST
    default_message = "Invalid Request"


class MethodNotFoundError(MCPProtocolError):
    """Raised for unknown methods and unknown tool names"""
    code = METHOD_NOT_FOUND
    default_message = "Method not found"


class InvalidParamsError(MCPProtocolError):
    """Raised when params, tool arguments or configuration are unusable"""
    code = INVALID_PARAMS
    default_message = "Invalid params"


class MissingConfigError(InvalidParamsError):
    """Raised when required n8n configuration is absent after merge"""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            f"Missing required configuration: {', '.join(self.missing)}",
            data={"missing": self.missing},
        )


class UpstreamError(MCPProtocolError):
    """Raised when the n8n API or a proxied MCP server fails"""
    code = INTERNAL_ERROR
    default_message = "Upstream error"


class InternalError(MCPProtocolError):
    """Raised for any uncaught failure inside dispatch"""
    code = INTERNAL_ERROR
    default_message = "Internal error"
