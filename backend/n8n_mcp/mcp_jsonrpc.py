# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
JSON-RPC 2.0 Message Builders and Parsing for the MCP Protocol
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Union

from n8n_mcp.mcp_exceptions import ParseError, InvalidRequestError

JSONRPC_VERSION = "2.0"

RequestId = Union[str, int, float, None]


def is_valid_id(value: Any) -> bool:
    """String or number; bool is an int subclass but not a JSON-RPC id"""
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


@dataclass
class JSONRPCRequest:
    """A parsed inbound JSON-RPC message"""
    method: str
    id: RequestId = None
    params: Dict[str, Any] = field(default_factory=dict)
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        """Messages without an id (or with a null id) get no response"""
        return not self.has_id or self.id is None


def parse_body(raw: Union[bytes, str]) -> Any:
    """
    Decode a request body.

    Raises:
        ParseError: body is empty or not JSON
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(data=str(e))
    if not raw or not raw.strip():
        raise ParseError(data="Empty request body")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(data=str(e))


def parse_message(message: Any) -> JSONRPCRequest:
    """
    Validate one decoded JSON-RPC message.

    Raises:
        InvalidRequestError: not an object, or no string method
    """
    if not isinstance(message, dict):
        raise InvalidRequestError(data="Message must be a JSON object")

    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError(data="Missing method")

    request_id = message.get("id")
    if request_id is not None and not is_valid_id(request_id):
        raise InvalidRequestError(data="id must be a string, number or null")

    params = message.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidRequestError(data="params must be an object")

    return JSONRPCRequest(
        method=method,
        id=request_id,
        params=params,
        has_id="id" in message,
    )


def extract_id(message: Any) -> RequestId:
    """Best-effort id lookup for error envelopes of invalid messages"""
    if isinstance(message, dict):
        request_id = message.get("id")
        if is_valid_id(request_id):
            return request_id
    return None


def build_result(request_id: RequestId, result: Dict[str, Any]) -> Dict:
    """Build JSON-RPC success response"""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "result": result
    }


def build_error(request_id: RequestId, code: int, message: str, data: Any = None) -> Dict:
    """Build JSON-RPC error response"""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": error
    }


def build_notification(method: str, params: Optional[Dict[str, Any]] = None) -> Dict:
    """Build JSON-RPC notification (no id)"""
    notification: Dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "method": method
    }
    if params is not None:
        notification["params"] = params
    return notification


def build_initialized_notification() -> Dict:
    """Build JSON-RPC initialized notification"""
    return build_notification("notifications/initialized", {})


def build_log_notification(message: str, level: str = "info") -> Dict:
    """Build notifications/message (server log line for the client)"""
    return build_notification("notifications/message", {"level": level, "data": message})


def is_batch(payload: Any) -> bool:
    return isinstance(payload, list)


def batch_members(payload: Any) -> List[Any]:
    """
    Normalise a decoded body into a list of messages.

    Raises:
        InvalidRequestError: empty batch
    """
    if is_batch(payload):
        if not payload:
            raise InvalidRequestError(data="Empty batch")
        return list(payload)
    return [payload]
