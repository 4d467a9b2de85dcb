# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transport adapters: streamable HTTP, direct SSE and the SSE bridge.
"""

from n8n_mcp.transports.bridge import SSEBridgeTransport
from n8n_mcp.transports.channel import BufferedChannel, MessageChannel, StreamChannel, bind
from n8n_mcp.transports.sse import SSETransport
from n8n_mcp.transports.streamable_http import StreamableHTTPTransport

__all__ = [
    "MessageChannel",
    "BufferedChannel",
    "StreamChannel",
    "bind",
    "StreamableHTTPTransport",
    "SSETransport",
    "SSEBridgeTransport",
]
