# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
API Route Modules

FastAPI routers:
- system: health check and server info
- mcp: streamable HTTP and SSE endpoints
"""
