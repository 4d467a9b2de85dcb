# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""n8n MCP server: MCP transports in front of the n8n REST API."""

__version__ = "0.1.3"
