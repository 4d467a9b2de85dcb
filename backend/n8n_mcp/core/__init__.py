# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities shared by the n8n MCP server.

This package contains:
- config: process settings and n8n environment defaults
- logging: structured logging
- errors: application exception hierarchy
- dependencies: FastAPI dependencies
"""
