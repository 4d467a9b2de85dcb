# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the n8n MCP Server
"""

from setuptools import setup, find_packages

setup(
    name="n8n-mcp-server",
    version="0.1.3",
    description="Model Context Protocol server for n8n workflow automation",
    package_dir={"": "backend"},
    packages=find_packages("backend", exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "httpx>=0.25.0",
        "pydantic>=2.0.0",
        "jsonschema>=4.0.0",
        "PyYAML>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "n8n-mcp-server=n8n_mcp.main:run",
        ]
    },
)
