# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
n8n MCP Server Configuration - Single source of truth.

Defaults live in the dataclass, an optional YAML file overrides them and
environment variables override both. n8n credentials are NOT stored here:
they are resolved per request (see n8n_mcp.config_resolver).
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from n8n_mcp.core.errors import ConfigurationError


# Environment variables that carry n8n credentials
N8N_ENV_VARS = (
    "N8N_API_URL",
    "N8N_API_KEY",
    "N8N_WEBHOOK_USERNAME",
    "N8N_WEBHOOK_PASSWORD",
)

SSE_MODES = ("direct", "bridge")


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Settings:
    """
    Immutable process configuration.
    Transport, session and logging knobs. No hidden state.
    """

    # -- Server --
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    service_name: str = "n8n-mcp-server"
    service_version: str = "0.1.3"

    # -- Sessions --
    session_ttl: float = 3600.0
    session_sweep_probability: float = 0.01

    # -- SSE --
    sse_mode: str = "direct"
    sse_keepalive_interval: float = 30.0
    sse_max_lifetime: float = 300.0

    # -- Bridge --
    bridge_target_url: str = "http://localhost:3000/mcp"
    bridge_api_key: Optional[str] = None
    bridge_timeout: float = 60.0

    # -- Access --
    auth_key: Optional[str] = None

    # -- n8n HTTP --
    n8n_http_timeout: float = 30.0

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def bridge_enabled(self) -> bool:
        return self.sse_mode == "bridge"


# =============================================================================
# HELPERS
# =============================================================================

def parse_bool(value: Optional[str]) -> bool:
    """Case-insensitive "true" check used for DEBUG and friends."""
    return (value or "").strip().lower() == "true"


def load_environment_file(env_path: Optional[Path] = None) -> bool:
    """
    Load a .env file when no n8n credential is present in the environment.

    Returns:
        True if a file was loaded
    """
    if any(os.getenv(name) for name in N8N_ENV_VARS):
        return False

    path = env_path or Path.cwd() / ".env"
    if not path.exists():
        return False

    load_dotenv(path)
    return True


def _get(d: Dict[str, Any], *keys, default=None):
    """Safely navigate nested YAML dicts."""
    for k in keys:
        if not isinstance(d, dict):
            return default
        d = d.get(k, {})
    return d if d != {} else default


def _env(name: str, cast, fallback):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return fallback
    try:
        return cast(raw)
    except ValueError:
        return fallback


# =============================================================================
# LOADER
# =============================================================================

def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from defaults, optional YAML, then environment.

    Args:
        path: YAML file path (defaults to $N8N_MCP_CONFIG_PATH)

    Returns:
        Frozen Settings instance

    Raises:
        ConfigurationError: bridge mode without an http(s) upstream URL
    """
    path = path or os.getenv("N8N_MCP_CONFIG_PATH")
    y: Dict[str, Any] = {}
    if path and Path(path).exists():
        with open(path) as f:
            y = yaml.safe_load(f) or {}

    defaults = Settings()

    host = _get(y, "server", "host") or defaults.host
    port = _get(y, "server", "port") or defaults.port
    ttl = _get(y, "sessions", "ttl") or defaults.session_ttl
    sweep = _get(y, "sessions", "sweep_probability", default=defaults.session_sweep_probability)
    sse_mode = _get(y, "sse", "mode") or defaults.sse_mode
    keepalive = _get(y, "sse", "keepalive_interval") or defaults.sse_keepalive_interval
    lifetime = _get(y, "sse", "max_lifetime") or defaults.sse_max_lifetime
    target = _get(y, "bridge", "target_url") or defaults.bridge_target_url
    bridge_timeout = _get(y, "bridge", "timeout") or defaults.bridge_timeout
    n8n_timeout = _get(y, "n8n", "timeout") or defaults.n8n_http_timeout
    log_level = _get(y, "logging", "level") or defaults.log_level
    log_format = _get(y, "logging", "format") or defaults.log_format

    sse_mode = os.getenv("MCP_SSE_MODE", sse_mode).strip().lower()
    if sse_mode not in SSE_MODES:
        sse_mode = defaults.sse_mode

    target = os.getenv("MCP_SERVER_URL") or target
    if sse_mode == "bridge" and not target.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"MCP_SERVER_URL must be an http(s) URL in bridge mode, got {target!r}",
            details={"setting": "MCP_SERVER_URL"},
        )

    return Settings(
        host=os.getenv("HOST") or host,
        port=_env("PORT", int, int(port)),
        debug=parse_bool(os.getenv("DEBUG")),
        session_ttl=_env("MCP_SESSION_TTL", float, float(ttl)),
        session_sweep_probability=_env("MCP_SESSION_SWEEP_PROBABILITY", float, float(sweep)),
        sse_mode=sse_mode,
        sse_keepalive_interval=_env("MCP_SSE_KEEPALIVE_INTERVAL", float, float(keepalive)),
        sse_max_lifetime=_env("MCP_SSE_MAX_LIFETIME", float, float(lifetime)),
        bridge_target_url=target,
        bridge_api_key=os.getenv("MCP_TARGET_API_KEY") or None,
        bridge_timeout=float(bridge_timeout),
        auth_key=os.getenv("MCP_AUTH_KEY") or None,
        n8n_http_timeout=_env("N8N_HTTP_TIMEOUT", float, float(n8n_timeout)),
        log_level=os.getenv("LOG_LEVEL") or log_level,
        log_format=os.getenv("LOG_FORMAT") or log_format,
    )


def get_env_defaults() -> Dict[str, Any]:
    """
    Snapshot n8n credentials from the environment.

    The result is the lowest-priority layer fed to the configuration resolver.
    """
    return {
        "n8n": {
            "apiUrl": os.getenv("N8N_API_URL"),
            "apiKey": os.getenv("N8N_API_KEY"),
            "webhookUsername": os.getenv("N8N_WEBHOOK_USERNAME"),
            "webhookPassword": os.getenv("N8N_WEBHOOK_PASSWORD"),
        },
        "debug": os.getenv("DEBUG", ""),
    }


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
