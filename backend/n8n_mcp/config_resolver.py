# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Request-scoped n8n configuration.

Environment defaults are merged with per-request dotted parameters
(``n8n.apiKey=...``) into one frozen ApiConfig. Nothing here is shared
between requests.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from n8n_mcp.mcp_exceptions import MissingConfigError

# Flat keys accepted for backwards compatibility, mapped to dotted form
LEGACY_KEYS = {
    "n8nApiUrl": "n8n.apiUrl",
    "n8nApiKey": "n8n.apiKey",
    "n8nWebhookUsername": "n8n.webhookUsername",
    "n8nWebhookPassword": "n8n.webhookPassword",
}

# Request headers accepted as configuration
HEADER_KEYS = {
    "x-n8n-api-url": "n8n.apiUrl",
    "x-n8n-api-key": "n8n.apiKey",
    "x-n8n-webhook-username": "n8n.webhookUsername",
    "x-n8n-webhook-password": "n8n.webhookPassword",
}

# Parameters that belong to the transport, never to n8n configuration
RESERVED_PARAMS = frozenset(["apiKey", "sessionId"])


@dataclass(frozen=True)
class ApiConfig:
    """Resolved configuration handed to every tool and resource call"""
    api_base_url: str
    api_key: str
    webhook_username: Optional[str] = None
    webhook_password: Optional[str] = None
    debug: bool = False

    def __repr__(self) -> str:
        # Keep secrets out of logs
        return (
            f"ApiConfig(api_base_url={self.api_base_url!r}, api_key='***', "
            f"webhook_username={self.webhook_username!r}, debug={self.debug})"
        )


def parse_dot_notation(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Expand a flat mapping with dotted keys into nested dicts.

    An intermediate key that already holds a non-dict value is replaced
    with a fresh dict (last write wins).

    >>> parse_dot_notation({"a.b": "1", "a.c": "2"})
    {'a': {'b': '1', 'c': '2'}}
    """
    result: Dict[str, Any] = {}
    for key, value in params.items():
        parts = key.split(".")
        current = result
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value
    return result


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base; override wins"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def normalize_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop transport parameters, empty values and map legacy flat keys"""
    normalized: Dict[str, Any] = {}
    for key, value in params.items():
        if key in RESERVED_PARAMS or value is None or value == "":
            continue
        normalized[LEGACY_KEYS.get(key, key)] = value
    return normalized


def params_from_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Pick configuration headers and map them to dotted keys"""
    picked: Dict[str, str] = {}
    for name, value in headers.items():
        dotted = HEADER_KEYS.get(name.lower())
        if dotted and value:
            picked[dotted] = value
    return picked


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, dict):
        return None
    value = str(value).strip()
    return value or None


def resolve(
    env_defaults: Mapping[str, Any],
    raw_params: Optional[Mapping[str, Any]] = None,
    header_params: Optional[Mapping[str, Any]] = None,
) -> ApiConfig:
    """
    Build the ApiConfig for one request.

    Args:
        env_defaults: nested defaults (see core.config.get_env_defaults)
        raw_params: flat dotted query parameters (highest priority)
        header_params: flat dotted parameters taken from headers

    Raises:
        MissingConfigError: api url or api key absent after the merge
    """
    merged = deep_merge({}, env_defaults)
    for layer in (header_params, raw_params):
        if layer:
            merged = deep_merge(merged, parse_dot_notation(normalize_params(layer)))

    n8n = merged.get("n8n")
    if not isinstance(n8n, dict):
        n8n = {}

    api_base_url = _clean(n8n.get("apiUrl"))
    api_key = _clean(n8n.get("apiKey"))

    missing = []
    if not api_base_url:
        missing.append("n8n.apiUrl")
    if not api_key:
        missing.append("n8n.apiKey")
    if missing:
        raise MissingConfigError(missing)

    return ApiConfig(
        api_base_url=api_base_url.rstrip("/"),
        api_key=api_key,
        webhook_username=_clean(n8n.get("webhookUsername")),
        webhook_password=_clean(n8n.get("webhookPassword")),
        debug=_coerce_bool(merged.get("debug")),
    )


@dataclass(frozen=True)
class ConfigSource:
    """
    Unresolved configuration inputs captured by a transport.

    Resolution is deferred until a method actually needs n8n access, so that
    discovery calls work without credentials.
    """
    env_defaults: Mapping[str, Any]
    query_params: Mapping[str, Any]
    header_params: Mapping[str, Any]

    def resolve(self) -> ApiConfig:
        return resolve(self.env_defaults, self.query_params, self.header_params)

    @property
    def debug(self) -> bool:
        merged = deep_merge({}, self.env_defaults)
        merged = deep_merge(merged, parse_dot_notation(normalize_params(self.query_params)))
        return _coerce_bool(merged.get("debug"))
