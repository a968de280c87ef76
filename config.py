"""
Configuration for the OpenAPI to MCP bridge.

Values come from the environment (optionally seeded from a .env file) and can
be overridden by CLI flags through ``BridgeConfig.model_copy(update=...)``.
"""
import json
import os
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from errors import ConfigurationError

DEFAULT_BASE_URL = "http://localhost:31009"
DEFAULT_SERVER_NAME = "openapi-mcp-server"
DEFAULT_TIMEOUT_SECONDS = 30.0


class BridgeConfig(BaseModel):
    """Settings shared by the loader, the HTTP client and the MCP server."""

    spec_path: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    api_version_header: str = "API-Version"
    api_version: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    server_name: str = DEFAULT_SERVER_NAME

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "BridgeConfig":
        if load_dotenv_file:
            load_dotenv(find_dotenv(usecwd=True))

        spec_path = (os.getenv("OPENAPI_SPEC_PATH") or os.getenv("OPENAPI_FULL_URL") or "").strip() or None
        base_url = (os.getenv("API_BASE_URL") or "").strip() or None
        api_key = (os.getenv("API_KEY") or "").strip() or None

        return cls(
            spec_path=spec_path,
            base_url=base_url,
            api_key=api_key,
            headers=parse_headers(os.getenv("OPENAPI_MCP_HEADERS")),
            api_version_header=os.getenv("API_VERSION_HEADER", "API-Version").strip() or "API-Version",
            api_version=(os.getenv("API_VERSION") or "").strip() or None,
            timeout_seconds=parse_timeout(os.getenv("REQUEST_TIMEOUT")),
            server_name=os.getenv("SERVER_NAME", DEFAULT_SERVER_NAME).strip() or DEFAULT_SERVER_NAME,
        )


def parse_headers(raw: Optional[str]) -> Dict[str, str]:
    """Parse a JSON object of extra headers, e.g. '{"X-Tenant": "acme"}'."""
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"OPENAPI_MCP_HEADERS is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("OPENAPI_MCP_HEADERS must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"REQUEST_TIMEOUT must be a number of seconds, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError("REQUEST_TIMEOUT must be greater than zero")
    return value
