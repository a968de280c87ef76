"""
The interface the protocol layer talks to: list tools, call a tool, introspect.

An OpenApiBridge is built once from a validated API description and never
changes afterwards. Reloading means building a new bridge.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from config import DEFAULT_BASE_URL, BridgeConfig
from errors import ConfigurationError
from executor import ToolExecutor, ToolResult
from http_client import HttpClient, build_default_headers
from openapi_loader import get_base_url, load_openapi_spec
from operation_extractor import extract_tools
from request_builder import RequestBuilder, build_url
from tool_catalog import build_catalog

logger = logging.getLogger(__name__)

BRIDGE_VERSION = "1.0.0"
DEFAULT_SPEC_LOCATIONS = ("openapi.json", "openapi.yaml", "openapi.yml", "scripts/openapi.json")


def resolve_spec_location(config: BridgeConfig) -> str:
    if config.spec_path:
        return config.spec_path
    for candidate in DEFAULT_SPEC_LOCATIONS:
        if os.path.exists(candidate):
            return candidate
    raise ConfigurationError(
        "No OpenAPI specification given. Set OPENAPI_SPEC_PATH or pass --spec-path "
        f"(also looked for: {', '.join(DEFAULT_SPEC_LOCATIONS)})"
    )


class OpenApiBridge:
    def __init__(
        self,
        description: Dict[str, Any],
        config: BridgeConfig,
        client: Optional[HttpClient] = None,
        source: Optional[str] = None,
    ):
        self.config = config
        self.title = description["info"]["title"] if isinstance(description.get("info"), dict) else ""
        self.catalog = build_catalog(extract_tools(description))
        self.base_url = config.base_url or get_base_url(description, source) or DEFAULT_BASE_URL
        # Fail at load time rather than on every call
        build_url(self.base_url, "")
        logger.info("Using base URL: %s", self.base_url)
        logger.info("Converted %d OpenAPI operations to MCP tools", len(self.catalog))

        self.client = client or HttpClient(config.timeout_seconds)
        self.builder = RequestBuilder(self.base_url, build_default_headers(config))
        self.executor = ToolExecutor(self.catalog, self.builder, self.client)

    @classmethod
    async def load(cls, config: BridgeConfig, client: Optional[HttpClient] = None) -> "OpenApiBridge":
        location = resolve_spec_location(config)
        description = await load_openapi_spec(location, config.timeout_seconds)
        return cls(description, config, client=client, source=location)

    def list_tools(self) -> List[Dict[str, Any]]:
        return self.catalog.list_tools()

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        return await self.executor.call(name, arguments)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Returns {"success": value} or {"failure": message}; never raises for per-call errors."""
        result = await self.call(name, arguments)
        return result.to_dict()

    def get_catalog_size(self) -> int:
        return len(self.catalog)

    def get_server_description(self) -> Dict[str, Any]:
        return {"name": self.config.server_name, "version": BRIDGE_VERSION, "toolCount": len(self.catalog)}

    async def close(self) -> None:
        await self.client.close()
