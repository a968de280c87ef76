import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional

import uvicorn
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount, Route

from bridge import OpenApiBridge
from config import DEFAULT_SERVER_NAME, BridgeConfig
from errors import BridgeError, ToolExecutionError

logger = logging.getLogger(__name__)

SERVER_NAME = os.getenv("SERVER_NAME", DEFAULT_SERVER_NAME)
RELOAD_TOOL_NAME = "reload_openapi_spec"

# Create MCP server
server = Server(SERVER_NAME)

# Current bridge; replaced wholesale on reload, never mutated in place
bridge: Optional[OpenApiBridge] = None
config: Optional[BridgeConfig] = None
_reload_lock = asyncio.Lock()


def install_bridge(new_bridge: OpenApiBridge, new_config: Optional[BridgeConfig] = None) -> None:
    global bridge, config
    bridge = new_bridge
    config = new_config or new_bridge.config


async def ensure_bridge_loaded() -> OpenApiBridge:
    if bridge is not None:
        return bridge
    async with _reload_lock:
        # Another caller may have loaded it while this one waited
        if bridge is None:
            install_bridge(await OpenApiBridge.load(config or BridgeConfig.from_env()), config)
        return bridge


def render_result(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False)


@server.list_tools()
async def list_tools() -> List[Tool]:
    current = await ensure_bridge_loaded()
    tools = [
        Tool(name=item["name"], description=item["description"] or "", inputSchema=item["inputSchema"])
        for item in current.list_tools()
    ]
    # Maintenance tool
    tools.append(Tool(
        name=RELOAD_TOOL_NAME,
        description="Reload the OpenAPI specification and rebuild the tool catalog",
        inputSchema={"type": "object", "properties": {}}
    ))
    return tools


async def reload_bridge() -> OpenApiBridge:
    """Build a fresh bridge from the configured spec and swap it in."""
    await ensure_bridge_loaded()
    async with _reload_lock:
        current = bridge
        # Share the connection pool so in-flight calls on the old catalog keep working
        fresh = await OpenApiBridge.load(config or current.config, client=current.client)
        install_bridge(fresh, config)
        return fresh


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Raises ToolExecutionError on failure; the MCP server reports it with isError set."""
    try:
        current = await ensure_bridge_loaded()
        if name == RELOAD_TOOL_NAME and name not in current.catalog:
            fresh = await reload_bridge()
            return [TextContent(type="text", text=f"OpenAPI spec reloaded successfully. {fresh.get_catalog_size()} tools available.")]

        result = await current.call(name, arguments or {})
    except BridgeError as e:
        logger.error("Error executing tool %s: %s", name, e)
        raise ToolExecutionError(f"Error executing tool {name}: {e}") from e

    if not result.success:
        raise ToolExecutionError(f"Tool execution failed: {result.error}", status_code=result.status_code)
    return [TextContent(type="text", text=render_result(result.value))]


async def run_stdio() -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def create_sse_app() -> Starlette:
    sse = SseServerTransport("/messages/")

    async def handle_sse(request: Request) -> Response:
        async with sse.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
        return Response()

    return Starlette(routes=[
        Route("/sse", endpoint=handle_sse, methods=["GET"]),
        Mount("/messages/", app=sse.handle_post_message),
    ])


async def run_sse(host: str, port: int) -> None:
    logger.info("Starting MCP server with SSE transport on %s:%d", host, port)
    uv_config = uvicorn.Config(create_sse_app(), host=host, port=port, log_level="warning")
    await uvicorn.Server(uv_config).serve()


async def main(server_config: Optional[BridgeConfig] = None, mode: str = "stdio", host: str = "127.0.0.1", port: int = 8080) -> int:
    server_config = server_config or BridgeConfig.from_env()
    try:
        install_bridge(await OpenApiBridge.load(server_config), server_config)
    except BridgeError as e:
        logger.error("Failed to load OpenAPI specification: %s", e)
        logger.error("Make sure the spec path or URL is correct and the API server is running.")
        return 1

    logger.info("Loaded %d tools from %s", bridge.get_catalog_size(), bridge.title or "OpenAPI specification")
    try:
        if mode == "sse":
            await run_sse(host, port)
        else:
            await run_stdio()
    finally:
        await bridge.close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    raise SystemExit(asyncio.run(main()))
