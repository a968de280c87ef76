import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

import fast_mcp_server
from bridge import OpenApiBridge
from config import BridgeConfig
from errors import BridgeError

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    # stdout belongs to the stdio MCP transport
    level_name = "DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _common_options(sub_level: bool) -> argparse.ArgumentParser:
    # Subcommand copies must not clobber values given before the subcommand
    default = argparse.SUPPRESS if sub_level else None
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--spec-path", dest="spec_path", default=default, help="OpenAPI specification file path or URL")
    common.add_argument("--base-url", dest="base_url", default=default, help="Override the API base URL")
    common.add_argument("--timeout", type=float, default=default, help="Per-request timeout in seconds")
    common.add_argument("--debug", action="store_true", default=argparse.SUPPRESS if sub_level else False,
                        help="Enable debug logging")
    return common


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Expose the operations of an OpenAPI 3.x API as MCP tools",
        parents=[_common_options(sub_level=False)],
    )
    sub = p.add_subparsers(dest="command")
    common = _common_options(sub_level=True)

    run = sub.add_parser("run", parents=[common], help="Run the MCP server (default)")
    run.add_argument("--mode", choices=["stdio", "sse"], default="stdio", help="Server transport mode")
    run.add_argument("--host", default="127.0.0.1", help="Host for the SSE transport")
    run.add_argument("--port", type=int, default=8080, help="Port for the SSE transport")

    sub.add_parser("validate", parents=[common], help="Validate the spec and print server information")
    sub.add_parser("list-tools", parents=[common], help="List available tools")

    args = p.parse_args(argv)
    if args.command is None:
        args.command = "run"
        args.mode, args.host, args.port = "stdio", "127.0.0.1", 8080
    return args


def build_config(args: argparse.Namespace) -> BridgeConfig:
    config = BridgeConfig.from_env()
    overrides = {
        "spec_path": args.spec_path,
        "base_url": args.base_url,
        "timeout_seconds": args.timeout,
    }
    return config.model_copy(update={k: v for k, v in overrides.items() if v is not None})


async def validate_server(config: BridgeConfig) -> int:
    bridge = await OpenApiBridge.load(config)
    try:
        print("✅ Server configuration is valid!")
        print(json.dumps(bridge.get_server_description(), indent=2))
    finally:
        await bridge.close()
    return 0


async def list_tools(config: BridgeConfig) -> int:
    bridge = await OpenApiBridge.load(config)
    try:
        tools = bridge.list_tools()
        if not tools:
            print("No tools available. Make sure an OpenAPI specification is provided.")
            return 0
        print(f"Available tools ({len(tools)}):")
        for i, tool in enumerate(tools, start=1):
            summary = (tool["description"] or "").splitlines()[0] if tool["description"] else ""
            print(f"  {i}. {tool['name']}" + (f" - {summary}" if summary else ""))
    finally:
        await bridge.close()
    return 0


async def main_async(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.debug)
    try:
        config = build_config(args)
        if args.command == "validate":
            return await validate_server(config)
        if args.command == "list-tools":
            return await list_tools(config)
        return await fast_mcp_server.main(config, mode=args.mode, host=args.host, port=args.port)
    except BridgeError as e:
        logger.error("%s", e)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    try:
        exit_code = asyncio.run(main_async(argv))
    except KeyboardInterrupt:
        exit_code = 130
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
