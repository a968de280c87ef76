import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp
import yaml
from yarl import URL

from errors import SpecificationError

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSION = "3."


def is_url(location: str) -> bool:
    return location.startswith("http://") or location.startswith("https://")


def is_yaml_location(location: str) -> bool:
    return location.lower().split("?", 1)[0].endswith((".yaml", ".yml"))


def parse_description(raw: str, yaml_hint: bool = False) -> Dict[str, Any]:
    """Parse raw JSON or YAML text into an API description dict."""
    try:
        if yaml_hint:
            data = yaml.safe_load(raw)
        else:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                # Servers often return YAML without a telling extension
                data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise SpecificationError(f"Failed to parse OpenAPI specification: {e}") from e

    if not isinstance(data, dict):
        raise SpecificationError("OpenAPI specification must be a JSON/YAML object")
    return data


async def fetch_openapi_spec(url: str, timeout_seconds: float = 30.0) -> Dict[str, Any]:
    """Download an API description over HTTP."""
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise SpecificationError(f"HTTP {response.status} fetching OpenAPI at {url}: {body[:200]}")
                raw = await response.text()
    except aiohttp.ClientError as e:
        raise SpecificationError(f"Can't connect to {url} to fetch OpenAPI: {e}") from e
    except asyncio.TimeoutError as e:
        raise SpecificationError(f"Timed out fetching OpenAPI from {url}") from e
    return parse_description(raw, yaml_hint=is_yaml_location(url))


def read_openapi_file(path: str) -> Dict[str, Any]:
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecificationError(f"Failed to read OpenAPI specification file {path}: {e}") from e
    return parse_description(raw, yaml_hint=is_yaml_location(path))


async def load_openapi_spec(location: str, timeout_seconds: float = 30.0) -> Dict[str, Any]:
    """Load, parse and validate an API description from a file path or URL."""
    logger.info("Loading OpenAPI specification from: %s", location)
    if is_url(location):
        description = await fetch_openapi_spec(location, timeout_seconds)
    else:
        description = read_openapi_file(location)
    validate_description(description)
    logger.debug("Successfully loaded and validated OpenAPI specification")
    return description


def validate_description(description: Dict[str, Any]) -> None:
    version = description.get("openapi")
    if not version or not isinstance(version, str):
        raise SpecificationError("OpenAPI version is required")
    if not version.startswith(SUPPORTED_MAJOR_VERSION):
        raise SpecificationError(f"Unsupported OpenAPI version: {version}. Only 3.x is supported")

    info = description.get("info")
    title = info.get("title") if isinstance(info, dict) else None
    if not title or not isinstance(title, str):
        raise SpecificationError("API title is required")

    paths = description.get("paths")
    if not isinstance(paths, dict) or not paths:
        raise SpecificationError("At least one path is required")


def get_base_url(description: Dict[str, Any], source: Optional[str] = None) -> Optional[str]:
    """First server URL; a relative one is resolved against the URL the description came from."""
    servers = description.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        url = servers[0].get("url")
        if isinstance(url, str) and url:
            if source and is_url(source):
                try:
                    if not URL(url).is_absolute():
                        return str(URL(source).join(URL(url)))
                except ValueError:
                    logger.warning("Could not resolve server URL %s against %s", url, source)
            return url
    return None
