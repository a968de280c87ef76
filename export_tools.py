import json
import sys

import requests

from errors import BridgeError
from openapi_loader import is_url, is_yaml_location, parse_description, read_openapi_file
from operation_extractor import extract_tools
from tool_catalog import build_catalog

DEFAULT_INPUT = "openapi.json"
DEFAULT_OUTPUT = "tools.json"


def fetch_openapi_schema(url, timeout=30):
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return parse_description(response.text, yaml_hint=is_yaml_location(url))


def load_schema(location):
    if is_url(location):
        return fetch_openapi_schema(location)
    return read_openapi_file(location)


def export_tools(location, output_file):
    catalog = build_catalog(extract_tools(load_schema(location)))
    tools = [
        dict(tool.to_listing(), method=tool.method, path=tool.path_template)
        for tool in catalog.all()
    ]
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump({"tools": tools}, f, indent=2, ensure_ascii=False)
    return len(tools)


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    input_file = args[0] if len(args) > 0 else DEFAULT_INPUT
    output_file = args[1] if len(args) > 1 else DEFAULT_OUTPUT
    try:
        count = export_tools(input_file, output_file)
    except (BridgeError, requests.RequestException, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Extracted {count} tools to {output_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
