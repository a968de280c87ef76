"""
Walk an OpenAPI 3.x description and produce one ToolDefinition per operation.

Tools come out in the order paths and methods appear in the description.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from openapi_loader import validate_description
from schema_converter import FALLBACK_SCHEMA, RefResolver, convert_schema
from tool_catalog import HTTP_METHODS, ToolDefinition

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}
BODY_PROPERTY = "body"
JSON_MEDIA_TYPE = "application/json"
MULTIPART_MEDIA_TYPE = "multipart/form-data"


def default_operation_id(method: str, path: str) -> str:
    return f"{method.lower()}_{path.replace('/', '_')}"


def is_json_media_type(media_type: str) -> bool:
    base = media_type.split(";", 1)[0].strip().lower()
    return base == JSON_MEDIA_TYPE or base.endswith("+json")


def extract_tools(description: Dict[str, Any]) -> List[ToolDefinition]:
    """Validate the description, then convert every GET/POST/PUT/PATCH/DELETE operation."""
    validate_description(description)
    resolver = RefResolver(description)
    tools: List[ToolDefinition] = []

    for path, path_item in description["paths"].items():
        if isinstance(path_item, dict) and "$ref" in path_item:
            path_item = resolver.resolve(path_item)
        if not isinstance(path_item, dict):
            logger.warning("Skipping path %s: not a path item object", path)
            continue

        shared_parameters = path_item.get("parameters") or []
        for method_key, operation in path_item.items():
            method = method_key.upper()
            if method not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            tools.append(extract_operation(path, method, operation, shared_parameters, resolver))

    logger.debug("Converted %d OpenAPI operations to MCP tools", len(tools))
    return tools


def extract_operation(
    path: str,
    method: str,
    operation: Dict[str, Any],
    shared_parameters: List[Any],
    resolver: RefResolver,
) -> ToolDefinition:
    name = operation.get("operationId") or default_operation_id(method, path)

    properties: Dict[str, Any] = {}
    required: List[str] = []
    locations: Dict[str, str] = {}

    for param in _merge_parameters(shared_parameters, operation.get("parameters") or [], resolver):
        param_name = param["name"]
        properties[param_name] = _parameter_schema(param, resolver)
        locations[param_name] = param.get("in", "query")
        if param.get("required") and param_name not in required:
            required.append(param_name)

    body_media_type = None
    if method in BODY_METHODS and "requestBody" in operation:
        body_media_type = _add_request_body(operation["requestBody"], resolver, properties, required)

    return ToolDefinition(
        name=name,
        description=operation.get("description") or operation.get("summary"),
        input_schema={"type": "object", "properties": properties, "required": required},
        method=method,
        path_template=path,
        parameter_locations=locations,
        body_media_type=body_media_type,
    )


def _merge_parameters(shared: List[Any], own: List[Any], resolver: RefResolver) -> List[Dict[str, Any]]:
    """Path-level parameters first; an operation parameter with the same (name, in) replaces it."""
    merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for raw in list(shared) + list(own):
        param = resolver.resolve(raw) if isinstance(raw, dict) else None
        if param is None or not isinstance(param.get("name"), str):
            ref = raw.get("$ref") if isinstance(raw, dict) else raw
            logger.warning("Skipping parameter that could not be resolved: %s", ref)
            continue
        merged[(param["name"], param.get("in", "query"))] = param
    return list(merged.values())


def _parameter_schema(param: Dict[str, Any], resolver: RefResolver) -> Dict[str, Any]:
    if "schema" in param:
        schema = convert_schema(param["schema"], resolver)
    else:
        schema = None
        content = param.get("content")
        if isinstance(content, dict):
            # Content-described parameter: first media type with a schema wins.
            for media in content.values():
                if isinstance(media, dict) and "schema" in media:
                    schema = convert_schema(media["schema"], resolver)
                    break
        if schema is None:
            schema = {"type": "string"}

    if isinstance(param.get("description"), str) and param["description"]:
        schema["description"] = param["description"]
    return schema


def _add_request_body(
    raw_body: Any,
    resolver: RefResolver,
    properties: Dict[str, Any],
    required: List[str],
) -> Optional[str]:
    body = resolver.resolve(raw_body) if isinstance(raw_body, dict) else None
    if body is None:
        ref = raw_body.get("$ref") if isinstance(raw_body, dict) else raw_body
        logger.warning("Request body reference could not be resolved: %s", ref)
        properties[BODY_PROPERTY] = dict(FALLBACK_SCHEMA)
        return None

    content = body.get("content") if isinstance(body.get("content"), dict) else {}
    json_media = next((media_type for media_type in content if is_json_media_type(media_type)), None)

    if json_media is not None:
        media = content[json_media] if isinstance(content[json_media], dict) else {}
        if "schema" in media:
            properties[BODY_PROPERTY] = convert_schema(media["schema"], resolver)
            if body.get("required") and BODY_PROPERTY not in required:
                required.append(BODY_PROPERTY)
        return JSON_MEDIA_TYPE

    if MULTIPART_MEDIA_TYPE in content:
        return MULTIPART_MEDIA_TYPE
    return next(iter(content), None)
