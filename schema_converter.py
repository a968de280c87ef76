"""
Convert OpenAPI schema objects into the generic tool-input schema that MCP
clients see.

The conversion is total: anything it does not understand, including references
that cannot be resolved or that would loop back on themselves, becomes a plain
``{"type": "object"}`` node. The output never contains ``$ref`` and is always
acyclic.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

SCALAR_TYPES = ("string", "number", "integer", "boolean")
TOOL_SCHEMA_TYPES = SCALAR_TYPES + ("object", "array")
UNION_KEYWORDS = ("oneOf", "anyOf", "allOf")
FALLBACK_SCHEMA = {"type": "object"}

BINARY_HINT = "local file path, data: URL or base64 text"


class NodeKind(Enum):
    REFERENCE = "reference"
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"
    UNION = "union"
    UNKNOWN = "unknown"


class RefResolver:
    """Looks up local JSON pointers (``#/components/...``) inside one API description."""

    def __init__(self, document: Dict[str, Any]):
        self.document = document

    def lookup(self, ref: str) -> Optional[Dict[str, Any]]:
        if not isinstance(ref, str) or not ref.startswith("#/"):
            return None
        current: Any = self.document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current if isinstance(current, dict) else None

    def resolve(self, obj: Any) -> Optional[Dict[str, Any]]:
        """Follow a chain of ``$ref`` objects (parameters, request bodies) to the target."""
        seen = set()
        while isinstance(obj, dict) and "$ref" in obj:
            ref = obj["$ref"]
            if ref in seen:
                logger.warning("Reference cycle detected at %s", ref)
                return None
            seen.add(ref)
            obj = self.lookup(ref)
        return obj if isinstance(obj, dict) else None


def declared_type(node: Dict[str, Any]) -> Optional[str]:
    raw = node.get("type")
    if isinstance(raw, list):
        # OpenAPI 3.1 style ["string", "null"]
        for candidate in raw:
            if candidate in TOOL_SCHEMA_TYPES:
                return candidate
        return None
    return raw if isinstance(raw, str) else None


def classify(node: Any) -> NodeKind:
    if not isinstance(node, dict):
        return NodeKind.UNKNOWN
    if "$ref" in node:
        return NodeKind.REFERENCE
    kind = declared_type(node)
    if kind in SCALAR_TYPES:
        return NodeKind.SCALAR
    if kind == "object":
        return NodeKind.OBJECT
    if kind == "array":
        return NodeKind.ARRAY
    if kind is None:
        if any(isinstance(node.get(key), list) for key in UNION_KEYWORDS):
            return NodeKind.UNION
        if "properties" in node:
            return NodeKind.OBJECT
        if "items" in node:
            return NodeKind.ARRAY
    return NodeKind.UNKNOWN


def convert_schema(
    node: Any,
    resolver: Optional[RefResolver] = None,
    _stack: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """Convert one OpenAPI schema node. Never raises."""
    kind = classify(node)

    if kind is NodeKind.REFERENCE:
        return _convert_reference(node, resolver, _stack)

    result: Dict[str, Any]
    if kind is NodeKind.SCALAR:
        result = _convert_scalar(node)
    elif kind is NodeKind.OBJECT:
        result = _convert_object(node, resolver, _stack)
    elif kind is NodeKind.ARRAY:
        result = _convert_array(node, resolver, _stack)
    else:
        result = dict(FALLBACK_SCHEMA)

    if isinstance(node, dict):
        # Union members ride alongside whatever type was declared.
        for keyword in UNION_KEYWORDS:
            members = node.get(keyword)
            if isinstance(members, list) and members:
                result[keyword] = [convert_schema(member, resolver, _stack) for member in members]
        _copy_metadata(node, result)

    return result


def _convert_reference(node: Dict[str, Any], resolver: Optional[RefResolver], stack: Tuple[str, ...]) -> Dict[str, Any]:
    ref = node.get("$ref")
    if resolver is None:
        logger.warning("Schema reference not resolved (no resolver): %s", ref)
        return dict(FALLBACK_SCHEMA)
    if ref in stack:
        logger.warning("Schema reference cycle broken at %s", ref)
        return dict(FALLBACK_SCHEMA)
    target = resolver.lookup(ref)
    if target is None:
        logger.warning("Schema reference could not be resolved: %s", ref)
        return dict(FALLBACK_SCHEMA)

    converted = convert_schema(target, resolver, stack + (ref,))
    if isinstance(node.get("description"), str):
        converted["description"] = node["description"]
    return converted


def _convert_scalar(node: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {"type": declared_type(node)}
    fmt = node.get("format")
    if isinstance(fmt, str) and fmt:
        result["format"] = fmt
    enum = node.get("enum")
    if isinstance(enum, list):
        values = [value for value in enum if value is not None]
        if values:
            result["enum"] = values
    return result


def _convert_object(node: Dict[str, Any], resolver: Optional[RefResolver], stack: Tuple[str, ...]) -> Dict[str, Any]:
    result: Dict[str, Any] = {"type": "object"}

    properties = node.get("properties")
    if isinstance(properties, dict) and properties:
        result["properties"] = {
            name: convert_schema(prop, resolver, stack) for name, prop in properties.items()
        }

    required = node.get("required")
    if isinstance(required, list) and required:
        if "properties" in result:
            kept = [name for name in required if name in result["properties"]]
            if len(kept) != len(required):
                logger.debug("Dropping required names without a property: %s", sorted(set(required) - set(kept)))
            required = kept
        if required:
            result["required"] = list(required)

    return result


def _convert_array(node: Dict[str, Any], resolver: Optional[RefResolver], stack: Tuple[str, ...]) -> Dict[str, Any]:
    result: Dict[str, Any] = {"type": "array"}
    if "items" in node:
        result["items"] = convert_schema(node["items"], resolver, stack)
    return result


def _copy_metadata(node: Dict[str, Any], result: Dict[str, Any]) -> None:
    if isinstance(node.get("title"), str):
        result["title"] = node["title"]

    description = node.get("description") if isinstance(node.get("description"), str) else None
    if result.get("format") == "binary":
        description = f"{description} ({BINARY_HINT})" if description else BINARY_HINT
    if description is not None:
        result["description"] = description

    if "default" in node:
        result["default"] = node["default"]
