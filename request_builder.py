"""
Turn a tool definition plus an argument object into a concrete HTTP request plan.

Keys starting with ``_`` are instructions for this module and never reach the
wire as query or body fields. ``_file_upload`` is the only one in use.
"""
import base64
import binascii
import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote_to_bytes, urlencode

from yarl import URL

from errors import ConfigurationError, UploadValidationError
from operation_extractor import JSON_MEDIA_TYPE
from tool_catalog import HTTP_METHODS, ToolDefinition

logger = logging.getLogger(__name__)

RESERVED_PREFIX = "_"
FILE_UPLOAD_KEY = "_file_upload"
UPLOAD_FIELD_NAME = "file"
UPLOAD_FILENAME = "upload"
UPLOAD_CONTENT_TYPE = "application/octet-stream"

QUERY_METHODS = {"GET", "DELETE"}
PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


class BodyKind(Enum):
    NONE = "none"
    JSON = "json"
    MULTIPART = "multipart"


@dataclass
class UploadPart:
    data: bytes
    filename: str = UPLOAD_FILENAME
    content_type: str = UPLOAD_CONTENT_TYPE
    field_name: str = UPLOAD_FIELD_NAME


@dataclass
class RequestPlan:
    method: str
    url: str
    query: List[Tuple[str, str]] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    body_kind: BodyKind = BodyKind.NONE
    json_body: Any = None
    form_fields: List[Tuple[str, str]] = field(default_factory=list)
    upload: Optional[UploadPart] = None

    @property
    def full_url(self) -> str:
        if not self.query:
            return self.url
        return f"{self.url}?{urlencode(self.query)}"


def to_wire_string(value: Any) -> str:
    """Render a JSON value as a wire string.

    Strings pass through. Everything else is compact JSON text with one
    leading and one trailing double quote stripped, so a value whose JSON text
    starts or ends with a quote loses that character.
    """
    if isinstance(value, str):
        return value
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


def is_reserved(key: str) -> bool:
    return key.startswith(RESERVED_PREFIX)


def substitute_path(path_template: str, args: Dict[str, Any]) -> Tuple[str, List[str]]:
    """Fill ``{name}`` placeholders from args. Returns the path and the keys consumed."""
    path = path_template
    consumed: List[str] = []
    for key, value in args.items():
        placeholder = "{" + key + "}"
        if placeholder in path:
            path = path.replace(placeholder, quote(to_wire_string(value), safe=""))
            consumed.append(key)
    return path, consumed


def build_url(base_url: str, path: str) -> str:
    leftover = PLACEHOLDER_RE.findall(path)
    if leftover:
        raise ConfigurationError(f"Invalid URL: missing value for path parameter(s) {', '.join(leftover)}")
    url_str = base_url.rstrip("/") + path
    try:
        url = URL(url_str)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid URL: {e}") from e
    if not url.is_absolute() or url.scheme not in ("http", "https"):
        raise ConfigurationError(f"Invalid URL: {url_str}")
    return url_str


def parse_method(method: str) -> str:
    normalized = (method or "").upper()
    if normalized not in HTTP_METHODS:
        raise ConfigurationError(f"Invalid HTTP method: {method}")
    return normalized


def decode_data_url(data_url: str) -> bytes:
    """Decode ``data:[<mediatype>][;base64],<data>``."""
    header, sep, payload = data_url.partition(",")
    if not sep:
        raise UploadValidationError("Invalid data URL format")
    if ";base64" in header.lower():
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UploadValidationError(f"Invalid base64 data: {e}") from e
    return unquote_to_bytes(payload)


def read_upload_payload(value: Any) -> bytes:
    """Data URL first, then an existing local file, then raw base64 text."""
    if not isinstance(value, str):
        raise UploadValidationError(f"{FILE_UPLOAD_KEY} must be a string, got {type(value).__name__}")
    if value.startswith("data:"):
        return decode_data_url(value)
    if os.path.isfile(value):
        try:
            with open(value, "rb") as f:
                return f.read()
        except OSError as e:
            raise UploadValidationError(f"Could not read file {value}: {e}") from e
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadValidationError(f"Invalid file data: {e}") from e


class RequestBuilder:
    """Builds RequestPlans against one base URL with a fixed set of default headers."""

    def __init__(self, base_url: str, default_headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})

    def build(self, tool: ToolDefinition, args: Optional[Dict[str, Any]]) -> RequestPlan:
        args = dict(args or {})
        method = parse_method(tool.method)

        path, consumed = substitute_path(tool.path_template, args)
        url = build_url(self.base_url, path)

        plan = RequestPlan(method=method, url=url, headers=dict(self.default_headers))
        remaining = {}
        for key, value in args.items():
            if key in consumed:
                continue
            location = tool.parameter_locations.get(key)
            if location == "header":
                if value is not None:
                    plan.headers[key] = to_wire_string(value)
                continue
            if location == "query" and method not in QUERY_METHODS:
                if value is not None:
                    plan.query.append((key, to_wire_string(value)))
                continue
            remaining[key] = value

        if method in QUERY_METHODS:
            plan.query.extend(
                (key, to_wire_string(value))
                for key, value in remaining.items()
                if not is_reserved(key) and value is not None
            )
        elif FILE_UPLOAD_KEY in remaining and tool.body_media_type != JSON_MEDIA_TYPE:
            self._add_multipart_body(plan, remaining)
        else:
            self._add_json_body(plan, tool, remaining)

        logger.debug("Built %s %s for tool %s", plan.method, plan.full_url, tool.name)
        return plan

    def _add_json_body(self, plan: RequestPlan, tool: ToolDefinition, remaining: Dict[str, Any]) -> None:
        """A supplied ``body`` argument is the whole JSON body when the tool declares one; other keys are dropped."""
        plan.body_kind = BodyKind.JSON
        _set_header(plan.headers, "Content-Type", JSON_MEDIA_TYPE)
        fields = {key: value for key, value in remaining.items() if not is_reserved(key)}
        if tool.has_body_property() and "body" in fields:
            dropped = sorted(key for key in fields if key != "body")
            if dropped:
                logger.warning("Tool %s: ignoring arguments outside 'body': %s", tool.name, ", ".join(dropped))
            plan.json_body = fields["body"]
        else:
            plan.json_body = fields

    def _add_multipart_body(self, plan: RequestPlan, remaining: Dict[str, Any]) -> None:
        plan.body_kind = BodyKind.MULTIPART
        plan.upload = UploadPart(data=read_upload_payload(remaining[FILE_UPLOAD_KEY]))
        plan.form_fields = [
            (key, to_wire_string(value))
            for key, value in remaining.items()
            if not is_reserved(key) and value is not None
        ]
        # The transport sets multipart/form-data with its own boundary.
        _drop_header(plan.headers, "Content-Type")


def _set_header(headers: Dict[str, str], name: str, value: str) -> None:
    _drop_header(headers, name)
    headers[name] = value


def _drop_header(headers: Dict[str, str], name: str) -> None:
    for existing in [key for key in headers if key.lower() == name.lower()]:
        del headers[existing]
