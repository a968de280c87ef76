import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from errors import ToolExecutionError

logger = logging.getLogger(__name__)


@dataclass
class RawResponse:
    """The parts of an HTTP response the normalizer needs, read fully into memory."""

    status: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""


def is_json_content_type(content_type: str) -> bool:
    base = content_type.split(";", 1)[0].strip().lower()
    return base == "application/json" or base.endswith("+json")


def normalize_response(response: RawResponse) -> Any:
    """Return parsed JSON or raw text; raise ToolExecutionError for failures."""
    if not 200 <= response.status < 300:
        logger.error("HTTP error %s: %s", response.status, response.text[:500])
        raise ToolExecutionError(
            f"HTTP {response.status} error: {response.text}",
            status_code=response.status,
            body=response.text,
        )

    if not is_json_content_type(response.content_type):
        return response.text

    if not response.text.strip():
        return None
    try:
        return json.loads(response.text)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse JSON response: %s", e)
        raise ToolExecutionError(
            f"Failed to parse JSON response: {e}",
            status_code=response.status,
            body=response.text,
        ) from e
