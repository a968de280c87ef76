import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import BridgeError, ErrorKind, ToolExecutionError, ToolNotFoundError
from http_client import HttpClient
from request_builder import RequestBuilder
from response_normalizer import normalize_response
from tool_catalog import ToolCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Either a success value or a failure message, never both."""

    success: bool
    value: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, value: Any) -> "ToolResult":
        return cls(success=True, value=value)

    @classmethod
    def failure(cls, error: BridgeError) -> "ToolResult":
        status = error.status_code if isinstance(error, ToolExecutionError) else None
        return cls(success=False, error=str(error), error_kind=error.kind, status_code=status)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": self.value}
        return {"failure": self.error}


class ToolExecutor:
    """Looks up a tool, builds its request, sends it, and normalizes the reply."""

    def __init__(self, catalog: ToolCatalog, builder: RequestBuilder, client: HttpClient):
        self.catalog = catalog
        self.builder = builder
        self.client = client

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self.catalog.by_name(name)
        if tool is None:
            logger.error("Tool not found: %s", name)
            return ToolResult.failure(ToolNotFoundError(name))

        logger.debug("Executing tool: %s with method: %s path: %s", tool.name, tool.method, tool.path_template)
        try:
            plan = self.builder.build(tool, arguments or {})
            response = await self.client.send(plan)
            value = normalize_response(response)
        except BridgeError as e:
            logger.error("Tool '%s' execution failed: %s", name, e)
            return ToolResult.failure(e)
        except Exception as e:
            logger.exception("Unexpected error executing tool %s", name)
            return ToolResult.failure(ToolExecutionError(f"Unexpected error: {e}"))

        logger.info("Tool '%s' executed successfully", name)
        return ToolResult.ok(value)
