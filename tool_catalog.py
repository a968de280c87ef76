import copy
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class ToolDefinition(BaseModel):
    """One HTTP operation exposed as a named tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}, "required": []})
    method: str
    path_template: str
    # parameter name -> "path" | "query" | "header" | "cookie"
    parameter_locations: Dict[str, str] = Field(default_factory=dict)
    body_media_type: Optional[str] = None

    def has_body_property(self) -> bool:
        return "body" in (self.input_schema.get("properties") or {}) and "body" not in self.parameter_locations

    def to_listing(self) -> Dict[str, Any]:
        # Callers get their own copy; the catalog stays read-only
        return {"name": self.name, "description": self.description, "inputSchema": copy.deepcopy(self.input_schema)}


class ToolCatalog:
    """Ordered, read-only collection of tool definitions with a name lookup.

    Duplicate names keep every entry in the ordered list, but the lookup map
    points at the last definition seen.
    """

    def __init__(self, definitions: Iterable[ToolDefinition]):
        ordered: Tuple[ToolDefinition, ...] = tuple(definitions)
        lookup: Dict[str, ToolDefinition] = {}
        for tool in ordered:
            if tool.name in lookup:
                previous = lookup[tool.name]
                logger.warning(
                    "Duplicate tool name %s: %s %s replaces %s %s in lookup",
                    tool.name, tool.method, tool.path_template, previous.method, previous.path_template,
                )
            lookup[tool.name] = tool
        self._tools = ordered
        self._by_name = MappingProxyType(lookup)

    def by_name(self, name: str) -> Optional[ToolDefinition]:
        return self._by_name.get(name)

    def all(self) -> List[ToolDefinition]:
        return list(self._tools)

    def names(self) -> List[str]:
        return [tool.name for tool in self._tools]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.to_listing() for tool in self._tools]


def build_catalog(definitions: Iterable[ToolDefinition]) -> ToolCatalog:
    return ToolCatalog(definitions)
