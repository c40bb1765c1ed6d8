"""MCP client types for toolmesh."""

from dataclasses import dataclass, field
from typing import Any

from toolmesh_core.types import ContentType

EMPTY_RESULT_TEXT = "Tool executed successfully"


def default_input_schema() -> dict[str, Any]:
    """Schema used for tools that do not publish one."""
    return {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDefinition:
    """MCP tool as seen by the manager.

    ``name`` is the prefixed routing name; ``original_name`` is the only
    identifier the upstream server recognizes.
    """

    name: str
    description: str
    input_schema: dict[str, Any] = field(hash=False)
    server_id: str
    original_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "serverId": self.server_id,
            "originalName": self.original_name,
        }


@dataclass
class ToolContent:
    """One content item of a tool result.

    ``type`` is normally one of ContentType; other values reported by a
    server are passed through unchanged.
    """

    type: str
    text: str | None = None
    data: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"type": self.type}
        if self.text is not None:
            item["text"] = self.text
        if self.data is not None:
            item["data"] = self.data
        if self.mime_type is not None:
            item["mimeType"] = self.mime_type
        return item


@dataclass
class ToolResult:
    """Result of an MCP tool call. ``content`` is never empty."""

    content: list[ToolContent]
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Build an error-flagged result with a single text item."""
        return cls(content=[ToolContent(type=ContentType.TEXT.value, text=message)], is_error=True)

    @property
    def text(self) -> str:
        """Concatenated text items."""
        return "\n".join(item.text for item in self.content if item.text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [item.to_dict() for item in self.content],
            "isError": self.is_error,
        }


@dataclass
class CachedTools:
    """Tool listing of one client with the monotonic time it was fetched."""

    tools: list[ToolDefinition]
    timestamp: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.timestamp < ttl


@dataclass
class ConnectionTestResult:
    """Outcome of ``test_connection``; never raised, always returned."""

    success: bool
    error: str | None = None
    tool_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        if self.tool_count is not None:
            result["toolCount"] = self.tool_count
        return result
