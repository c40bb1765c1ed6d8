"""Rendering of MCP tools and results for the agent layer."""

from typing import Any

from toolmesh_core.types import ContentType

from .types import EMPTY_RESULT_TEXT, ToolDefinition, ToolResult

AGENT_DESCRIPTION_TAG = "[MCP]"


def format_tool_result(result: ToolResult) -> tuple[str, bool]:
    """Flatten a tool result into text an LLM can read.

    Text items contribute their text; images and resources become short
    placeholders since their payload is not text.

    Args:
        result: Result returned by MCPManager.call_tool

    Returns:
        (text, is_error)
    """
    parts: list[str] = []
    for item in result.content:
        if item.type == ContentType.TEXT and item.text:
            parts.append(item.text)
        elif item.type == ContentType.IMAGE and item.data:
            parts.append(f"[Image: {item.mime_type or 'image/png'}]")
        elif item.type == ContentType.RESOURCE:
            parts.append(f"[Resource: {item.mime_type or 'unknown'}]")

    return "\n".join(parts) or EMPTY_RESULT_TEXT, result.is_error


def describe_for_agent(tool: ToolDefinition) -> str:
    """Description shown in the agent's tool palette."""
    return f"{AGENT_DESCRIPTION_TAG} {tool.description}"


def to_agent_tool(tool: ToolDefinition) -> dict[str, Any]:
    """Tool palette entry: prefixed name, tagged description, input schema."""
    return {
        "name": tool.name,
        "description": describe_for_agent(tool),
        "input_schema": tool.input_schema,
    }
