"""Prefixed tool names: ``mcp__{server}__{tool}``."""

import re

MCP_TOOL_PREFIX = "mcp__"

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def sanitize_name(name: str) -> str:
    """Reduce a name to lowercase ``[a-z0-9_]`` without repeated or edge underscores."""
    sanitized = _UNSAFE_CHARS.sub("_", name.lower())
    sanitized = _UNDERSCORE_RUNS.sub("_", sanitized)
    return sanitized.strip("_")


def prefix_tool_name(server_name: str, tool_name: str) -> str:
    """Build the manager-visible name of a server tool.

    >>> prefix_tool_name("My Server!", "Get Data")
    'mcp__my_server__get_data'
    """
    return f"{MCP_TOOL_PREFIX}{sanitize_name(server_name)}__{sanitize_name(tool_name)}"


def is_mcp_tool(name: str) -> bool:
    """Check if a tool name belongs to the MCP namespace."""
    return name.startswith(MCP_TOOL_PREFIX)
