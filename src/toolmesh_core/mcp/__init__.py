"""Toolmesh MCP clients - HTTP and stdio connections plus the aggregating manager."""

from .base import BaseMCPClient
from .formatting import describe_for_agent, format_tool_result, to_agent_tool
from .http_client import HTTPMCPClient
from .manager import MCPManager, ToolRoute, create_client, probe_server
from .naming import MCP_TOOL_PREFIX, is_mcp_tool, prefix_tool_name, sanitize_name
from .protocol import JSONRPCMessage
from .sse import SSEEvent, parse_sse
from .stdio_client import StdioMCPClient
from .types import (
    CachedTools,
    ConnectionTestResult,
    ToolContent,
    ToolDefinition,
    ToolResult,
)

__all__ = [
    # Clients
    "BaseMCPClient",
    "HTTPMCPClient",
    "StdioMCPClient",
    # Manager
    "MCPManager",
    "ToolRoute",
    "create_client",
    "probe_server",
    # Types
    "ToolDefinition",
    "ToolContent",
    "ToolResult",
    "CachedTools",
    "ConnectionTestResult",
    # Naming
    "MCP_TOOL_PREFIX",
    "sanitize_name",
    "prefix_tool_name",
    "is_mcp_tool",
    # Wire
    "JSONRPCMessage",
    "SSEEvent",
    "parse_sse",
    # Formatting
    "format_tool_result",
    "describe_for_agent",
    "to_agent_tool",
]
