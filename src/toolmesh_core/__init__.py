"""Toolmesh Core - MCP client subsystem.

Connects to remote (Streamable-HTTP) and local (stdio) MCP servers and
exposes their tools under one prefixed namespace.
"""

__version__ = "1.0.0"

from toolmesh_core.config import ClientSettings, MCPServerConfig, ServerConfigLoader
from toolmesh_core.errors import ToolmeshError, create_error
from toolmesh_core.logging import LogConfig, ToolmeshLogger
from toolmesh_core.mcp import MCPManager, ToolDefinition, ToolResult

__all__ = [
    "__version__",
    "ClientSettings",
    "MCPServerConfig",
    "ServerConfigLoader",
    "ToolmeshError",
    "create_error",
    "LogConfig",
    "ToolmeshLogger",
    "MCPManager",
    "ToolDefinition",
    "ToolResult",
]
