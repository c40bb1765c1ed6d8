"""Toolmesh Configuration - MCP server config loading and validation."""

from .loader import ServerConfigLoader, is_private_host, resolve_env_vars
from .models import DEFAULT_PROTOCOL_VERSION, ClientSettings, MCPServerConfig

__all__ = [
    # Config models
    "MCPServerConfig",
    "ClientSettings",
    "DEFAULT_PROTOCOL_VERSION",
    # Loader
    "ServerConfigLoader",
    "resolve_env_vars",
    "is_private_host",
]
