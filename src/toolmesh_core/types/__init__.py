"""Shared types for toolmesh.

Import from here rather than submodules:
    from toolmesh_core.types import ClientState, MCPTransport
"""

from .enums import (
    ClientState,
    ContentType,
    LogFormat,
    LogLevel,
    MCPAuthType,
    MCPTransport,
)
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "MCPTransport",
    "MCPAuthType",
    "ClientState",
    "ContentType",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
