"""Shared enumerations for toolmesh."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class MCPTransport(str, Enum):
    """MCP connection transport type."""

    STDIO = "stdio"
    HTTP = "http"


class MCPAuthType(str, Enum):
    """Authentication scheme for HTTP transport."""

    NONE = "none"
    BEARER = "bearer"


class ClientState(str, Enum):
    """Protocol state of a single MCP client."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    DISPOSED = "disposed"


class ContentType(str, Enum):
    """Kind of a tool result content item."""

    TEXT = "text"
    IMAGE = "image"
    RESOURCE = "resource"
    AUDIO = "audio"
