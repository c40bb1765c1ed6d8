"""Toolmesh Logging - Component-scoped colored logging."""

from .colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from .logger import (
    LogConfig,
    ServerLogger,
    ToolLogger,
    ToolmeshLogger,
)

__all__ = [
    # Logger classes
    "ToolmeshLogger",
    "ServerLogger",
    "ToolLogger",
    "LogConfig",
    # Colors
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
