"""ANSI color codes for log output.

Colors use the 256-color palette so that output looks the same across
terminals. Used by ToolmeshLogger's colored format:

    from toolmesh_core.logging.colors import GREEN, RESET

    print(f"{GREEN}[TOOL]{RESET} done")
"""

RESET = "\033[0m"

# Levels
LIGHT_BLUE = "\033[38;5;153m"  # DEBUG and context payloads
CYAN = "\033[38;5;51m"  # INFO
YELLOW = "\033[38;5;226m"  # WARN
RED = "\033[38;5;196m"  # ERROR

# Components
MAGENTA = "\033[38;5;201m"  # manager
ORANGE = "\033[38;5;208m"  # server connections
GREEN = "\033[38;5;82m"  # routed tool calls

__all__ = [
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
