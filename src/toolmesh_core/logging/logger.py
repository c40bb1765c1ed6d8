"""Toolmesh Logger - Component-scoped colored logging for MCP connections."""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from toolmesh_core.logging.colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from toolmesh_core.types import LogFormat, LogLevel


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True
    show_results: bool = True
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO = field(default=sys.stderr)

    def __post_init__(self) -> None:
        """Initialize default components if not provided."""
        if not self.components:
            self.components = {
                "manager": True,
                "server": True,
                "tool": True,
            }


class ToolmeshLogger:
    """Main logger facade. Creates component-specific loggers."""

    def __init__(self, config: LogConfig | None = None):
        """Initialize logger with configuration.

        Args:
            config: Logger configuration (defaults to LogConfig())
        """
        self.config = config or LogConfig()
        self._level_order = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def server(self, server_id: str, server_name: str) -> "ServerLogger":
        """Get a logger scoped to one MCP server connection.

        Args:
            server_id: Server identifier
            server_name: Human-readable server name

        Returns:
            ServerLogger instance
        """
        return ServerLogger(self, server_id, server_name)

    def tool(self) -> "ToolLogger":
        """Get a logger for routed tool calls.

        Returns:
            ToolLogger instance
        """
        return ToolLogger(self)

    def manager(self, message: str, level: LogLevel = LogLevel.INFO, **context: Any) -> None:
        """Log a manager-level event.

        Args:
            message: Log message
            level: Log level
            **context: Additional context data
        """
        self._log(level, "manager", message, context or None)

    def configure(self, config: LogConfig) -> None:
        """Update configuration (for hot-reload).

        Args:
            config: New logger configuration
        """
        self.config = config

    def _should_log(self, level: LogLevel) -> bool:
        return self._level_order.get(level, 0) >= self._level_order.get(self.config.level, 1)

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method.

        Args:
            level: Log level
            component: Component name (manager, server, tool)
            message: Log message
            context: Additional context data
        """
        if not self._should_log(level):
            return

        if not self.config.components.get(component, True):
            return

        if self.config.format == LogFormat.JSON:
            self._log_json(level, component, message, context)
        else:
            self._log_colored(level, component, message, context)

    def _log_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if context:
            log_entry.update(context)

        print(json.dumps(log_entry, default=str), file=self.config.output)

    def _log_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        level_colors = {
            LogLevel.DEBUG: LIGHT_BLUE,
            LogLevel.INFO: CYAN,
            LogLevel.WARN: YELLOW,
            LogLevel.ERROR: RED,
        }

        color = level_colors.get(level, RESET)
        component_color = {
            "manager": MAGENTA,
            "server": ORANGE,
            "tool": GREEN,
        }.get(component, RESET)

        # Format: [COMPONENT] message
        output = f"{component_color}[{component.upper()}]{RESET} {color}{message}{RESET}"

        if context and self.config.show_params:
            context_str = str(context)
            if len(context_str) > self.config.truncate_at:
                context_str = context_str[: self.config.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{context_str}{RESET}"

        print(output, file=self.config.output)


class ServerLogger:
    """Logger for events of a single MCP server connection."""

    def __init__(self, parent: ToolmeshLogger, server_id: str, server_name: str):
        """Initialize server logger.

        Args:
            parent: Parent ToolmeshLogger instance
            server_id: Server identifier
            server_name: Human-readable server name
        """
        self.parent = parent
        self.server_id = server_id
        self.server_name = server_name

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context = {"server_id": self.server_id, "server": self.server_name, "event": event}
        context.update({k: v for k, v in extra.items() if v is not None})
        return context

    def connected(self, transport: str, tool_count: int) -> None:
        """Log a completed handshake plus tool discovery.

        Args:
            transport: Transport name (http, stdio)
            tool_count: Number of tools discovered
        """
        message = (
            f'Connected to "{self.server_name}" ({transport}) - {tool_count} tool(s) available'
        )
        self.parent._log(
            LogLevel.INFO,
            "server",
            message,
            self._context("server_connected", transport=transport, tool_count=tool_count),
        )

    def initialized(self, remote_name: str | None) -> None:
        """Log a completed protocol handshake.

        Args:
            remote_name: Name the server reported in serverInfo
        """
        self.parent._log(
            LogLevel.DEBUG,
            "server",
            f'Initialized "{self.server_name}": {remote_name or "unknown"}',
            self._context("server_initialized", remote_name=remote_name),
        )

    def failed(self, error: Exception | str) -> None:
        """Log a failed initialization.

        Args:
            error: Exception or message describing the failure
        """
        self.parent._log(
            LogLevel.ERROR,
            "server",
            f'Failed to initialize server "{self.server_name}": {error}',
            self._context("server_failed", error=str(error)),
        )

    def listing_failed(self, error: Exception | str) -> None:
        """Log a failed tool listing.

        Args:
            error: Exception or message describing the failure
        """
        self.parent._log(
            LogLevel.ERROR,
            "server",
            f'Failed to get tools from MCP server "{self.server_name}": {error}',
            self._context("tools_list_failed", error=str(error)),
        )

    def process_started(self, pid: int | None) -> None:
        """Log a spawned stdio process.

        Args:
            pid: Process id
        """
        self.parent._log(
            LogLevel.DEBUG,
            "server",
            f'Process started for "{self.server_name}" (pid={pid})',
            self._context("process_started", pid=pid),
        )

    def process_error(self, error: Exception | str) -> None:
        """Log a stdio process error.

        Args:
            error: Exception or message describing the failure
        """
        self.parent._log(
            LogLevel.ERROR,
            "server",
            f'Process error for "{self.server_name}": {error}',
            self._context("process_error", error=str(error)),
        )

    def process_exited(self, returncode: int | None) -> None:
        """Log a stdio process exit.

        Args:
            returncode: Exit code (negative for signals)
        """
        self.parent._log(
            LogLevel.INFO,
            "server",
            f'Process exited for "{self.server_name}": code={returncode}',
            self._context("process_exited", returncode=returncode),
        )

    def stderr(self, text: str) -> None:
        """Log a diagnostic line written to the server's stderr.

        Args:
            text: Line content
        """
        self.parent._log(
            LogLevel.WARN,
            "server",
            f'stderr from "{self.server_name}": {text}',
            self._context("process_stderr"),
        )

    def request_timeout(self, method: str, request_id: int, timeout_ms: int) -> None:
        """Log a request that exceeded its budget.

        Args:
            method: JSON-RPC method
            request_id: Request id
            timeout_ms: Budget in milliseconds
        """
        self.parent._log(
            LogLevel.WARN,
            "server",
            f'Request {request_id} ({method}) to "{self.server_name}" timed out after '
            f"{timeout_ms}ms",
            self._context("request_timeout", method=method, request_id=request_id),
        )


class ToolLogger:
    """Logger for routed tool call events."""

    def __init__(self, parent: ToolmeshLogger):
        """Initialize tool logger.

        Args:
            parent: Parent ToolmeshLogger instance
        """
        self.parent = parent

    def calling(self, tool_name: str, params: dict[str, Any] | None = None) -> None:
        """Log tool call start.

        Args:
            tool_name: Prefixed name of the tool being called
            params: Optional tool arguments
        """
        context: dict[str, Any] = {"event": "tool_calling", "tool_name": tool_name}
        if params:
            context["params"] = params

        self.parent._log(LogLevel.DEBUG, "tool", f"Calling tool '{tool_name}'", context)

    def result(self, tool_name: str, result: Any, duration_ms: int) -> None:
        """Log tool call result.

        Args:
            tool_name: Prefixed name of the tool
            result: Tool result
            duration_ms: Execution duration in milliseconds
        """
        context: dict[str, Any] = {
            "event": "tool_result",
            "tool_name": tool_name,
            "duration_ms": duration_ms,
        }

        duration_s = duration_ms / 1000
        message = f"Tool '{tool_name}' completed ({duration_s:.2f}s) ✓"

        if self.parent.config.show_results:
            result_str = str(result)
            if len(result_str) > self.parent.config.truncate_at:
                result_str = result_str[: self.parent.config.truncate_at] + "..."
            context["result"] = result_str

        self.parent._log(LogLevel.INFO, "tool", message, context)

    def error(self, tool_name: str, error: str, duration_ms: int) -> None:
        """Log tool call error.

        Args:
            tool_name: Prefixed name of the tool
            error: Error message
            duration_ms: Execution duration in milliseconds
        """
        context = {
            "event": "tool_error",
            "tool_name": tool_name,
            "duration_ms": duration_ms,
            "error": error,
        }

        duration_s = duration_ms / 1000
        message = f"Tool '{tool_name}' failed ({duration_s:.2f}s): {error}"

        self.parent._log(LogLevel.ERROR, "tool", message, context)
