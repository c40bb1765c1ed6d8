"""MCP Manager - aggregates many MCP servers into one tool namespace."""

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from toolmesh_core.config.models import ClientSettings, MCPServerConfig
from toolmesh_core.errors import create_error, get_error_factory
from toolmesh_core.logging.logger import ToolmeshLogger
from toolmesh_core.types import LogLevel, MCPTransport

from .base import BaseMCPClient
from .http_client import HTTPMCPClient
from .naming import is_mcp_tool
from .stdio_client import StdioMCPClient
from .types import ConnectionTestResult, ToolDefinition, ToolResult

ClientFactory = Callable[
    [MCPServerConfig, ClientSettings | None, ToolmeshLogger | None], BaseMCPClient
]


def create_client(
    config: MCPServerConfig,
    settings: ClientSettings | None = None,
    logger: ToolmeshLogger | None = None,
) -> BaseMCPClient:
    """Build the client variant for a server's transport (http by default)."""
    if config.transport == MCPTransport.STDIO:
        return StdioMCPClient(config, settings, logger)
    return HTTPMCPClient(config, settings, logger)


async def probe_server(
    config: MCPServerConfig,
    settings: ClientSettings | None = None,
    logger: ToolmeshLogger | None = None,
    client_factory: ClientFactory = create_client,
) -> ConnectionTestResult:
    """Test a server with a throwaway client.

    The client is disposed afterwards whatever the outcome, so a probed
    stdio server never outlives the probe.

    Args:
        config: Server to probe
        settings: Client settings
        logger: Optional logger
        client_factory: Client constructor

    Returns:
        ConnectionTestResult
    """
    client = client_factory(config, settings, logger)
    try:
        return await client.test_connection()
    finally:
        await client.dispose()


@dataclass(frozen=True)
class ToolRoute:
    """Where a prefixed tool name is served."""

    client: BaseMCPClient
    original_name: str


class MCPManager:
    """Manages the MCP clients of all configured servers.

    One server failing to start never affects the others: its error is
    recorded and its tools are simply absent from the namespace.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        logger: ToolmeshLogger | None = None,
        client_factory: ClientFactory = create_client,
    ):
        """Initialize MCP manager.

        Args:
            settings: Settings shared by every client
            logger: Optional logger
            client_factory: Client constructor (tests inject fakes)
        """
        self._settings = settings
        self._logger = logger
        self._client_factory = client_factory
        self._clients: dict[str, BaseMCPClient] = {}
        self._tool_to_server: dict[str, ToolRoute] = {}
        self._init_errors: dict[str, str] = {}

    def _log(self, message: str, level: LogLevel = LogLevel.INFO, **context: Any) -> None:
        if self._logger:
            self._logger.manager(message, level=level, **context)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self, configs: Iterable[MCPServerConfig]) -> None:
        """Replace the managed servers with ``configs`` and connect to them.

        Previous clients are disposed first. Disabled configs are skipped.
        Connection failures are recorded in ``get_init_errors()``; this method
        does not raise for them.

        Args:
            configs: Server configurations
        """
        await self.dispose_all()

        for config in configs:
            if not config.enabled:
                continue
            self._clients[config.id] = self._client_factory(config, self._settings, self._logger)

        if not self._clients:
            self._log("No MCP servers configured")
            return

        self._log(f"Connecting to {len(self._clients)} MCP server(s)")

        clients = list(self._clients.values())
        await asyncio.gather(
            *(self._initialize_one(client) for client in clients),
            return_exceptions=True,
        )

        self._log(
            f"Connected to {len(clients) - len(self._init_errors)}/{len(clients)} servers, "
            f"{len(self._tool_to_server)} tool(s) available",
            servers=len(clients),
            failed=len(self._init_errors),
        )

    async def _initialize_one(self, client: BaseMCPClient) -> None:
        """Handshake and list tools for one client, recording any failure."""
        server_logger = (
            self._logger.server(client.server_id, client.server_name) if self._logger else None
        )
        try:
            await client.initialize()
            tools = await client.list_tools()
        except Exception as e:
            self._init_errors[client.server_id] = _error_message(e)
            if server_logger:
                server_logger.failed(e)
            return

        for tool in tools:
            self._tool_to_server[tool.name] = ToolRoute(client, tool.original_name)

        if server_logger:
            server_logger.connected(client.transport.value, len(tools))

    async def reset_all(self) -> None:
        """Reset every client and forget routes and errors; clients are kept."""
        await asyncio.gather(
            *(client.reset() for client in self._clients.values()),
            return_exceptions=True,
        )
        self._tool_to_server.clear()
        self._init_errors.clear()

    async def dispose_all(self) -> None:
        """Dispose every client and drop all state."""
        clients = list(self._clients.values())
        self._clients.clear()
        self._tool_to_server.clear()
        self._init_errors.clear()
        if not clients:
            return

        results = await asyncio.gather(
            *(client.dispose() for client in clients),
            return_exceptions=True,
        )
        for client, result in zip(clients, results, strict=True):
            if isinstance(result, Exception):
                self._log(
                    f"Error disposing MCP client '{client.server_id}': {result}",
                    level=LogLevel.WARN,
                )

    async def __aenter__(self) -> "MCPManager":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.dispose_all()

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    async def get_all_tools(self) -> list[ToolDefinition]:
        """Concatenate the tool listings of all enabled servers.

        A server whose listing fails is logged and left out.

        Returns:
            Tool definitions in server registration order
        """
        clients = [client for client in self._clients.values() if client.is_enabled]
        results = await asyncio.gather(
            *(client.list_tools() for client in clients),
            return_exceptions=True,
        )

        tools: list[ToolDefinition] = []
        for client, result in zip(clients, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                if self._logger:
                    self._logger.server(client.server_id, client.server_name).listing_failed(
                        result
                    )
                continue
            tools.extend(result)
        return tools

    async def call_tool(self, prefixed_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Route a call to the server owning ``prefixed_name``.

        Never raises: unknown tools and transport failures come back as
        error-flagged results.

        Args:
            prefixed_name: Tool name as returned by get_all_tools
            arguments: Tool arguments

        Returns:
            ToolResult
        """
        route = self._tool_to_server.get(prefixed_name)
        if route is None:
            return ToolResult.error(create_error("MCP_UNKNOWN_TOOL", tool_name=prefixed_name).message)

        tool_logger = self._logger.tool() if self._logger else None
        if tool_logger:
            tool_logger.calling(prefixed_name, arguments)

        start = time.monotonic()
        try:
            result = await route.client.call_tool(route.original_name, arguments)
        except Exception as e:
            message = f"Error calling MCP tool: {_error_message(e)}"
            if tool_logger:
                tool_logger.error(prefixed_name, message, _elapsed_ms(start))
            return ToolResult.error(message)

        if tool_logger:
            tool_logger.result(prefixed_name, result.text, _elapsed_ms(start))
        return result

    def is_mcp_tool(self, name: str) -> bool:
        """Whether ``name`` has the MCP prefix (routable or not)."""
        return is_mcp_tool(name)

    def clear_all_caches(self) -> None:
        """Drop every client's tool cache."""
        for client in self._clients.values():
            client.clear_cache()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def server_count(self) -> int:
        """Number of registered clients, failed ones included."""
        return len(self._clients)

    @property
    def tool_count(self) -> int:
        """Number of routable tools."""
        return len(self._tool_to_server)

    def get_init_errors(self) -> dict[str, str]:
        """Initialization failures by server id (a copy)."""
        return dict(self._init_errors)

    def get_client(self, server_id: str) -> BaseMCPClient | None:
        return self._clients.get(server_id)


def _error_message(error: Exception) -> str:
    return get_error_factory().from_exception(error).message


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
