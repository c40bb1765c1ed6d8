"""Transport-agnostic MCP client contract.

Every client variant performs the same handshake, tool caching and result
normalization; subclasses only provide ``_request`` / ``_notify`` and their
own connection setup and teardown.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from toolmesh_core.config.models import ClientSettings, MCPServerConfig
from toolmesh_core.errors import create_error
from toolmesh_core.logging.logger import ServerLogger, ToolmeshLogger
from toolmesh_core.types import ClientState, ContentType, MCPTransport

from .naming import prefix_tool_name
from .protocol import (
    METHOD_INITIALIZE,
    METHOD_INITIALIZED,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
    CallToolResult,
    InitializeResult,
    ToolsListResult,
    validate_result,
)
from .types import (
    EMPTY_RESULT_TEXT,
    CachedTools,
    ConnectionTestResult,
    ToolContent,
    ToolDefinition,
    ToolResult,
    default_input_schema,
)


class BaseMCPClient(ABC):
    """One connection to one MCP server.

    State machine: UNINITIALIZED -> INITIALIZING -> INITIALIZED, back to
    UNINITIALIZED on reset (or, for stdio, process exit), DISPOSED for good
    after dispose().
    """

    transport: ClassVar[MCPTransport]

    def __init__(
        self,
        config: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: ToolmeshLogger | None = None,
    ):
        """Initialize MCP client.

        Args:
            config: Server configuration
            settings: Timeouts, cache TTL and handshake identity
            logger: Optional logger
        """
        self.config = config
        self.settings = settings or ClientSettings()
        self._logger: ServerLogger | None = (
            logger.server(config.id, config.name) if logger else None
        )
        self._state = ClientState.UNINITIALIZED
        self._init_lock = asyncio.Lock()
        self._request_id = 0
        self._tool_cache: CachedTools | None = None
        self._server_capabilities: dict[str, Any] | None = None
        self._server_info: dict[str, Any] | None = None

    # -------------------------------------------------------------------------
    # Config projections
    # -------------------------------------------------------------------------

    @property
    def server_id(self) -> str:
        return self.config.id

    @property
    def server_name(self) -> str:
        return self.config.name

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    @property
    def state(self) -> ClientState:
        """Current protocol state."""
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state == ClientState.INITIALIZED

    @property
    def server_capabilities(self) -> dict[str, Any] | None:
        """Capabilities advertised in the handshake, None before it."""
        return self._server_capabilities

    @property
    def server_info(self) -> dict[str, Any] | None:
        """``serverInfo`` reported in the handshake, None before it."""
        return self._server_info

    # -------------------------------------------------------------------------
    # Transport hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and return its ``result``.

        Raises:
            ToolmeshError: MCP_TRANSPORT_ERROR, MCP_TIMEOUT or MCP_PROTOCOL_ERROR
        """

    @abstractmethod
    async def _notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification."""

    async def _connect(self) -> None:
        """Prepare the transport before the handshake."""

    async def _close(self) -> None:
        """Release transport resources and transport-level session state."""

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _check_not_disposed(self) -> None:
        if self._state == ClientState.DISPOSED:
            raise create_error(
                "CLIENT_DISPOSED",
                server_name=self.server_name,
                server_id=self.server_id,
            )

    async def initialize(self) -> None:
        """Perform the MCP handshake once.

        Concurrent callers share one handshake; a failed handshake leaves
        the client UNINITIALIZED and re-raises.
        """
        self._check_not_disposed()
        if self._state == ClientState.INITIALIZED:
            return

        async with self._init_lock:
            self._check_not_disposed()
            if self._state == ClientState.INITIALIZED:
                return

            self._state = ClientState.INITIALIZING
            try:
                await self._connect()
                raw = await self._request(
                    METHOD_INITIALIZE,
                    {
                        "protocolVersion": self.settings.protocol_version,
                        "capabilities": {},
                        "clientInfo": self.settings.client_info(),
                    },
                )
                result: InitializeResult = validate_result(InitializeResult, raw, self.server_id)
                self._server_capabilities = result.capabilities
                self._server_info = result.server_info

                await self._notify(METHOD_INITIALIZED)
            except BaseException:
                if self._state == ClientState.INITIALIZING:
                    self._state = ClientState.UNINITIALIZED
                raise

            self._state = ClientState.INITIALIZED

        if self._logger:
            remote_name = (self._server_info or {}).get("name")
            self._logger.initialized(remote_name)

    async def _ensure_initialized(self) -> None:
        if self._state != ClientState.INITIALIZED:
            await self.initialize()

    async def test_connection(self) -> ConnectionTestResult:
        """Handshake and force a tool listing, reporting instead of raising.

        Returns:
            ConnectionTestResult with the tool count or the failure message
        """
        try:
            await self._ensure_initialized()
            tools = await self.list_tools(force_refresh=True)
        except Exception as e:
            return ConnectionTestResult(success=False, error=str(e) or type(e).__name__)
        return ConnectionTestResult(success=True, tool_count=len(tools))

    def clear_cache(self) -> None:
        """Drop cached tools; the next listing goes to the server."""
        self._tool_cache = None

    async def reset(self) -> None:
        """Return to the pre-handshake state so the next call re-handshakes."""
        await self._close()
        self._tool_cache = None
        self._server_capabilities = None
        self._server_info = None
        if self._state != ClientState.DISPOSED:
            self._state = ClientState.UNINITIALIZED

    async def dispose(self) -> None:
        """Reset and retire the client; it cannot be used afterwards."""
        await self.reset()
        self._state = ClientState.DISPOSED

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    async def list_tools(self, force_refresh: bool = False) -> list[ToolDefinition]:
        """List tools, from cache when fresh.

        Args:
            force_refresh: Ignore the cache

        Returns:
            Tool definitions with prefixed names
        """
        await self._ensure_initialized()

        now = time.monotonic()
        if (
            not force_refresh
            and self._tool_cache is not None
            and self._tool_cache.is_fresh(now, self.settings.cache_ttl)
        ):
            return self._tool_cache.tools

        # Server explicitly advertised capabilities without tools
        if self._server_capabilities is not None and self._server_capabilities.get("tools") is None:
            return []

        raw = await self._request(METHOD_TOOLS_LIST, {})
        result: ToolsListResult = validate_result(ToolsListResult, raw, self.server_id)

        tools = [
            ToolDefinition(
                name=prefix_tool_name(self.server_name, tool.name),
                description=tool.description or f"Tool from {self.server_name}",
                input_schema=tool.input_schema or default_input_schema(),
                server_id=self.server_id,
                original_name=tool.name,
            )
            for tool in result.tools or []
        ]

        self._tool_cache = CachedTools(tools=tools, timestamp=time.monotonic())
        return tools

    async def call_tool(self, original_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Invoke a tool by its server-local name.

        Tool-level failures come back as ``is_error`` results; only transport
        and protocol failures raise.

        Args:
            original_name: Unprefixed tool name
            arguments: Tool arguments

        Returns:
            Normalized ToolResult with at least one content item
        """
        await self._ensure_initialized()

        raw = await self._request(
            METHOD_TOOLS_CALL,
            {"name": original_name, "arguments": arguments},
        )
        result: CallToolResult = validate_result(CallToolResult, raw, self.server_id)

        content = [
            ToolContent(
                type=item.type,
                text=item.text,
                data=item.data,
                mime_type=item.mime_type,
            )
            for item in result.content or []
        ]
        if not content:
            content = [ToolContent(type=ContentType.TEXT.value, text=EMPTY_RESULT_TEXT)]

        return ToolResult(content=content, is_error=bool(result.is_error))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(server_id={self.server_id!r}, "
            f"server_name={self.server_name!r}, state={self._state.value})"
        )
