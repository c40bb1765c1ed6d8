"""Stdio MCP client.

Spawns the configured command and speaks newline-delimited JSON-RPC over
its stdin/stdout. Requests are multiplexed: many may be in flight at once
and responses are matched by id, not by arrival order. stderr is treated
as diagnostics only.
"""

import asyncio
import codecs
import json
import os
from typing import Any

from toolmesh_core.config.models import ClientSettings, MCPServerConfig
from toolmesh_core.errors import create_error
from toolmesh_core.logging.logger import ToolmeshLogger
from toolmesh_core.types import ClientState, MCPTransport

from .base import BaseMCPClient
from .protocol import (
    JSONRPCMessage,
    JSONRPCResponse,
    malformed_response_error,
    parse_message,
    unwrap_result,
)

_READ_CHUNK = 64 * 1024

# (serialized line, id of the request it carries or None for notifications)
_Outgoing = tuple[str, int | None]


class StdioMCPClient(BaseMCPClient):
    """MCP client over a child process's stdio."""

    transport = MCPTransport.STDIO

    def __init__(
        self,
        config: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: ToolmeshLogger | None = None,
    ):
        """Initialize stdio client.

        Args:
            config: Server configuration
            settings: Timeouts, cache TTL and handshake identity
            logger: Optional logger
        """
        super().__init__(config, settings, logger)
        self._process: asyncio.subprocess.Process | None = None
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._buffer = ""
        self._spawn_lock = asyncio.Lock()
        self._write_queue: asyncio.Queue[_Outgoing] | None = None
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def is_running(self) -> bool:
        """Whether a live child process is attached."""
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def pending_count(self) -> int:
        """Number of requests currently awaiting a response."""
        return len(self._pending)

    # -------------------------------------------------------------------------
    # Process lifecycle
    # -------------------------------------------------------------------------

    async def _connect(self) -> None:
        await self._spawn_process()

    async def _spawn_process(self) -> None:
        """Start the server process once; concurrent callers share the start."""
        self._reap_exited()
        if self.is_running:
            return

        async with self._spawn_lock:
            if self.is_running:
                return

            if not self.config.command:
                raise create_error(
                    "MCP_CONFIG_INVALID",
                    detail="No command specified for stdio transport",
                    server_id=self.server_id,
                )

            env = {**os.environ, **self.config.env}
            try:
                process = await asyncio.create_subprocess_exec(
                    self.config.command,
                    *self.config.args,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                )
            except OSError as e:
                if self._logger:
                    self._logger.process_error(e)
                raise create_error(
                    "MCP_TRANSPORT_ERROR",
                    detail=f"Failed to start process '{self.config.command}': {e}",
                    server_id=self.server_id,
                ) from e

            self._process = process
            self._buffer = ""
            self._write_queue = asyncio.Queue()
            self._tasks = [
                asyncio.create_task(self._read_stdout(process)),
                asyncio.create_task(self._read_stderr(process)),
                asyncio.create_task(self._write_loop(process, self._write_queue)),
            ]
            if self._logger:
                self._logger.process_started(process.pid)

            # Give the process a moment to fail fast (bad args, missing deps)
            await asyncio.sleep(self.settings.spawn_grace)
            if self._process is not process or process.returncode is not None:
                raise create_error(
                    "MCP_TRANSPORT_ERROR",
                    detail="Process failed to start",
                    server_id=self.server_id,
                )

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        """Feed stdout into the line framer until EOF, then handle the exit."""
        assert process.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while chunk := await process.stdout.read(_READ_CHUNK):
                self._handle_stdout_data(decoder.decode(chunk))
        except (ConnectionError, OSError) as e:
            if self._logger:
                self._logger.process_error(e)

        returncode = await process.wait()
        self._handle_exit(process, returncode)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        try:
            while line := await process.stderr.readline():
                text = line.decode("utf-8", errors="replace").rstrip()
                if text and self._logger:
                    self._logger.stderr(text)
        except (ConnectionError, OSError):
            return

    async def _write_loop(
        self,
        process: asyncio.subprocess.Process,
        queue: asyncio.Queue[_Outgoing],
    ) -> None:
        """Single writer per process, so lines never interleave."""
        assert process.stdin is not None
        while True:
            line, request_id = await queue.get()
            try:
                process.stdin.write(line.encode("utf-8"))
                await process.stdin.drain()
            except (ConnectionError, OSError, RuntimeError) as e:
                self._fail_request(request_id, e)

    def _fail_request(self, request_id: int | None, error: Exception) -> None:
        if self._logger:
            self._logger.process_error(f"write failed: {error}")
        if request_id is None:
            return
        future = self._pending.pop(request_id, None)
        if future is not None and not future.done():
            future.set_exception(
                create_error(
                    "MCP_TRANSPORT_ERROR",
                    detail=f"Failed to write to process: {error}",
                    server_id=self.server_id,
                )
            )

    def _handle_exit(self, process: asyncio.subprocess.Process, returncode: int | None) -> None:
        if self._process is not process:
            return
        if self._logger:
            self._logger.process_exited(returncode)
        if process.stdin is not None:
            process.stdin.close()
        self._cleanup()

    def _cleanup(self) -> None:
        """Detach the process and fail everything still waiting on it."""
        pending = list(self._pending.values())
        self._pending.clear()
        for future in pending:
            if not future.done():
                future.set_exception(
                    create_error(
                        "MCP_TRANSPORT_ERROR",
                        detail="Process terminated",
                        server_id=self.server_id,
                    )
                )

        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._tasks = []

        self._process = None
        self._write_queue = None
        self._buffer = ""
        if self._state != ClientState.DISPOSED:
            self._state = ClientState.UNINITIALIZED

    async def _close(self) -> None:
        process = self._process
        self._cleanup()
        if process is None or process.returncode is not None:
            return

        if process.stdin is not None:
            process.stdin.close()
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.settings.kill_grace)
        except ProcessLookupError:
            return
        except TimeoutError:
            process.kill()
            await process.wait()

    # -------------------------------------------------------------------------
    # Framing
    # -------------------------------------------------------------------------

    def _handle_stdout_data(self, data: str) -> None:
        """Append a stdout chunk and dispatch every complete line.

        The trailing fragment stays buffered until its newline arrives. Lines
        that are not JSON-RPC are diagnostic output and are skipped.
        """
        self._buffer += data
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        for line in lines:
            if not line.strip():
                continue
            try:
                decoded = json.loads(line)
            except ValueError:
                continue
            try:
                message = parse_message(decoded)
            except ValueError as e:
                self._reject_malformed(decoded, str(e))
                continue
            if isinstance(message, JSONRPCResponse):
                self._dispatch_response(message)

    def _dispatch_response(self, message: JSONRPCResponse) -> None:
        if not isinstance(message.id, int):
            return
        future = self._pending.pop(message.id, None)
        if future is None or future.done():
            # Late reply to a timed-out request, or an id we never sent
            return
        try:
            future.set_result(unwrap_result(message, self.server_id))
        except Exception as e:
            future.set_exception(e)

    def _reject_malformed(self, decoded: Any, reason: str) -> None:
        """Settle the request a malformed reply answers, if it is still pending."""
        if not isinstance(decoded, dict) or "method" in decoded:
            return
        request_id = decoded.get("id")
        if not isinstance(request_id, int):
            return
        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            return
        future.set_exception(malformed_response_error(decoded, reason, self.server_id))

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def _reap_exited(self) -> None:
        process = self._process
        if process is not None and process.returncode is not None:
            # Exited before the stdout reader reached EOF
            self._handle_exit(process, process.returncode)

    async def _ensure_initialized(self) -> None:
        self._reap_exited()
        await super()._ensure_initialized()

    def _live_queue(self) -> asyncio.Queue[_Outgoing]:
        """Write queue of the running process; never spawns one.

        Raises:
            ToolmeshError(MCP_TRANSPORT_ERROR): If no process is running
        """
        self._reap_exited()
        if not self.is_running or self._write_queue is None:
            raise create_error(
                "MCP_TRANSPORT_ERROR",
                detail="Process not running",
                server_id=self.server_id,
            )
        return self._write_queue

    async def _request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        queue = self._live_queue()

        request_id = self._next_id()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        line = JSONRPCMessage.encode_line(JSONRPCMessage.request(method, params, id=request_id))
        queue.put_nowait((line, request_id))

        try:
            return await asyncio.wait_for(future, timeout=self.settings.request_timeout)
        except TimeoutError:
            if self._logger:
                self._logger.request_timeout(method, request_id, self.settings.request_timeout_ms)
            raise create_error(
                "MCP_TIMEOUT",
                timeout_ms=self.settings.request_timeout_ms,
                server_id=self.server_id,
            ) from None
        finally:
            self._pending.pop(request_id, None)

    async def _notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        queue = self._live_queue()
        line = JSONRPCMessage.encode_line(JSONRPCMessage.notification(method, params))
        queue.put_nowait((line, None))
