"""Unit tests for the stdio MCP client.

Framing and dispatch are tested directly against the client's buffer.
Process tests run tests/fixtures/fake_mcp_server.py with this interpreter.
"""

import asyncio
import sys

import pytest

from toolmesh_core.config import ClientSettings, MCPServerConfig
from toolmesh_core.errors import ToolmeshError
from toolmesh_core.mcp.stdio_client import StdioMCPClient
from toolmesh_core.types import ClientState, MCPTransport


def _pending(client, request_id):
    future = asyncio.get_running_loop().create_future()
    client._pending[request_id] = future
    return future


class TestFraming:
    """Tests for newline-delimited JSON-RPC framing."""

    @pytest.mark.asyncio
    async def test_complete_line_resolves_pending(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data('{"jsonrpc":"2.0","id":1,"result":{"ok":true}}\n')

        assert future.result() == {"ok": True}
        assert client.pending_count == 0

    @pytest.mark.asyncio
    async def test_partial_line_is_buffered(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data('{"jsonrpc":"2.0",')
        assert not future.done()

        client._handle_stdout_data('"id":1,"result":"done"}\n{"jsonrpc"')
        assert future.result() == "done"
        assert client._buffer == '{"jsonrpc"'

    @pytest.mark.asyncio
    async def test_responses_matched_by_id_not_order(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        first = _pending(client, 1)
        second = _pending(client, 2)

        client._handle_stdout_data(
            '{"jsonrpc":"2.0","id":2,"result":"two"}\n{"jsonrpc":"2.0","id":1,"result":"one"}\n'
        )

        assert first.result() == "one"
        assert second.result() == "two"

    @pytest.mark.asyncio
    async def test_garbage_and_blank_lines_skipped(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 5)

        client._handle_stdout_data('\n  \nStarting server...\n{not json}\n{"jsonrpc":"2.0","id":5,"result":1}\n')

        assert future.result() == 1

    @pytest.mark.asyncio
    async def test_unknown_id_ignored(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data('{"jsonrpc":"2.0","id":99,"result":"late"}\n')

        assert not future.done()
        assert client.pending_count == 1

    @pytest.mark.asyncio
    async def test_error_member_rejects_with_protocol_error(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 3)

        client._handle_stdout_data(
            '{"jsonrpc":"2.0","id":3,"error":{"code":-32601,"message":"Method not found"}}\n'
        )

        with pytest.raises(ToolmeshError) as exc_info:
            future.result()
        assert exc_info.value.code == "MCP_PROTOCOL_ERROR"
        assert exc_info.value.message == "MCP Error -32601: Method not found"

    @pytest.mark.asyncio
    async def test_server_notifications_ignored(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data('{"jsonrpc":"2.0","method":"notifications/message","params":{}}\n')

        assert not future.done()

    @pytest.mark.asyncio
    async def test_malformed_error_member_rejects_immediately(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data('{"jsonrpc":"2.0","id":1,"error":"boom"}\n')

        with pytest.raises(ToolmeshError) as exc_info:
            future.result()
        assert exc_info.value.code == "MCP_PROTOCOL_ERROR"
        assert exc_info.value.message == "MCP Error -32603: boom"
        assert client.pending_count == 0

    @pytest.mark.asyncio
    async def test_reply_without_result_or_error_rejects_immediately(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 2)

        client._handle_stdout_data('{"jsonrpc":"2.0","id":2}\n')

        with pytest.raises(ToolmeshError) as exc_info:
            future.result()
        assert exc_info.value.code == "MCP_INVALID_RESPONSE"
        assert client.pending_count == 0

    @pytest.mark.asyncio
    async def test_malformed_reply_to_unknown_id_ignored(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        future = _pending(client, 1)

        client._handle_stdout_data(
            '{"jsonrpc":"2.0","id":42,"error":"boom"}\n{"jsonrpc":"2.0","id":1,"method":7}\n'
        )

        assert not future.done()
        assert client.pending_count == 1

    @pytest.mark.asyncio
    async def test_cleanup_rejects_all_pending(self, stdio_config):
        client = StdioMCPClient(stdio_config)
        futures = [_pending(client, i) for i in (1, 2, 3)]
        client._buffer = "partial"

        client._cleanup()

        for future in futures:
            with pytest.raises(ToolmeshError) as exc_info:
                future.result()
            assert exc_info.value.message == "Process terminated"
        assert client.pending_count == 0
        assert client._buffer == ""
        assert client.state == ClientState.UNINITIALIZED


class TestRequests:
    """Tests for sending without a running process."""

    @pytest.mark.asyncio
    async def test_request_never_spawns(self, stdio_config):
        client = StdioMCPClient(stdio_config)

        with pytest.raises(ToolmeshError) as exc_info:
            await client._request("tools/list", {})

        assert exc_info.value.code == "MCP_TRANSPORT_ERROR"
        assert exc_info.value.message == "Process not running"
        assert client.pid is None
        assert client.pending_count == 0


class TestConfiguration:
    """Tests for configuration failures."""

    @pytest.mark.asyncio
    async def test_missing_command(self):
        client = StdioMCPClient(
            MCPServerConfig(id="s", name="S", transport=MCPTransport.STDIO)
        )

        with pytest.raises(ToolmeshError) as exc_info:
            await client.initialize()

        assert exc_info.value.code == "MCP_CONFIG_INVALID"
        assert exc_info.value.message == "No command specified for stdio transport"
        assert client.state == ClientState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_missing_executable(self, fast_settings):
        client = StdioMCPClient(
            MCPServerConfig(
                id="s",
                name="S",
                transport=MCPTransport.STDIO,
                command="/nonexistent/toolmesh-test-binary",
            ),
            settings=fast_settings,
        )

        with pytest.raises(ToolmeshError) as exc_info:
            await client.initialize()

        assert exc_info.value.code == "MCP_TRANSPORT_ERROR"
        assert not client.is_running


@pytest.mark.mcp_client
class TestWithProcess:
    """Tests against a real child process."""

    @pytest.mark.asyncio
    async def test_handshake_and_list_tools(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            tools = await client.list_tools()

            assert client.is_running
            assert client.server_info["name"] == "fake-server"
            names = [t.name for t in tools]
            assert "mcp__local_server__echo" in names
            empty = next(t for t in tools if t.original_name == "empty")
            assert empty.description == "Tool from Local Server"
            assert empty.input_schema == {"type": "object", "properties": {}}
        finally:
            await client.dispose()

        assert not client.is_running

    @pytest.mark.asyncio
    async def test_call_tool_round_trip(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            result = await client.call_tool("echo", {"text": "hello"})
            empty = await client.call_tool("empty", {})
            failed = await client.call_tool("fail", {})

            assert result.text == "hello"
            assert empty.text == "Tool executed successfully"
            assert failed.is_error is True
            assert failed.text == "boom"
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_calls_multiplexed(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            await client.initialize()
            results = await asyncio.gather(
                *(client.call_tool("echo", {"text": str(i)}) for i in range(10))
            )

            assert [r.text for r in results] == [str(i) for i in range(10)]
            assert client.pending_count == 0
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_timeout_removes_pending_and_ignores_late_reply(self, stdio_config):
        settings = ClientSettings(request_timeout=0.3, spawn_grace=0.05, kill_grace=1.0)
        client = StdioMCPClient(stdio_config, settings=settings)
        try:
            await client.initialize()

            with pytest.raises(ToolmeshError) as exc_info:
                await client.call_tool("slow", {"delay": 0.6})

            assert exc_info.value.code == "MCP_TIMEOUT"
            assert exc_info.value.message == "Request timeout after 300ms"
            assert client.pending_count == 0

            # The late reply arrives and is dropped
            await asyncio.sleep(0.5)
            result = await client.call_tool("echo", {"text": "still alive"})
            assert result.text == "still alive"
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_process_exit_rejects_pending(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            await client.initialize()

            with pytest.raises(ToolmeshError) as exc_info:
                await client.call_tool("crash", {})

            assert exc_info.value.message == "Process terminated"
            assert client.state == ClientState.UNINITIALIZED
            assert not client.is_running

            # Next call respawns and re-handshakes
            result = await client.call_tool("echo", {"text": "again"})
            assert result.text == "again"
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_exit_noticed_before_reader_rehandshakes(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            await client.initialize()
            process = client._process
            pid = client.pid

            # Stop the readers so only returncode reveals the exit
            tasks = list(client._tasks)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            process.kill()
            await process.wait()

            assert client.state == ClientState.INITIALIZED
            assert not client.is_running

            # The server refuses tools/call before a handshake, so success
            # means the new process was initialized first
            result = await client.call_tool("echo", {"text": "after exit"})

            assert result.text == "after exit"
            assert client.state == ClientState.INITIALIZED
            assert client.pid != pid
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_env_passed_to_process(self, fake_server_script, fast_settings):
        config = MCPServerConfig(
            id="env",
            name="Env",
            transport=MCPTransport.STDIO,
            command="sh",
            args=("-c", 'exec "$PY" "$SCRIPT"'),
            env={"PY": sys.executable, "SCRIPT": str(fake_server_script)},
        )
        client = StdioMCPClient(config, settings=fast_settings)
        try:
            result = await client.test_connection()

            assert result.success is True
            assert result.tool_count == 5
        finally:
            await client.dispose()

    @pytest.mark.asyncio
    async def test_reset_terminates_process(self, stdio_config, fast_settings):
        client = StdioMCPClient(stdio_config, settings=fast_settings)
        try:
            await client.initialize()
            pid = client.pid

            await client.reset()

            assert pid is not None
            assert client.pid is None
            assert client.state == ClientState.UNINITIALIZED

            await client.initialize()
            assert client.pid != pid
        finally:
            await client.dispose()
