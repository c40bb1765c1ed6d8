"""Streamable-HTTP MCP client.

Each JSON-RPC message is POSTed to the server URL. The server answers with
either plain JSON or an SSE stream carrying the JSON-RPC response(s).
"""

import asyncio
import json
from typing import Any

import httpx

from toolmesh_core.config.models import ClientSettings, MCPServerConfig
from toolmesh_core.errors import create_error
from toolmesh_core.logging.logger import ToolmeshLogger
from toolmesh_core.types import MCPAuthType, MCPTransport

from .base import BaseMCPClient
from .protocol import (
    JSONRPCMessage,
    JSONRPCResponse,
    malformed_response_error,
    parse_message,
    unwrap_result,
)
from .sse import parse_sse

SESSION_HEADER = "Mcp-Session-Id"


class HTTPMCPClient(BaseMCPClient):
    """MCP client over Streamable-HTTP."""

    transport = MCPTransport.HTTP

    def __init__(
        self,
        config: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: ToolmeshLogger | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            config: Server configuration
            settings: Timeouts, cache TTL and handshake identity
            logger: Optional logger
            http_transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(config, settings, logger)
        self._http_transport = http_transport
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        """Session issued by the server, echoed until reset()."""
        return self._session_id

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }

        if self.config.auth_type == MCPAuthType.BEARER and self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        if self._session_id:
            headers[SESSION_HEADER] = self._session_id

        return headers

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        """POST one message within the request budget.

        Raises:
            ToolmeshError: MCP_CONFIG_INVALID, MCP_TIMEOUT or MCP_TRANSPORT_ERROR
        """
        if not self.config.url:
            raise create_error(
                "MCP_CONFIG_INVALID",
                detail="No URL specified for HTTP transport",
                server_id=self.server_id,
            )

        timeout = self.settings.request_timeout
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                transport=self._http_transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.post(
                        self.config.url,
                        headers=self._build_headers(),
                        content=json.dumps(payload),
                    ),
                    timeout=timeout,
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise create_error(
                "MCP_TIMEOUT",
                timeout_ms=self.settings.request_timeout_ms,
                server_id=self.server_id,
            ) from e
        except httpx.HTTPError as e:
            raise create_error(
                "MCP_TRANSPORT_ERROR",
                detail=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__,
                server_id=self.server_id,
            ) from e

        new_session_id = response.headers.get(SESSION_HEADER)
        if new_session_id:
            self._session_id = new_session_id

        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        raise create_error(
            "MCP_TRANSPORT_ERROR",
            detail=f"HTTP {response.status_code}: {response.text}",
            server_id=self.server_id,
        )

    async def _request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        request_id = self._next_id()
        response = await self._post(JSONRPCMessage.request(method, params, id=request_id))

        if not response.is_success:
            self._raise_for_status(response)

        content_type = response.headers.get("Content-Type", "")
        if "text/event-stream" in content_type:
            return self._result_from_sse(response.text, request_id)

        decoded: Any = None
        try:
            decoded = json.loads(response.text)
            message = parse_message(decoded)
        except ValueError as e:
            if isinstance(decoded, dict):
                raise malformed_response_error(decoded, str(e), self.server_id) from e
            raise create_error(
                "MCP_INVALID_RESPONSE",
                detail=str(e),
                server_id=self.server_id,
            ) from e
        if not isinstance(message, JSONRPCResponse):
            raise create_error(
                "MCP_INVALID_RESPONSE",
                detail=f"expected a response to request {request_id}",
                server_id=self.server_id,
            )
        return unwrap_result(message, self.server_id)

    def _result_from_sse(self, body: str, request_id: int) -> Any:
        """Find the response to ``request_id`` among the events of an SSE body.

        Events may carry one JSON-RPC object or a batch array. Events that are
        not JSON, or that answer other ids, are skipped.
        """
        for event in parse_sse(body):
            try:
                decoded = json.loads(event.data)
            except ValueError:
                continue

            candidates = decoded if isinstance(decoded, list) else [decoded]
            for candidate in candidates:
                if not isinstance(candidate, dict) or candidate.get("id") != request_id:
                    continue
                try:
                    message = parse_message(candidate)
                except ValueError as e:
                    raise malformed_response_error(candidate, str(e), self.server_id) from e
                if isinstance(message, JSONRPCResponse):
                    return unwrap_result(message, self.server_id)

        raise create_error(
            "MCP_TRANSPORT_ERROR",
            detail="No matching response found in SSE stream",
            server_id=self.server_id,
        )

    async def _notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        response = await self._post(JSONRPCMessage.notification(method, params))

        # 202 Accepted is the expected answer to a notification
        if not response.is_success and response.status_code != 202:
            self._raise_for_status(response)

    async def _close(self) -> None:
        self._session_id = None
