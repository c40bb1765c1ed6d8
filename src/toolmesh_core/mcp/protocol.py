"""JSON-RPC protocol helpers for MCP communication.

Outgoing messages are built as plain dicts by ``JSONRPCMessage``. Incoming
messages are validated at the parse boundary into pydantic models, so the
rest of the client never touches untyped payloads.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from toolmesh_core.errors import ToolmeshError, create_error

JSONRPC_VERSION = "2.0"

# MCP method names used by the clients
METHOD_INITIALIZE = "initialize"
METHOD_INITIALIZED = "notifications/initialized"
METHOD_TOOLS_LIST = "tools/list"
METHOD_TOOLS_CALL = "tools/call"

INTERNAL_ERROR_CODE = -32603


class JSONRPCMessage:
    """JSON-RPC 2.0 message builder and parser."""

    @staticmethod
    def request(method: str, params: dict[str, Any] | None = None, id: int = 1) -> dict[str, Any]:
        """Build a JSON-RPC request.

        Args:
            method: Method name (e.g., "initialize", "tools/list", "tools/call")
            params: Optional parameters
            id: Request ID

        Returns:
            JSON-RPC request dict
        """
        msg: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": id,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build a JSON-RPC notification (no response expected).

        Args:
            method: Method name
            params: Optional parameters

        Returns:
            JSON-RPC notification dict
        """
        msg: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def encode_line(message: dict[str, Any]) -> str:
        """Serialize a message as one newline-terminated line (stdio framing)."""
        return json.dumps(message, separators=(",", ":")) + "\n"

    @staticmethod
    def is_response(message: dict[str, Any]) -> bool:
        """Check if message is a response (has 'result' or 'error').

        Args:
            message: Parsed message dict

        Returns:
            True if response, False if request/notification
        """
        return "result" in message or "error" in message


# =============================================================================
# Wire models
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class JSONRPCErrorObject(_WireModel):
    """The ``error`` member of a JSON-RPC response."""

    code: int = INTERNAL_ERROR_CODE
    message: str = "Unknown error"
    data: Any = None


class JSONRPCResponse(_WireModel):
    """A JSON-RPC response: exactly one of result / error is meaningful."""

    id: int | str | None = None
    result: Any = None
    error: JSONRPCErrorObject | None = None


class JSONRPCRequest(_WireModel):
    """A JSON-RPC request sent by the server (carries an id)."""

    id: int | str
    method: str
    params: dict[str, Any] | None = None


class JSONRPCNotification(_WireModel):
    """A JSON-RPC notification sent by the server (no id)."""

    method: str
    params: dict[str, Any] | None = None


IncomingMessage = JSONRPCResponse | JSONRPCRequest | JSONRPCNotification


def parse_message(data: str | bytes | dict[str, Any]) -> IncomingMessage:
    """Parse and classify one incoming JSON-RPC message.

    Messages with a ``method`` are requests (with ``id``) or notifications
    (without); anything else must carry ``result`` or ``error``.

    Args:
        data: Raw JSON text or an already-decoded object

    Returns:
        The typed message

    Raises:
        ValueError: If the payload is not a JSON-RPC message
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError("JSON-RPC message must be an object")

    try:
        if "method" in data:
            if "id" in data:
                return JSONRPCRequest.model_validate(data)
            return JSONRPCNotification.model_validate(data)
        if JSONRPCMessage.is_response(data):
            return JSONRPCResponse.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid JSON-RPC message: {e}") from e
    raise ValueError("JSON-RPC message has neither method nor result/error")


def unwrap_result(response: JSONRPCResponse, server_id: str | None = None) -> Any:
    """Return the result of a response or raise its error.

    Args:
        response: Parsed response
        server_id: Server the response came from, for error context

    Returns:
        The ``result`` member

    Raises:
        ToolmeshError(MCP_PROTOCOL_ERROR): If the response carries an error
    """
    if response.error is not None:
        raise create_error(
            "MCP_PROTOCOL_ERROR",
            rpc_code=response.error.code,
            rpc_message=response.error.message,
            server_id=server_id,
        )
    return response.result


def malformed_response_error(
    decoded: dict[str, Any], reason: str, server_id: str | None = None
) -> ToolmeshError:
    """Error for a reply that carries a request id but is not a valid response.

    A reply with an ``error`` member still rejects as a protocol error, even
    when that member is not a proper error object.

    Args:
        decoded: Decoded reply object
        reason: Why the reply failed validation
        server_id: Server the reply came from, for error context

    Returns:
        ToolmeshError to reject the matching request with
    """
    error = decoded.get("error")
    if error is not None:
        if isinstance(error, dict):
            rpc_message = error.get("message") or json.dumps(error)
        else:
            rpc_message = str(error)
        return create_error(
            "MCP_PROTOCOL_ERROR",
            rpc_code=INTERNAL_ERROR_CODE,
            rpc_message=rpc_message,
            server_id=server_id,
        )
    return create_error(
        "MCP_INVALID_RESPONSE",
        detail=reason,
        server_id=server_id,
    )


# =============================================================================
# MCP result payloads
# =============================================================================


class InitializeResult(_WireModel):
    """Result of the ``initialize`` handshake."""

    protocol_version: str | None = Field(default=None, alias="protocolVersion")
    capabilities: dict[str, Any] | None = None
    server_info: dict[str, Any] | None = Field(default=None, alias="serverInfo")
    instructions: str | None = None


class RemoteTool(_WireModel):
    """One entry of a ``tools/list`` result."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = Field(default=None, alias="inputSchema")


class ToolsListResult(_WireModel):
    """Result of ``tools/list``."""

    tools: list[RemoteTool] | None = None
    next_cursor: str | None = Field(default=None, alias="nextCursor")


class RemoteContent(_WireModel):
    """One content item of a ``tools/call`` result."""

    type: str = "text"
    text: str | None = None
    data: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")


class CallToolResult(_WireModel):
    """Result of ``tools/call``."""

    content: list[RemoteContent] | None = None
    is_error: bool | None = Field(default=None, alias="isError")


def validate_result(model: type[_WireModel], raw: Any, server_id: str | None = None) -> Any:
    """Validate a result payload against its expected shape.

    Args:
        model: Pydantic model class of the expected result
        raw: Decoded ``result`` member
        server_id: Server the result came from, for error context

    Returns:
        Model instance

    Raises:
        ToolmeshError(MCP_INVALID_RESPONSE): If the payload does not match
    """
    try:
        return model.model_validate(raw if raw is not None else {})
    except ValidationError as e:
        raise create_error(
            "MCP_INVALID_RESPONSE",
            detail=f"{model.__name__}: {e.error_count()} validation error(s)",
            server_id=server_id,
        ) from e
