"""Toolmesh configuration data models."""

from dataclasses import dataclass, field
from typing import Any

from toolmesh_core import __version__
from toolmesh_core.types import MCPAuthType, MCPTransport

DEFAULT_PROTOCOL_VERSION = "2025-03-26"

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def parse_flag(value: Any, default: bool = True) -> bool:
    """Parse a boolean setting that may arrive as a string; None means default.

    Raises:
        ValueError: If the value is neither a bool nor a recognized string
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid boolean value: {value!r}")


@dataclass(frozen=True)
class MCPServerConfig:
    """Definition of an MCP server to connect to.

    Immutable for the lifetime of a client; a changed config means a new client.
    """

    id: str
    name: str
    transport: MCPTransport = MCPTransport.HTTP
    enabled: bool = True
    # HTTP transport
    url: str | None = None
    auth_type: MCPAuthType = MCPAuthType.NONE
    api_key: str | None = None  # Already decrypted by the caller
    # stdio transport
    command: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MCPServerConfig":
        """Build a config from a settings dict.

        Accepts both the camelCase keys used by the settings store
        (``authType``, ``apiKey``) and snake_case keys.

        Args:
            data: Raw server configuration

        Returns:
            MCPServerConfig instance
        """
        transport = data.get("transport") or MCPTransport.HTTP
        auth_type = data.get("auth_type", data.get("authType")) or MCPAuthType.NONE
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            transport=MCPTransport(transport),
            enabled=parse_flag(data.get("enabled")),
            url=data.get("url"),
            auth_type=MCPAuthType(auth_type),
            api_key=data.get("api_key", data.get("apiKey")),
            command=data.get("command"),
            args=tuple(str(a) for a in data.get("args") or ()),
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape of the settings store.

        The API key is never included.
        """
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "transport": self.transport.value,
            "enabled": self.enabled,
        }
        if self.transport == MCPTransport.HTTP:
            result["url"] = self.url
            result["authType"] = self.auth_type.value
        else:
            result["command"] = self.command
            result["args"] = list(self.args)
            result["env"] = dict(self.env)
        return result


@dataclass
class ClientSettings:
    """Tunables shared by every MCP client."""

    request_timeout: float = 30.0  # seconds, per request
    cache_ttl: float = 300.0  # seconds, tools/list cache
    spawn_grace: float = 0.1  # seconds, stdio start-up check
    kill_grace: float = 2.0  # seconds, terminate before kill
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    client_name: str = "toolmesh"
    client_version: str = __version__

    @property
    def request_timeout_ms(self) -> int:
        return int(self.request_timeout * 1000)

    def client_info(self) -> dict[str, str]:
        """Client identity sent in the initialize handshake."""
        return {"name": self.client_name, "version": self.client_version}
