"""MCP server configuration loader."""

import ipaddress
import os
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from toolmesh_core.errors import create_error
from toolmesh_core.types import (
    LogLevel,
    MCPAuthType,
    MCPTransport,
    ValidationIssue,
    ValidationResult,
)

from .models import MCPServerConfig, parse_flag

_PRIVATE_HOST_PATTERNS = [
    re.compile(r"^localhost$", re.IGNORECASE),
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[01])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^0\."),
    re.compile(r"^::1$"),
    re.compile(r"^fc00:", re.IGNORECASE),
    re.compile(r"^fe80:", re.IGNORECASE),
]


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Args:
        value: String with potential env var references

    Returns:
        String with env vars resolved

    Raises:
        ToolmeshError: If required var not set
    """
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        elif operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("CONFIG_INVALID", detail=error_msg)
        else:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Required environment variable {var_name} not set",
            )

    return re.sub(pattern, replacer, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def is_private_host(hostname: str) -> bool:
    """Check whether a hostname points at a loopback or private network.

    Args:
        hostname: Host part of a URL

    Returns:
        True for localhost, loopback, RFC 1918 and link-local addresses
    """
    if any(p.search(hostname) for p in _PRIVATE_HOST_PATTERNS):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_link_local


class ServerConfigLoader:
    """Load and validate MCP server configurations.

    Configurations come from the user-settings store as a list of dicts, or
    from a YAML file with a top-level ``mcp_servers`` list.
    """

    def __init__(
        self,
        logger: Any = None,
        require_https: bool = False,
        cloud_mode: bool = False,
    ):
        """Initialize config loader.

        Args:
            logger: Optional ToolmeshLogger instance
            require_https: Reject plain http URLs (production deployments)
            cloud_mode: Reject private-network URLs and the stdio transport
        """
        self._logger = logger
        self.require_https = require_https
        self.cloud_mode = cloud_mode

    def load(self, path: str | Path) -> list[MCPServerConfig]:
        """Load server configurations from a YAML file.

        Args:
            path: Path to config file

        Returns:
            List of MCPServerConfig

        Raises:
            ToolmeshError: If file not found or invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration file must contain a mapping with 'mcp_servers'",
            )

        servers = _resolve_env_vars_recursive(data.get("mcp_servers") or [])
        return self.load_from_list(servers)

    def load_from_list(self, data: list[dict[str, Any]]) -> list[MCPServerConfig]:
        """Load server configurations from a list of dicts.

        Args:
            data: Raw server configurations

        Returns:
            List of MCPServerConfig

        Raises:
            ToolmeshError: If any configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        configs = [MCPServerConfig.from_dict(item) for item in data]

        if self._logger:
            self._logger.manager(
                f"Loaded {len(configs)} MCP server configuration(s)",
                level=LogLevel.DEBUG,
            )

        return configs

    def validate(self, data: list[dict[str, Any]]) -> ValidationResult:
        """Validate server configurations without loading.

        Args:
            data: Raw server configurations

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        if not isinstance(data, list):
            errors.append(ValidationIssue(path="mcp_servers", message="must be a list"))
            return ValidationResult(valid=False, errors=errors)

        seen_ids: set[str] = set()
        for index, item in enumerate(data):
            path = f"mcp_servers[{index}]"
            if not isinstance(item, dict):
                errors.append(ValidationIssue(path=path, message="must be a dictionary"))
                continue

            server_id = item.get("id")
            if not server_id:
                errors.append(ValidationIssue(path=f"{path}.id", message="id is required"))
            elif str(server_id) in seen_ids:
                errors.append(
                    ValidationIssue(path=f"{path}.id", message=f"Duplicate server id: {server_id}")
                )
            else:
                seen_ids.add(str(server_id))

            if not item.get("name"):
                warnings.append(
                    ValidationIssue(
                        path=f"{path}.name",
                        message="name is missing, the id will be used",
                        severity="warning",
                    )
                )

            transport = item.get("transport") or MCPTransport.HTTP.value
            if transport not in {t.value for t in MCPTransport}:
                errors.append(
                    ValidationIssue(
                        path=f"{path}.transport",
                        message=f"Invalid transport type: {transport}",
                    )
                )
                continue

            errors.extend(self._validate_common(path, item))
            if transport == MCPTransport.HTTP.value:
                errors.extend(self._validate_http(path, item))
            else:
                errors.extend(self._validate_stdio(path, item))

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def _validate_common(self, path: str, item: dict[str, Any]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        auth_type = item.get("auth_type", item.get("authType")) or MCPAuthType.NONE.value
        if auth_type not in {a.value for a in MCPAuthType}:
            issues.append(
                ValidationIssue(
                    path=f"{path}.authType",
                    message=f"Invalid auth type: {auth_type}",
                )
            )
        try:
            parse_flag(item.get("enabled"))
        except ValueError as e:
            issues.append(ValidationIssue(path=f"{path}.enabled", message=str(e)))
        return issues

    def _validate_http(self, path: str, item: dict[str, Any]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        url = item.get("url")
        if not url:
            return [
                ValidationIssue(path=f"{path}.url", message="URL is required for HTTP transport")
            ]

        parsed = urlparse(str(url))
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return [ValidationIssue(path=f"{path}.url", message="Invalid URL format")]

        if self.require_https and parsed.scheme != "https":
            issues.append(
                ValidationIssue(path=f"{path}.url", message="HTTPS is required in production")
            )

        if self.cloud_mode and is_private_host(parsed.hostname):
            issues.append(
                ValidationIssue(
                    path=f"{path}.url",
                    message="Private network URLs are not allowed",
                )
            )
        return issues

    def _validate_stdio(self, path: str, item: dict[str, Any]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if self.cloud_mode:
            issues.append(
                ValidationIssue(
                    path=f"{path}.transport",
                    message="stdio transport is not available in cloud mode",
                )
            )
        if not item.get("command"):
            issues.append(
                ValidationIssue(
                    path=f"{path}.command",
                    message="Command is required for stdio transport",
                )
            )
        args = item.get("args")
        if args is not None and not isinstance(args, list):
            issues.append(ValidationIssue(path=f"{path}.args", message="args must be a list"))
        env = item.get("env")
        if env is not None and not isinstance(env, dict):
            issues.append(ValidationIssue(path=f"{path}.env", message="env must be a dictionary"))
        return issues
