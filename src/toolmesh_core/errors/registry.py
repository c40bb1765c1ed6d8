"""Error registry for creating errors from templates."""

from typing import Any

from .errors import ErrorCategory, ErrorTemplate, ToolmeshError


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code.

        Args:
            code: Error code to look up

        Returns:
            ErrorTemplate if found, None otherwise
        """
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        """List all registered error codes.

        Returns:
            List of error codes
        """
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Register (or replace) a template.

        Args:
            template: Template to register
        """
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: ToolmeshError | None = None,
    ) -> ToolmeshError:
        """Create error instance from template + context.

        Args:
            code: Error code
            context: Context variables for template interpolation
            cause: Optional cause error

        Returns:
            ToolmeshError instance

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context)
        detail = self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        return ToolmeshError(
            code=template.code,
            category=template.category,
            message=message,
            detail=context.get("detail", detail),
            suggestion=suggestion,
            retryable=template.default_retryable,
            server_id=context.get("server_id"),
            tool_name=context.get("tool_name"),
            rpc_code=context.get("rpc_code"),
            cause=cause,
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Missing variables leave the template text untouched.

        Args:
            template: Template string with {var} placeholders
            context: Context variables

        Returns:
            Interpolated string or None if template is None
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except (KeyError, IndexError, ValueError):
            return template

    def _load_builtin_templates(self) -> None:
        """Load built-in error templates."""
        # TRANSPORT Errors
        self._templates["MCP_TRANSPORT_ERROR"] = ErrorTemplate(
            code="MCP_TRANSPORT_ERROR",
            category=ErrorCategory.TRANSPORT,
            message_template="{detail}",
            suggestion_template="Check that the MCP server is running and reachable",
            default_retryable=True,
        )

        self._templates["MCP_TIMEOUT"] = ErrorTemplate(
            code="MCP_TIMEOUT",
            category=ErrorCategory.TRANSPORT,
            message_template="Request timeout after {timeout_ms}ms",
            detail_template="The MCP server did not answer within the request budget",
            suggestion_template="Check server load or retry the call",
            default_retryable=True,
        )

        # PROTOCOL Errors
        self._templates["MCP_PROTOCOL_ERROR"] = ErrorTemplate(
            code="MCP_PROTOCOL_ERROR",
            category=ErrorCategory.PROTOCOL,
            message_template="MCP Error {rpc_code}: {rpc_message}",
            detail_template="The MCP server returned a JSON-RPC error object",
            default_retryable=False,
        )

        self._templates["MCP_INVALID_RESPONSE"] = ErrorTemplate(
            code="MCP_INVALID_RESPONSE",
            category=ErrorCategory.PROTOCOL,
            message_template="Invalid response from MCP server: {detail}",
            suggestion_template="Check that the server speaks a compatible MCP version",
            default_retryable=False,
        )

        # TOOL Errors
        self._templates["MCP_UNKNOWN_TOOL"] = ErrorTemplate(
            code="MCP_UNKNOWN_TOOL",
            category=ErrorCategory.TOOL,
            message_template="Unknown MCP tool: {tool_name}",
            detail_template="No connected MCP server exposes this tool",
            suggestion_template="List the available tools and use a prefixed name",
            default_retryable=False,
        )

        # CONFIG Errors
        self._templates["MCP_CONFIG_INVALID"] = ErrorTemplate(
            code="MCP_CONFIG_INVALID",
            category=ErrorCategory.CONFIG,
            message_template="{detail}",
            suggestion_template="Fix the server configuration and reconnect",
            default_retryable=False,
        )

        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.CONFIG,
            message_template="Invalid configuration",
            detail_template="The MCP server configuration is invalid",
            suggestion_template="Check the configuration file and fix errors",
            default_retryable=False,
        )

        # SYSTEM Errors
        self._templates["CLIENT_DISPOSED"] = ErrorTemplate(
            code="CLIENT_DISPOSED",
            category=ErrorCategory.SYSTEM,
            message_template="MCP client for '{server_name}' has been disposed",
            suggestion_template="Create a new client from the server configuration",
            default_retryable=False,
        )

        self._templates["INTERNAL_ERROR"] = ErrorTemplate(
            code="INTERNAL_ERROR",
            category=ErrorCategory.SYSTEM,
            message_template="{detail}",
            detail_template="An unexpected error occurred",
            suggestion_template="Check the logs and report this issue",
            default_retryable=False,
        )
