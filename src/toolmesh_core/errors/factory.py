"""Error factory for creating ToolmeshErrors from any exception type."""

from typing import Any

from .errors import ToolmeshError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry


class ErrorFactory:
    """Creates ToolmeshErrors from any exception type."""

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        """Initialize error factory.

        Args:
            registry: Error registry (defaults to new ErrorRegistry())
            matcher_chain: Matcher chain (defaults to new ErrorMatcherChain())
        """
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(
        self,
        error: Exception,
        server_id: str | None = None,
        tool_name: str | None = None,
        timeout_ms: int | None = None,
    ) -> ToolmeshError:
        """Convert any exception to ToolmeshError.

        Args:
            error: Exception to convert
            server_id: Optional server identifier
            tool_name: Optional tool name
            timeout_ms: Optional request budget, used for timeout messages

        Returns:
            ToolmeshError instance
        """
        if isinstance(error, ToolmeshError):
            return error.with_context(server_id=server_id, tool_name=tool_name)

        match_result = self.matcher_chain.match(error)

        context = match_result.context.copy()
        if server_id:
            context["server_id"] = server_id
        if tool_name:
            context["tool_name"] = tool_name
        if timeout_ms is not None and match_result.code == "MCP_TIMEOUT":
            context["timeout_ms"] = timeout_ms

        toolmesh_error = self.registry.create(code=match_result.code, context=context)

        if match_result.retryable is not None:
            toolmesh_error.retryable = match_result.retryable

        return toolmesh_error

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ToolmeshError:
        """Create ToolmeshError directly from code.

        Args:
            code: Error code
            context: Context variables for template interpolation
            **kwargs: Additional context variables

        Returns:
            ToolmeshError instance
        """
        merged_context = dict(context or {})
        merged_context.update(kwargs)

        return self.registry.create(code=code, context=merged_context)


# Convenience singleton
_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton.

    Returns:
        Default ErrorFactory instance
    """
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> ToolmeshError:
    """Convenience function to create error.

    Args:
        code: Error code
        **context: Context variables for template interpolation

    Returns:
        ToolmeshError instance
    """
    return get_error_factory().create(code, context)
