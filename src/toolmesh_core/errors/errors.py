"""Toolmesh error types and error registry primitives."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error source categories."""

    TRANSPORT = "TRANSPORT"
    PROTOCOL = "PROTOCOL"
    TOOL = "TOOL"
    CONFIG = "CONFIG"
    SYSTEM = "SYSTEM"


@dataclass
class ToolmeshError(Exception):
    """Structured error with context. Base exception for all toolmesh errors."""

    # Identity
    code: str  # e.g., "MCP_TIMEOUT"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    retryable: bool = False
    server_id: str | None = None  # Which server failed
    tool_name: str | None = None  # Which tool failed
    rpc_code: int | None = None  # JSON-RPC error code, protocol errors only

    cause: "ToolmeshError | None" = None

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "server_id": self.server_id,
            "tool_name": self.tool_name,
            "rpc_code": self.rpc_code,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        server_id: str | None = None,
        tool_name: str | None = None,
    ) -> "ToolmeshError":
        """Return copy with additional context.

        Args:
            server_id: Optional server identifier
            tool_name: Optional tool name

        Returns:
            New ToolmeshError instance with updated context
        """
        return ToolmeshError(
            code=self.code,
            category=self.category,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
            server_id=server_id or self.server_id,
            tool_name=tool_name or self.tool_name,
            rpc_code=self.rpc_code,
            cause=self.cause,
            timestamp=self.timestamp,
        )


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Request timed out after {timeout_seconds}s"
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]
    retryable: bool | None = None  # None = use template default


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error.

        Args:
            error: Exception to check

        Returns:
            True if this matcher can handle the error
        """

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract error info from the exception.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with error code and context
        """
