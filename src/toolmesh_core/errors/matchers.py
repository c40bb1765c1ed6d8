"""Error matchers for converting exceptions to ToolmeshErrors."""

import asyncio
from typing import Any

import httpx

from .errors import ErrorMatcher, MatchResult


class TimeoutErrorMatcher(ErrorMatcher):
    """Matches timeout errors from asyncio and httpx."""

    def __init__(self, timeout_ms: int | None = None) -> None:
        self.timeout_ms = timeout_ms

    def matches(self, error: Exception) -> bool:
        """Check if error is a timeout error.

        Args:
            error: Exception to check

        Returns:
            True if error is a timeout error
        """
        return isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException))

    def extract(self, error: Exception) -> MatchResult:
        """Extract timeout error info.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with MCP_TIMEOUT code
        """
        return MatchResult(
            code="MCP_TIMEOUT",
            context={"timeout_ms": self.timeout_ms if self.timeout_ms is not None else "unknown"},
        )


class TransportErrorMatcher(ErrorMatcher):
    """Matches network and process failures."""

    def matches(self, error: Exception) -> bool:
        """Check if error is a transport-level failure.

        Args:
            error: Exception to check

        Returns:
            True for httpx errors and OS-level errors
        """
        return isinstance(error, (httpx.HTTPError, OSError, EOFError))

    def extract(self, error: Exception) -> MatchResult:
        """Extract transport error info.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with MCP_TRANSPORT_ERROR code
        """
        return MatchResult(
            code="MCP_TRANSPORT_ERROR",
            context={"detail": str(error) or type(error).__name__},
        )


class GenericErrorMatcher(ErrorMatcher):
    """Fallback matcher for any exception."""

    def matches(self, error: Exception) -> bool:
        """Always matches.

        Args:
            error: Exception to check

        Returns:
            Always True (fallback matcher)
        """
        return True

    def extract(self, error: Exception) -> MatchResult:
        """Extract generic error info.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with INTERNAL_ERROR code
        """
        context: dict[str, Any] = {
            "detail": str(error) or type(error).__name__,
            "error_type": type(error).__name__,
        }
        return MatchResult(
            code="INTERNAL_ERROR",
            context=context,
            retryable=False,
        )


class ErrorMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self, timeout_ms: int | None = None) -> None:
        """Initialize matcher chain with built-in matchers.

        Args:
            timeout_ms: Request budget reported in timeout messages
        """
        self.matchers: list[ErrorMatcher] = []
        self._load_builtin_matchers(timeout_ms)

    def match(self, error: Exception) -> MatchResult:
        """Find first matching matcher and extract result.

        Args:
            error: Exception to match

        Returns:
            MatchResult from first matching matcher
        """
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)

        # Should never reach here due to GenericErrorMatcher
        return MatchResult(
            code="INTERNAL_ERROR",
            context={"detail": str(error)},
            retryable=False,
        )

    def _load_builtin_matchers(self, timeout_ms: int | None) -> None:
        """Load built-in matchers in priority order."""
        # Order matters - httpx timeouts are also httpx.HTTPError
        self.matchers = [
            TimeoutErrorMatcher(timeout_ms),
            TransportErrorMatcher(),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
