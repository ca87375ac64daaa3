"""错误基类：提供 RPC 容错层的分层错误体系和结构化错误上下文。

Base error classes for rpc-resilience.

Provides a layered error hierarchy:
- RpcResilienceError: Base class for all library errors
- HealthCheckTimeout: Endpoint did not answer the health probe in time
- WrongNetwork: Endpoint serves a different chain than expected
- TransportError: HTTP/network errors talking to an endpoint
- RpcResponseError: JSON-RPC error object returned by an endpoint
- CacheIOError: Read/write fault on the persisted endpoint cache
- AllProvidersFailed: Every candidate endpoint failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'probe', 'transport', 'cache')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class RpcResilienceError(Exception):
    """Base class for all rpc-resilience errors.

    Attributes:
        message: Human-readable error message
        context: Optional structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> RpcResilienceError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class HealthCheckTimeout(RpcResilienceError):
    """Health probe did not complete before its deadline."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="probe")
        if url:
            ctx.details["url"] = url
        if timeout_ms is not None:
            ctx.details["timeout_ms"] = timeout_ms
        super().__init__(message, ctx)
        self.url = url
        self.timeout_ms = timeout_ms


class WrongNetwork(RpcResilienceError):
    """Endpoint reported a chain id other than the expected one."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="probe")
        if url:
            ctx.details["url"] = url
        if expected is not None:
            ctx.details["expected"] = expected
        if actual is not None:
            ctx.details["actual"] = actual
        super().__init__(message, ctx)
        self.url = url
        self.expected = expected
        self.actual = actual


class TransportError(RpcResilienceError):
    """Error during HTTP transport.

    Raised when:
    - Network connection failure
    - Request timeout at the HTTP layer
    - Non-2xx HTTP response
    - Malformed JSON-RPC response body
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        if status_code:
            ctx.details["status_code"] = status_code
        super().__init__(message, ctx)
        self.url = url
        self.status_code = status_code
        self.__cause__ = cause


class RpcResponseError(TransportError):
    """JSON-RPC error object returned by an endpoint.

    Attributes:
        code: JSON-RPC error code
        data: Optional error data from the endpoint
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        code: int | None = None,
        data: Any = None,
    ) -> None:
        ctx = ErrorContext(source="rpc")
        if code is not None:
            ctx.details["code"] = code
        super().__init__(message, ctx, url=url)
        self.code = code
        self.data = data


class CacheIOError(RpcResilienceError):
    """Read or write fault on the persisted endpoint cache.

    Always non-fatal: callers catch it at the point of I/O.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        path: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="cache")
        if path:
            ctx.details["path"] = path
        super().__init__(message, ctx)
        self.path = path
        self.__cause__ = cause


@dataclass(frozen=True)
class FailedAttempt:
    """One candidate that was tried and failed."""

    url: str
    reason: str

    def __str__(self) -> str:
        return f"{self.url}: {self.reason}"


class AllProvidersFailed(RpcResilienceError):
    """Every candidate endpoint failed.

    The message lists each attempted endpoint and its failure reason,
    one per line, in attempt order.

    Attributes:
        attempts: Attempted endpoints with reasons, in order
    """

    def __init__(self, attempts: list[FailedAttempt]) -> None:
        self.attempts = list(attempts)
        lines = "\n".join(str(a) for a in self.attempts)
        message = "All RPC providers failed"
        message = f"{message}:\n{lines}" if lines else f"{message}: no candidates configured"
        ctx = ErrorContext(
            source="fallback",
            details={"attempted": [a.url for a in self.attempts]},
        )
        super().__init__(message, ctx)

    def _format_message(self) -> str:
        # Keep the per-line listing intact for operators.
        return self.message

    @property
    def urls(self) -> list[str]:
        """Attempted URLs in order."""
        return [a.url for a in self.attempts]
