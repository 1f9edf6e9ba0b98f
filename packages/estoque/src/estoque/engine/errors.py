"""Failure types raised at the transport boundary."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Transport-level failure codes. No HTTP response was received."""

    CONNECTION_REFUSED = "connection-refused"
    NETWORK_ERROR = "network-error"
    TIMEOUT = "timeout"
    ABORTED = "aborted"


class TransportError(Exception):
    """Raised when a request never produced an HTTP response."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        *,
        path: str | None = None,
    ) -> None:
        self.code = ErrorCode(code)
        self.path = path
        super().__init__(message or f"{self.code.value} requesting {path or 'backend'}")


class HttpStatusError(Exception):
    """Raised for a response with a non-2xx status."""

    def __init__(
        self,
        status: int,
        body: Any = None,
        *,
        method: str = "GET",
        path: str = "",
    ) -> None:
        self.status = status
        self.body = body
        self.method = method
        self.path = path
        super().__init__(f"HTTP {status} for {method} {path}".rstrip())

    @property
    def detail(self) -> str | None:
        """Backend error message (``mensagem``) when the body carries one."""
        if isinstance(self.body, dict):
            message = self.body.get("mensagem") or self.body.get("erro")
            return str(message) if message else None
        if isinstance(self.body, str) and self.body:
            return self.body
        return None


class RequestTimeoutError(TimeoutError):
    """Raised when an operation loses its timeout race."""

    def __init__(self, context: str, timeout_ms: int) -> None:
        self.context = context
        self.timeout_ms = timeout_ms
        super().__init__(f"{context} timed out after {timeout_ms}ms")


class PayloadError(ValueError):
    """Raised when a 2xx response carries no usable payload."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
