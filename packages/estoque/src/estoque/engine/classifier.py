"""Failure classification for retry decisions and user-facing messages.

Every failure surfaced by the transport boundary maps to exactly one kind:

- CONNECTION: no HTTP response at all (refused, DNS, aborted)
- TIMEOUT: the executor's own race or a transport timeout
- AUTH: 401/403, never retried
- SERVER_FAULT: 5xx
- UNKNOWN: everything else, retried optimistically
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

import aiohttp

from estoque.engine.errors import ErrorCode, HttpStatusError, TransportError


class ErrorKind(StrEnum):
    """Failure taxonomy."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    AUTH = "auth"
    SERVER_FAULT = "server_fault"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorInfo:
    """Classified failure."""

    kind: ErrorKind
    message: str
    retryable: bool


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CONNECTION: "Cannot reach the server. Check your connection.",
    ErrorKind.TIMEOUT: "The server took too long to respond.",
    ErrorKind.AUTH: "Your session has expired. Please sign in again.",
    ErrorKind.SERVER_FAULT: "The server ran into a problem. Please try again.",
    ErrorKind.UNKNOWN: "Something went wrong while loading data.",
}

_AUTH_STATUSES = frozenset({401, 403})

# Compatibility shim for failures that carry no structured code or status.
_TIMEOUT_MARKERS = ("timeout", "timed out")
_CONNECTION_MARKERS = (
    "network error",
    "connection refused",
    "econnrefused",
    "failed to fetch",
)


def classify(failure: object) -> ErrorInfo:
    """Classify any failure object. Never raises."""
    try:
        kind = _classify_kind(failure)
    except Exception:
        kind = ErrorKind.UNKNOWN
    return ErrorInfo(
        kind=kind,
        message=_MESSAGES[kind],
        retryable=kind is not ErrorKind.AUTH,
    )


def _classify_kind(failure: object) -> ErrorKind:
    if isinstance(failure, TransportError):
        if failure.code is ErrorCode.TIMEOUT:
            return ErrorKind.TIMEOUT
        return ErrorKind.CONNECTION

    # RequestTimeoutError, asyncio.TimeoutError and aiohttp.ServerTimeoutError
    if isinstance(failure, TimeoutError):
        return ErrorKind.TIMEOUT

    status = _status_of(failure)
    if status is not None:
        return _kind_for_status(status)

    if isinstance(failure, aiohttp.ClientConnectionError | ConnectionError):
        return ErrorKind.CONNECTION

    if isinstance(failure, Mapping):
        code = failure.get("code")
        if code is not None:
            return _kind_for_code(str(code))

    return _kind_for_message(failure)


def _status_of(failure: object) -> int | None:
    if isinstance(failure, HttpStatusError):
        return failure.status
    if isinstance(failure, Mapping):
        status = failure.get("status")
    else:
        status = getattr(failure, "status", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def _kind_for_status(status: int) -> ErrorKind:
    if status in _AUTH_STATUSES:
        return ErrorKind.AUTH
    if status >= 500:
        return ErrorKind.SERVER_FAULT
    return ErrorKind.UNKNOWN


def _kind_for_code(code: str) -> ErrorKind:
    try:
        parsed = ErrorCode(code)
    except ValueError:
        return _kind_for_message(code)
    if parsed is ErrorCode.TIMEOUT:
        return ErrorKind.TIMEOUT
    return ErrorKind.CONNECTION


def _kind_for_message(failure: object) -> ErrorKind:
    if failure is None:
        return ErrorKind.UNKNOWN
    text = str(failure).lower()
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return ErrorKind.TIMEOUT
    if any(marker in text for marker in _CONNECTION_MARKERS):
        return ErrorKind.CONNECTION
    return ErrorKind.UNKNOWN
