"""Resilience primitives: classification, caching, retries and request coordination."""

from estoque.engine.cache import CacheEntry, TimeBoxedCache
from estoque.engine.classifier import ErrorInfo, ErrorKind, classify
from estoque.engine.coordinator import InFlightRequest, RequestCoordinator
from estoque.engine.errors import (
    ErrorCode,
    HttpStatusError,
    PayloadError,
    RequestTimeoutError,
    TransportError,
)
from estoque.engine.notifications import (
    Notification,
    NotificationCenter,
    NotificationLevel,
    Notifier,
)
from estoque.engine.retry import RetryExecutor, RetryPolicy, with_timeout
from estoque.engine.session import CredentialStore, SessionGuard
from estoque.engine.transport import HttpTransport, Response, Transport

__all__ = [
    "CacheEntry",
    "CredentialStore",
    "ErrorCode",
    "ErrorInfo",
    "ErrorKind",
    "HttpStatusError",
    "HttpTransport",
    "InFlightRequest",
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
    "Notifier",
    "PayloadError",
    "RequestCoordinator",
    "RequestTimeoutError",
    "Response",
    "RetryExecutor",
    "RetryPolicy",
    "SessionGuard",
    "TimeBoxedCache",
    "Transport",
    "TransportError",
    "classify",
    "with_timeout",
]
