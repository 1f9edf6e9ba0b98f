"""Estoque - resilient data access for the inventory dashboard."""

from shared._version import __version__

from estoque.config import Settings, get_settings
from estoque.engine import (
    ErrorInfo,
    ErrorKind,
    NotificationCenter,
    RequestCoordinator,
    RetryExecutor,
    RetryPolicy,
    TimeBoxedCache,
    classify,
)
from estoque.metrics import DashboardService, MetricAggregator

__all__ = [
    "DashboardService",
    "ErrorInfo",
    "ErrorKind",
    "MetricAggregator",
    "NotificationCenter",
    "RequestCoordinator",
    "RetryExecutor",
    "RetryPolicy",
    "Settings",
    "TimeBoxedCache",
    "__version__",
    "classify",
    "get_settings",
]
