"""Endpoint paths and cache keys."""

from shared.keys.api import canonical_query, endpoint_key
from shared.keys.metrics import ALL_METRICS, metric_cache_key

__all__ = [
    "ALL_METRICS",
    "canonical_query",
    "endpoint_key",
    "metric_cache_key",
]
