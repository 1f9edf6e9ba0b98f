"""Metric names and cache key builders."""

from collections.abc import Mapping
from typing import Any

from shared.keys.api import canonical_query

PRODUCT_STATS = "product-stats"
SALES_STATS = "sales-stats"
TOP_PRODUCTS = "top-products"
LOW_STOCK = "low-stock"
CATEGORY_DISTRIBUTION = "category-distribution"
RECENT_TRANSACTIONS = "recent-transactions"
DASHBOARD_OVERVIEW = "dashboard-overview"

ALL_METRICS = (
    PRODUCT_STATS,
    SALES_STATS,
    TOP_PRODUCTS,
    LOW_STOCK,
    CATEGORY_DISTRIBUTION,
    RECENT_TRANSACTIONS,
)


def metric_cache_key(name: str, params: Mapping[str, Any] | None = None) -> str:
    """Build the cache key for a metric and its parameters."""
    query = canonical_query(params)
    return f"{name}:{query}" if query else name
