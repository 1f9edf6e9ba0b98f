"""Shared contracts for the Estoque client packages."""

from shared._version import __version__
from shared.contracts import (
    CategoryShare,
    ConsolidatedMetrics,
    DashboardOverview,
    LowStockItem,
    MovementRecord,
    Product,
    ProductStats,
    RecentTransaction,
    SaleRecord,
    SalesStats,
    StockRecord,
    TopProduct,
)
from shared.domain import StockLevel, classify_stock_level
from shared.keys import endpoint_key, metric_cache_key

__all__ = [
    "__version__",
    # Records
    "MovementRecord",
    "Product",
    "SaleRecord",
    "StockRecord",
    # Dashboard metrics
    "CategoryShare",
    "ConsolidatedMetrics",
    "DashboardOverview",
    "LowStockItem",
    "ProductStats",
    "RecentTransaction",
    "SalesStats",
    "TopProduct",
    # Stock levels
    "StockLevel",
    "classify_stock_level",
    # Keys
    "endpoint_key",
    "metric_cache_key",
]
