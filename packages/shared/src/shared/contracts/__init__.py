"""Backend payload contracts."""

from shared.contracts.catalog import (
    MovementRecord,
    Product,
    ProductRef,
    SaleRecord,
    StockRecord,
    reference_id,
)
from shared.contracts.dashboard import (
    CategoryShare,
    ConsolidatedMetrics,
    DashboardOverview,
    InventoryTotals,
    LowStockItem,
    OverviewStatus,
    ProductStats,
    RecentTransaction,
    SalesStats,
    SalesTotals,
    TopProduct,
)

__all__ = [
    # Records
    "MovementRecord",
    "Product",
    "ProductRef",
    "SaleRecord",
    "StockRecord",
    "reference_id",
    # Dashboard
    "CategoryShare",
    "ConsolidatedMetrics",
    "DashboardOverview",
    "InventoryTotals",
    "LowStockItem",
    "OverviewStatus",
    "ProductStats",
    "RecentTransaction",
    "SalesStats",
    "SalesTotals",
    "TopProduct",
]
