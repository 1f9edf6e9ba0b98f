"""Domain helpers used by client components."""

from shared.domain.stock import (
    CRITICAL_STOCK_THRESHOLD,
    LOW_STOCK_THRESHOLD,
    StockLevel,
    classify_stock_level,
)

__all__ = [
    "CRITICAL_STOCK_THRESHOLD",
    "LOW_STOCK_THRESHOLD",
    "StockLevel",
    "classify_stock_level",
]
