"""Stock level classification shared by the backend payloads and client fallbacks."""

from enum import StrEnum

# Quantities strictly below these limits are flagged.
LOW_STOCK_THRESHOLD = 20
CRITICAL_STOCK_THRESHOLD = 10


class StockLevel(StrEnum):
    """Stock level of a product at one location."""

    NORMAL = "normal"
    BAIXO = "baixo"
    CRITICO = "critico"
    ESGOTADO = "esgotado"

    @property
    def is_alert(self) -> bool:
        return self is not StockLevel.NORMAL


def classify_stock_level(
    quantidade: int,
    *,
    low: int = LOW_STOCK_THRESHOLD,
    critical: int = CRITICAL_STOCK_THRESHOLD,
) -> StockLevel:
    """Map a quantity to its stock level."""
    if quantidade <= 0:
        return StockLevel.ESGOTADO
    if quantidade < critical:
        return StockLevel.CRITICO
    if quantidade < low:
        return StockLevel.BAIXO
    return StockLevel.NORMAL
