"""Dashboard metric payloads.

Attribute names are snake_case; the backend's camelCase names are accepted on
input and produced by ``model_dump(by_alias=True)``.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from shared.domain.stock import LOW_STOCK_THRESHOLD, StockLevel


class ProductStats(BaseModel):
    """Catalog size and total units in stock."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total: int = 0
    quantidade_total: int = Field(default=0, alias="quantidadeTotal")


class SalesStats(BaseModel):
    """Sales registered today."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    vendas_hoje: int = Field(default=0, alias="vendasHoje")
    quantidade_vendida: int = Field(default=0, alias="quantidadeVendida")
    valor_total: float = Field(default=0.0, alias="valorTotal")
    tendencia_vendas: float = Field(default=0.0, alias="tendenciaVendas")
    fonte: str | None = None


class TopProduct(BaseModel):
    """Best-selling product ranking row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    nome: str = ""
    categoria: str | None = None
    quantidade_vendas: int = Field(default=0, alias="quantidadeVendas")
    quantidade_total: int = Field(default=0, alias="quantidadeTotal")


class LowStockItem(BaseModel):
    """Product below the low-stock threshold at a location."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    nome: str = ""
    local: str | None = None
    estoque_atual: int = Field(
        default=0,
        validation_alias=AliasChoices("estoqueAtual", "quantidade", "estoque_atual"),
        serialization_alias="estoqueAtual",
    )
    estoque_minimo: int = Field(
        default=LOW_STOCK_THRESHOLD,
        validation_alias=AliasChoices("estoqueMinimo", "estoque_minimo"),
        serialization_alias="estoqueMinimo",
    )
    status: StockLevel | None = None

    @property
    def identity(self) -> str:
        return f"{self.id}@{self.local or ''}"


class CategoryShare(BaseModel):
    """Number of products in a category."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    nome: str = Field(validation_alias=AliasChoices("nome", "name", "_id"))
    quantidade: int = Field(
        default=0, validation_alias=AliasChoices("quantidade", "count")
    )


class RecentTransaction(BaseModel):
    """Recent stock movement row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    tipo: str = ""
    quantidade: int = 0
    local_origem: str | None = Field(default=None, alias="localOrigem")
    local_destino: str | None = Field(default=None, alias="localDestino")
    data: datetime | None = None
    produto_nome: str | None = Field(default=None, alias="produtoNome")


class InventoryTotals(BaseModel):
    """``metricas`` block of the consolidated metrics payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_produtos: int = Field(default=0, alias="totalProdutos")
    valor_total_estoque: int = Field(default=0, alias="valorTotalEstoque")


class SalesTotals(BaseModel):
    """``vendas`` block of the consolidated metrics payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hoje: int = 0
    quantidade_hoje: int = Field(default=0, alias="quantidadeHoje")


class ConsolidatedMetrics(BaseModel):
    """Single-call payload of ``GET /api/dashboard/metrics``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    metricas: InventoryTotals = Field(default_factory=InventoryTotals)
    vendas: SalesTotals = Field(default_factory=SalesTotals)
    top_produtos: list[TopProduct] = Field(default_factory=list, alias="topProdutos")
    alertas_estoque: list[LowStockItem] = Field(
        default_factory=list, alias="alertasEstoque"
    )
    distribuicao_categorias: list[CategoryShare] = Field(
        default_factory=list, alias="distribuicaoCategorias"
    )
    movimentacoes_recentes: list[RecentTransaction] = Field(
        default_factory=list, alias="movimentacoesRecentes"
    )


OverviewStatus = Literal["live", "partial", "fallback"]


class DashboardOverview(BaseModel):
    """Every dashboard metric in one object."""

    model_config = ConfigDict(populate_by_name=True)

    status: OverviewStatus = "live"
    product_stats: ProductStats = Field(
        default_factory=ProductStats, alias="productStats"
    )
    sales_stats: SalesStats = Field(default_factory=SalesStats, alias="salesStats")
    top_products: list[TopProduct] = Field(default_factory=list, alias="topProducts")
    low_stock: list[LowStockItem] = Field(default_factory=list, alias="lowStock")
    categories: list[CategoryShare] = Field(default_factory=list)
    transactions: list[RecentTransaction] = Field(default_factory=list)
    degraded_metrics: list[str] = Field(default_factory=list, alias="degradedMetrics")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="generatedAt"
    )


__all__ = [
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
