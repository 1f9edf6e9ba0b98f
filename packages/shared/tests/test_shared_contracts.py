from __future__ import annotations

import pytest
from shared.contracts import (
    CategoryShare,
    ConsolidatedMetrics,
    DashboardOverview,
    LowStockItem,
    Product,
    ProductStats,
    RecentTransaction,
    SaleRecord,
    StockRecord,
    reference_id,
)
from shared.domain import StockLevel, classify_stock_level
from shared.keys import canonical_query, endpoint_key, metric_cache_key


def test_product_stats_accepts_and_emits_camel_case() -> None:
    stats = ProductStats.model_validate({"total": 3, "quantidadeTotal": 120, "sucesso": True})
    assert stats.quantidade_total == 120
    assert stats.model_dump(by_alias=True) == {"total": 3, "quantidadeTotal": 120}

    by_name = ProductStats(total=1, quantidade_total=2)
    assert by_name.model_dump(by_alias=True)["quantidadeTotal"] == 2


def test_low_stock_item_accepts_backend_quantity_names() -> None:
    from_dashboard = LowStockItem.model_validate(
        {"id": "p1", "estoqueAtual": 3, "estoqueMinimo": 15, "status": "critico"}
    )
    from_alerts = LowStockItem.model_validate({"id": "p1", "quantidade": 3})

    assert from_dashboard.estoque_atual == from_alerts.estoque_atual == 3
    assert from_dashboard.estoque_minimo == 15
    assert from_alerts.estoque_minimo == 20
    assert from_dashboard.status is StockLevel.CRITICO

    dumped = from_dashboard.model_dump(by_alias=True, mode="json")
    assert dumped["estoqueAtual"] == 3
    assert dumped["status"] == "critico"


def test_category_share_aliases() -> None:
    assert CategoryShare.model_validate({"_id": "Eletrônicos", "count": 4}).nome == "Eletrônicos"
    share = CategoryShare.model_validate({"name": "Acessórios", "quantidade": 2})
    assert (share.nome, share.quantidade) == ("Acessórios", 2)


def test_recent_transaction_accepts_mongo_id() -> None:
    row = RecentTransaction.model_validate(
        {"_id": "m1", "tipo": "saida", "quantidade": 2, "produtoNome": "Cabo"}
    )
    assert row.id == "m1"
    assert row.produto_nome == "Cabo"
    assert row.data is None


def test_consolidated_metrics_defaults_missing_blocks() -> None:
    metrics = ConsolidatedMetrics.model_validate({"sucesso": True, "metricas": {"totalProdutos": 5}})
    assert metrics.metricas.total_produtos == 5
    assert metrics.vendas.hoje == 0
    assert metrics.top_produtos == []


def test_overview_serializes_with_aliases() -> None:
    dumped = DashboardOverview(status="partial", degraded_metrics=["low-stock"]).model_dump(
        by_alias=True
    )
    assert dumped["status"] == "partial"
    assert dumped["degradedMetrics"] == ["low-stock"]
    assert dumped["productStats"] == {"total": 0, "quantidadeTotal": 0}


def test_product_references_may_be_populated_or_bare() -> None:
    populated = SaleRecord.model_validate(
        {"_id": "s1", "produto": {"_id": "p1", "nome": "Celular"}, "valorTotal": 10}
    )
    bare = SaleRecord.model_validate({"_id": "s2", "produto": "p1"})
    missing = SaleRecord.model_validate({"_id": "s3"})

    assert isinstance(populated.produto, Product)
    assert populated.product_id == bare.product_id == "p1"
    assert missing.product_id is None
    assert reference_id("") is None


def test_stock_record_identity_is_product_and_location() -> None:
    first = StockRecord.model_validate({"_id": "e1", "produto": "p1", "local": "Loja"})
    second = StockRecord.model_validate(
        {"_id": "e2", "produto": {"_id": "p1"}, "local": "Loja", "quantidade": 9}
    )
    other = StockRecord.model_validate({"produto": "p1", "local": "Depósito"})

    assert first.identity == second.identity == "p1@Loja"
    assert other.identity != first.identity


@pytest.mark.parametrize(
    ("quantidade", "expected"),
    [
        (-1, StockLevel.ESGOTADO),
        (0, StockLevel.ESGOTADO),
        (1, StockLevel.CRITICO),
        (9, StockLevel.CRITICO),
        (10, StockLevel.BAIXO),
        (19, StockLevel.BAIXO),
        (20, StockLevel.NORMAL),
    ],
)
def test_classify_stock_level_boundaries(quantidade: int, expected: StockLevel) -> None:
    assert classify_stock_level(quantidade) is expected


def test_stock_level_alerts() -> None:
    assert not StockLevel.NORMAL.is_alert
    assert StockLevel.ESGOTADO.is_alert
    assert classify_stock_level(30, low=50) is StockLevel.BAIXO


def test_canonical_query_is_order_independent() -> None:
    assert canonical_query({"page": 1, "limit": 5}) == canonical_query({"limit": 5, "page": 1})
    assert canonical_query({"ativo": True, "categoria": None}) == "ativo=true"
    assert canonical_query(None) == ""


def test_endpoint_and_metric_keys() -> None:
    assert endpoint_key("/api/produtos") == "/api/produtos"
    assert endpoint_key("/api/produtos", {"page": 2, "limit": 10}) == "/api/produtos?limit=10&page=2"
    assert metric_cache_key("top-products") == "top-products"
    assert metric_cache_key("top-products", {"limit": 5}) == "top-products:limit=5"
