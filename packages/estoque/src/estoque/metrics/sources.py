"""
Metric sources: backend endpoints and the client-side computations that stand
in for them when the aggregated dashboard endpoints are unavailable.

List endpoints are sampled up to ``sample_size`` rows. Rows past the cap are
not counted; the legacy computations are an approximation for large catalogs.
"""

import calendar
import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date, datetime, time
from typing import Any, Protocol

from pydantic import TypeAdapter
from shared.contracts import (
    CategoryShare,
    ConsolidatedMetrics,
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
from shared.domain import LOW_STOCK_THRESHOLD, classify_stock_level
from shared.keys import api

from estoque.engine.errors import PayloadError
from estoque.engine.transport import Response

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Sem categoria"

# Sales window ranked by the top products endpoint
TOP_PRODUCTS_WINDOW_MONTHS = 3

_products_adapter = TypeAdapter(list[Product])
_stock_adapter = TypeAdapter(list[StockRecord])
_sales_adapter = TypeAdapter(list[SaleRecord])
_movements_adapter = TypeAdapter(list[MovementRecord])
_top_products_adapter = TypeAdapter(list[TopProduct])
_low_stock_adapter = TypeAdapter(list[LowStockItem])
_categories_adapter = TypeAdapter(list[CategoryShare])
_transactions_adapter = TypeAdapter(list[RecentTransaction])


class Requester(Protocol):
    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Response: ...


class Identified(Protocol):
    @property
    def identity(self) -> str: ...


def unwrap(response: Response) -> dict[str, Any]:
    """Return the JSON object of a response, rejecting failure envelopes."""
    body = response.body
    if not isinstance(body, dict):
        raise PayloadError(response.path, f"expected a JSON object, got {type(body).__name__}")
    if body.get("sucesso") is False:
        raise PayloadError(
            response.path, str(body.get("mensagem") or body.get("erro") or "request rejected")
        )
    return body


def dedupe_by_identity[R: Identified](records: Iterable[R]) -> list[R]:
    """Drop repeated records, keeping the first occurrence of each identity."""
    seen: set[str] = set()
    unique: list[R] = []
    for record in records:
        if record.identity in seen:
            continue
        seen.add(record.identity)
        unique.append(record)
    return unique


def _sample[R](rows: Sequence[R], sample_size: int, source: str) -> Sequence[R]:
    if len(rows) > sample_size:
        logger.debug(f"{source}: counting first {sample_size} of {len(rows)} rows")
        return rows[:sample_size]
    if len(rows) == sample_size:
        logger.debug(f"{source}: sample cap of {sample_size} rows reached, totals may be low")
    return rows


# Client-side computations


def compute_product_stats(total: int, stock: Iterable[StockRecord]) -> ProductStats:
    quantidade = sum(record.quantidade for record in dedupe_by_identity(stock))
    return ProductStats(total=total, quantidade_total=quantidade)


def summarize_sales(
    records: Iterable[SaleRecord | MovementRecord], *, fonte: str
) -> SalesStats:
    """Sales count, units and revenue for a set of sale-like records."""
    unique = dedupe_by_identity(records)
    return SalesStats(
        vendas_hoje=len(unique),
        quantidade_vendida=sum(record.quantidade for record in unique),
        valor_total=sum(getattr(record, "valor_total", 0.0) for record in unique),
        fonte=fonte,
    )


def rank_top_products(
    sales: Sequence[SaleRecord],
    limit: int,
    *,
    sample_size: int = 1_000,
) -> list[TopProduct]:
    """Rank products by number of sales within the sampled rows."""
    sampled = dedupe_by_identity(_sample(sales, sample_size, "top products"))

    counts: Counter[str] = Counter()
    units: Counter[str] = Counter()
    products: dict[str, Product] = {}
    for sale in sampled:
        product_id = sale.product_id
        if product_id is None:
            continue
        counts[product_id] += 1
        units[product_id] += sale.quantidade
        if isinstance(sale.produto, Product):
            products.setdefault(product_id, sale.produto)

    ranking = [
        TopProduct(
            id=product_id,
            nome=products[product_id].nome if product_id in products else "",
            categoria=products[product_id].categoria if product_id in products else None,
            quantidade_vendas=count,
            quantidade_total=units[product_id],
        )
        for product_id, count in counts.items()
    ]
    ranking.sort(key=lambda p: (-p.quantidade_vendas, -p.quantidade_total, p.nome))
    return ranking[: max(0, limit)]


def compute_low_stock(
    products: Iterable[Product],
    stock: Iterable[StockRecord],
    limit: int,
    *,
    threshold: int = LOW_STOCK_THRESHOLD,
) -> list[LowStockItem]:
    """Join stock rows with the catalog and keep those below ``threshold``."""
    catalog = {product.object_id: product for product in products}
    items: list[LowStockItem] = []
    for record in dedupe_by_identity(stock):
        product_id = record.product_id
        if product_id is None or record.quantidade >= threshold:
            continue
        if isinstance(record.produto, Product):
            product = record.produto
        else:
            product = catalog.get(product_id)
        items.append(
            LowStockItem(
                id=product_id,
                nome=product.nome if product is not None else "",
                local=record.local,
                estoque_atual=record.quantidade,
                estoque_minimo=threshold,
                status=classify_stock_level(record.quantidade, low=threshold),
            )
        )
    items.sort(key=lambda item: (item.estoque_atual, item.nome))
    return items[: max(0, limit)]


def compute_category_distribution(products: Iterable[Product]) -> list[CategoryShare]:
    counts = Counter(
        (product.categoria or "").strip() or UNCATEGORIZED
        for product in dedupe_by_identity(products)
    )
    shares = [CategoryShare(nome=nome, quantidade=count) for nome, count in counts.items()]
    shares.sort(key=lambda share: (-share.quantidade, share.nome))
    return shares


def recent_from_movements(
    movements: Iterable[MovementRecord], limit: int
) -> list[RecentTransaction]:
    """Newest movements first, shaped like the dashboard transactions rows."""
    unique = dedupe_by_identity(movements)
    unique.sort(key=lambda m: m.data.timestamp() if m.data else float("-inf"), reverse=True)
    return [
        RecentTransaction(
            id=movement.object_id,
            tipo=movement.tipo,
            quantidade=movement.quantidade,
            local_origem=movement.local_origem,
            local_destino=movement.local_destino,
            data=movement.data,
            produto_nome=movement.produto.nome
            if isinstance(movement.produto, Product)
            else None,
        )
        for movement in unique[: max(0, limit)]
    ]


def day_range(day: str | date) -> tuple[str, str]:
    """ISO bounds covering a whole calendar day."""
    parsed = day if isinstance(day, date) else date.fromisoformat(day)
    start = datetime.combine(parsed, time.min)
    end = datetime.combine(parsed, time.max)
    return start.isoformat(timespec="milliseconds"), end.isoformat(timespec="milliseconds")


def months_before(day: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of shorter months."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


class DashboardSources:
    """Fetchers for every metric strategy, bound to one requester."""

    def __init__(
        self,
        requester: Requester,
        *,
        sample_size: int = 1_000,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._requester = requester
        self._sample_size = max(1, sample_size)
        self._today = today

    async def _get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return unwrap(await self._requester.get(path, params))

    async def _catalog(self) -> list[Product]:
        body = await self._get(api.PRODUCTS, {"page": 1, "limit": self._sample_size})
        return _products_adapter.validate_python(body.get("produtos") or [])

    async def _stock(self) -> list[StockRecord]:
        body = await self._get(api.STOCK)
        rows = _stock_adapter.validate_python(body.get("estoques") or [])
        return list(_sample(rows, self._sample_size, "stock"))

    # Product stats

    async def product_stats(self, params: Mapping[str, Any]) -> ProductStats:
        return ProductStats.model_validate(await self._get(api.DASHBOARD_PRODUCTS))

    async def product_stats_from_lists(self, params: Mapping[str, Any]) -> ProductStats:
        body = await self._get(api.PRODUCTS, {"page": 1, "limit": 1})
        total = int(body.get("total") or 0)
        return compute_product_stats(total, await self._stock())

    # Sales today

    async def dashboard_sales(self, params: Mapping[str, Any]) -> SalesStats:
        # The endpoint only reports the backend's current day.
        if params["day"] != self._today().isoformat():
            logger.debug(f"Skipping {api.DASHBOARD_SALES} for {params['day']}")
            return SalesStats()
        stats = SalesStats.model_validate(await self._get(api.DASHBOARD_SALES))
        return stats.model_copy(update={"fonte": "dashboard"})

    async def sales_today(self, params: Mapping[str, Any]) -> SalesStats:
        start, end = day_range(params["day"])
        body = await self._get(api.SALES, {"dataInicio": start, "dataFim": end})
        rows = _sales_adapter.validate_python(body.get("vendas") or [])
        return summarize_sales(_sample(rows, self._sample_size, "sales"), fonte="vendas")

    async def sales_today_from_movements(self, params: Mapping[str, Any]) -> SalesStats:
        start, end = day_range(params["day"])
        body = await self._get(
            api.MOVEMENTS_HISTORY,
            {
                "tipo": "venda",
                "dataInicio": start,
                "dataFim": end,
                "page": 1,
                "limit": self._sample_size,
            },
        )
        rows = _movements_adapter.validate_python(body.get("movimentacoes") or [])
        return summarize_sales(rows, fonte="movimentacoes")

    # Top products

    async def top_products(self, params: Mapping[str, Any]) -> list[TopProduct]:
        body = await self._get(api.DASHBOARD_TOP_PRODUCTS, {"limit": params["limit"]})
        return _top_products_adapter.validate_python(body.get("produtos") or [])

    async def top_products_from_sales(self, params: Mapping[str, Any]) -> list[TopProduct]:
        today = self._today()
        start, _ = day_range(months_before(today, TOP_PRODUCTS_WINDOW_MONTHS))
        _, end = day_range(today)
        body = await self._get(api.SALES, {"dataInicio": start, "dataFim": end})
        rows = _sales_adapter.validate_python(body.get("vendas") or [])
        return rank_top_products(rows, params["limit"], sample_size=self._sample_size)

    # Low stock

    async def low_stock(self, params: Mapping[str, Any]) -> list[LowStockItem]:
        body = await self._get(api.DASHBOARD_LOW_STOCK, {"limit": params["limit"]})
        return _low_stock_adapter.validate_python(body.get("produtos") or [])

    async def low_stock_from_lists(self, params: Mapping[str, Any]) -> list[LowStockItem]:
        stock = await self._stock()
        products = await self._catalog()
        return compute_low_stock(products, stock, params["limit"])

    # Category distribution

    async def categories(self, params: Mapping[str, Any]) -> list[CategoryShare]:
        body = await self._get(api.DASHBOARD_CATEGORIES)
        return _categories_adapter.validate_python(body.get("categorias") or [])

    async def categories_from_catalog(self, params: Mapping[str, Any]) -> list[CategoryShare]:
        return compute_category_distribution(await self._catalog())

    # Recent transactions

    async def recent_transactions(self, params: Mapping[str, Any]) -> list[RecentTransaction]:
        body = await self._get(api.DASHBOARD_TRANSACTIONS, {"limit": params["limit"]})
        return _transactions_adapter.validate_python(body.get("movimentacoes") or [])

    async def recent_from_history(self, params: Mapping[str, Any]) -> list[RecentTransaction]:
        body = await self._get(
            api.MOVEMENTS_HISTORY, {"page": 1, "limit": params["limit"]}
        )
        rows = _movements_adapter.validate_python(body.get("movimentacoes") or [])
        return recent_from_movements(rows, params["limit"])

    # Consolidated

    async def consolidated(self) -> ConsolidatedMetrics:
        return ConsolidatedMetrics.model_validate(await self._get(api.DASHBOARD_METRICS))
