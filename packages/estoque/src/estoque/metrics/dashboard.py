"""Dashboard metrics service.

Owns the session-scoped state (cache, connection health, in-flight requests)
and exposes one accessor per metric plus the combined overview.

Example:
    async with DashboardService.create() as service:
        stats = await service.product_stats()
        overview = await service.overview()
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, Self

from shared.contracts import (
    CategoryShare,
    ConsolidatedMetrics,
    DashboardOverview,
    LowStockItem,
    ProductStats,
    RecentTransaction,
    SalesStats,
    TopProduct,
)
from shared.keys import metric_cache_key
from shared.keys import metrics as metric_keys

from estoque.config import Settings, get_settings
from estoque.engine.cache import TimeBoxedCache
from estoque.engine.classifier import ErrorKind, classify
from estoque.engine.coordinator import RequestCoordinator
from estoque.engine.notifications import NotificationCenter, NotificationLevel, Notifier
from estoque.engine.retry import RetryExecutor
from estoque.engine.session import CredentialStore, SessionGuard
from estoque.engine.transport import HttpTransport, Transport
from estoque.metrics.aggregator import (
    MetricAggregator,
    MetricDefinition,
    MetricReading,
    MetricSource,
)
from estoque.metrics.sources import DashboardSources
from estoque.metrics.strategies import Strategy

logger = logging.getLogger(__name__)

REFRESH_KEY = "dashboard-refresh"


class DashboardService:
    """Resilient access to the dashboard metrics for one user session."""

    def __init__(
        self,
        *,
        settings: Settings,
        transport: Transport,
        coordinator: RequestCoordinator,
        notifier: Notifier,
        session: SessionGuard,
        cache: TimeBoxedCache[Any],
        executor: RetryExecutor,
        today: Callable[[], date] = date.today,
        owns_transport: bool = False,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.coordinator = coordinator
        self.notifier = notifier
        self.session = session
        self.cache = cache
        self._executor = executor
        self._policy = settings.retry_policy()
        self._today = today
        self._owns_transport = owns_transport
        self._sources = DashboardSources(
            coordinator, sample_size=settings.list_sample_size, today=today
        )
        self._metrics = self._build_metrics()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        transport: Transport | None = None,
        notifier: Notifier | None = None,
        credentials: CredentialStore | None = None,
        on_session_expired: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        today: Callable[[], date] = date.today,
    ) -> Self:
        """Wire up a service with isolated state. Defaults come from settings."""
        settings = settings or get_settings()
        if notifier is None:
            notifier = NotificationCenter(
                auto_close_seconds=settings.notification_auto_close_seconds,
                clock=clock,
            )
        credentials = credentials or CredentialStore(settings.api_token)

        owns_transport = transport is None
        if transport is None:
            transport = HttpTransport(
                settings.url,
                credentials=credentials,
                timeout_seconds=settings.request_timeout_ms / 1000,
            )

        session = SessionGuard(
            credentials,
            notifier,
            login_path=settings.login_path,
            login_endpoint=settings.login_endpoint,
            on_expired=on_session_expired,
        )
        coordinator = RequestCoordinator(
            transport,
            notifier=notifier,
            session=session,
            degraded_after=settings.degraded_after_failures,
            clock=clock,
        )
        return cls(
            settings=settings,
            transport=transport,
            coordinator=coordinator,
            notifier=notifier,
            session=session,
            cache=TimeBoxedCache(settings.category_distribution_ttl_seconds, clock=clock),
            executor=RetryExecutor(notifier, sleep=sleep),
            today=today,
            owns_transport=owns_transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        await self.dispose()

    async def dispose(self) -> None:
        """Cancel in-flight requests and release the transport if we own it."""
        await self.coordinator.dispose()
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.close()

    def _build_metrics(self) -> dict[str, MetricAggregator[Any]]:
        sources = self._sources
        ttl = self.settings.ttl_for
        definitions: list[MetricDefinition[Any]] = [
            MetricDefinition(
                name=metric_keys.PRODUCT_STATS,
                label="product statistics",
                strategies=[
                    Strategy("dashboard-products", sources.product_stats),
                    Strategy(
                        "product-and-stock-lists",
                        sources.product_stats_from_lists,
                        legacy=True,
                    ),
                ],
                default=ProductStats,
                ttl_seconds=ttl(metric_keys.PRODUCT_STATS),
            ),
            MetricDefinition(
                name=metric_keys.SALES_STATS,
                label="sales statistics",
                strategies=[
                    Strategy("dashboard-sales", sources.dashboard_sales),
                    Strategy("sales", sources.sales_today),
                    Strategy("sale-movements", sources.sales_today_from_movements),
                ],
                default=SalesStats,
                ttl_seconds=ttl(metric_keys.SALES_STATS),
                is_usable=lambda stats: stats.vendas_hoje > 0,
            ),
            MetricDefinition(
                name=metric_keys.TOP_PRODUCTS,
                label="top products",
                strategies=[
                    Strategy("dashboard-top-products", sources.top_products),
                    Strategy("sales-ranking", sources.top_products_from_sales, legacy=True),
                ],
                default=list,
                ttl_seconds=ttl(metric_keys.TOP_PRODUCTS),
            ),
            MetricDefinition(
                name=metric_keys.LOW_STOCK,
                label="low stock products",
                strategies=[
                    Strategy("dashboard-low-stock", sources.low_stock),
                    Strategy("stock-join", sources.low_stock_from_lists, legacy=True),
                ],
                default=list,
                ttl_seconds=ttl(metric_keys.LOW_STOCK),
            ),
            MetricDefinition(
                name=metric_keys.CATEGORY_DISTRIBUTION,
                label="category distribution",
                strategies=[
                    Strategy("dashboard-categories", sources.categories),
                    Strategy(
                        "catalog-grouping", sources.categories_from_catalog, legacy=True
                    ),
                ],
                default=list,
                ttl_seconds=ttl(metric_keys.CATEGORY_DISTRIBUTION),
            ),
            MetricDefinition(
                name=metric_keys.RECENT_TRANSACTIONS,
                label="recent transactions",
                strategies=[
                    Strategy("dashboard-transactions", sources.recent_transactions),
                    Strategy("movement-history", sources.recent_from_history),
                ],
                default=list,
                ttl_seconds=ttl(metric_keys.RECENT_TRANSACTIONS),
                is_usable=bool,
            ),
        ]
        return {
            definition.name: MetricAggregator(
                definition,
                cache=self.cache,
                executor=self._executor,
                policy=self._policy,
                notifier=self.notifier,
            )
            for definition in definitions
        }

    def metric(self, name: str) -> MetricAggregator[Any]:
        try:
            return self._metrics[name]
        except KeyError:
            raise ValueError(f"Unknown metric '{name}'") from None

    # Accessors

    def _sales_params(self, day: date | None) -> dict[str, str]:
        return {"day": (day or self._today()).isoformat()}

    def _limit(self, limit: int | None, default: int) -> dict[str, int]:
        return {"limit": limit if limit is not None else default}

    async def product_stats(self, *, use_cache: bool = True) -> ProductStats:
        return await self.metric(metric_keys.PRODUCT_STATS).get(use_cache=use_cache)

    async def sales_stats(
        self, day: date | None = None, *, use_cache: bool = True
    ) -> SalesStats:
        return await self.metric(metric_keys.SALES_STATS).get(
            self._sales_params(day), use_cache=use_cache
        )

    async def top_products(
        self, limit: int | None = None, *, use_cache: bool = True
    ) -> list[TopProduct]:
        return await self.metric(metric_keys.TOP_PRODUCTS).get(
            self._limit(limit, self.settings.top_products_limit), use_cache=use_cache
        )

    async def low_stock(
        self, limit: int | None = None, *, use_cache: bool = True
    ) -> list[LowStockItem]:
        return await self.metric(metric_keys.LOW_STOCK).get(
            self._limit(limit, self.settings.low_stock_limit), use_cache=use_cache
        )

    async def category_distribution(self, *, use_cache: bool = True) -> list[CategoryShare]:
        return await self.metric(metric_keys.CATEGORY_DISTRIBUTION).get(use_cache=use_cache)

    async def recent_transactions(
        self, limit: int | None = None, *, use_cache: bool = True
    ) -> list[RecentTransaction]:
        return await self.metric(metric_keys.RECENT_TRANSACTIONS).get(
            self._limit(limit, self.settings.recent_transactions_limit),
            use_cache=use_cache,
        )

    # Overview

    async def overview(self, *, use_cache: bool = True) -> DashboardOverview:
        """
        Every metric at once.

        The consolidated endpoint is tried first; when it is unavailable the
        six metrics are loaded concurrently through their own fallback chains.
        """
        key = metric_cache_key(metric_keys.DASHBOARD_OVERVIEW)
        ttl = self.settings.ttl_for(metric_keys.DASHBOARD_OVERVIEW)
        if use_cache and self.cache.is_valid(key, ttl_seconds=ttl):
            return self.cache.get(key)

        try:
            consolidated = await self._executor.with_retry(
                self._sources.consolidated, self._policy, "dashboard metrics"
            )
        except Exception as e:
            if classify(e).kind is ErrorKind.AUTH:
                raise
            logger.warning(f"Consolidated metrics unavailable, loading individually: {e!r}")
        else:
            overview = self._from_consolidated(consolidated)
            self.cache.set(key, overview)
            return overview

        limits = self.settings
        readings: list[MetricReading[Any]] = list(
            await asyncio.gather(
                self.metric(metric_keys.PRODUCT_STATS).read(use_cache=use_cache),
                self.metric(metric_keys.SALES_STATS).read(
                    self._sales_params(None), use_cache=use_cache
                ),
                self.metric(metric_keys.TOP_PRODUCTS).read(
                    self._limit(None, limits.top_products_limit), use_cache=use_cache
                ),
                self.metric(metric_keys.LOW_STOCK).read(
                    self._limit(None, limits.low_stock_limit), use_cache=use_cache
                ),
                self.metric(metric_keys.CATEGORY_DISTRIBUTION).read(use_cache=use_cache),
                self.metric(metric_keys.RECENT_TRANSACTIONS).read(
                    self._limit(None, limits.recent_transactions_limit),
                    use_cache=use_cache,
                ),
            )
        )
        product, sales, top, low, categories, transactions = readings

        degraded = [
            name
            for name, reading in zip(metric_keys.ALL_METRICS, readings, strict=True)
            if reading.degraded
        ]
        if all(reading.source is MetricSource.DEFAULT for reading in readings):
            status = "fallback"
        elif degraded:
            status = "partial"
        else:
            status = "live"

        return DashboardOverview(
            status=status,
            product_stats=product.value,
            sales_stats=sales.value,
            top_products=top.value,
            low_stock=low.value,
            categories=categories.value,
            transactions=transactions.value,
            degraded_metrics=degraded,
        )

    def _from_consolidated(self, metrics: ConsolidatedMetrics) -> DashboardOverview:
        return DashboardOverview(
            status="live",
            product_stats=ProductStats(
                total=metrics.metricas.total_produtos,
                quantidade_total=metrics.metricas.valor_total_estoque,
            ),
            sales_stats=SalesStats(
                vendas_hoje=metrics.vendas.hoje,
                quantidade_vendida=metrics.vendas.quantidade_hoje,
                fonte="dashboard",
            ),
            top_products=metrics.top_produtos,
            low_stock=metrics.alertas_estoque,
            categories=metrics.distribuicao_categorias,
            transactions=metrics.movimentacoes_recentes,
        )

    # Cache and health

    def clear_all(self) -> None:
        """Drop every cached metric."""
        self.cache.clear()

    def refresh_all(self) -> None:
        """Clear the cache and tell the user fresh data is on its way."""
        self.notifier.notify(
            NotificationLevel.INFO, "Refreshing dashboard data...", key=REFRESH_KEY
        )
        self.clear_all()

    def is_connection_degraded(self) -> bool:
        return self.coordinator.is_connection_degraded()
