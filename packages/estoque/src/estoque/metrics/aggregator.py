"""
Per-metric aggregation: cache, retries, fallback chain, serve-stale.

A metric read never fails for transient reasons. When every strategy is
exhausted the last cached value is served (even if expired) and, with nothing
cached, the metric's safe default. Authentication failures are the exception
and propagate to the caller.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from shared.keys import metric_cache_key

from estoque.engine.cache import TimeBoxedCache
from estoque.engine.notifications import NotificationLevel, Notifier
from estoque.engine.retry import RetryExecutor, RetryPolicy
from estoque.metrics.strategies import ChainExhaustedError, FallbackChain, Strategy

logger = logging.getLogger(__name__)


def always_usable(value: object) -> bool:
    return True


class MetricSource(StrEnum):
    """Where a metric value came from."""

    CACHE = "cache"
    LIVE = "live"
    STALE = "stale"
    DEFAULT = "default"


@dataclass(frozen=True)
class MetricReading[T]:
    value: T
    source: MetricSource
    strategy: str | None = None

    @property
    def degraded(self) -> bool:
        return self.source in (MetricSource.STALE, MetricSource.DEFAULT)


@dataclass(frozen=True)
class MetricDefinition[T]:
    """
    Everything needed to load one logical metric.

    ``strategies`` are tried in order; ``is_usable`` decides whether a
    successful result ends the chain; ``default`` builds the value served when
    nothing else is available.
    """

    name: str
    label: str
    strategies: Sequence[Strategy[T]]
    default: Callable[[], T]
    ttl_seconds: float
    is_usable: Callable[[T], bool] = always_usable


class MetricAggregator[T]:
    """Loads one metric through the cache and its fallback chain."""

    def __init__(
        self,
        definition: MetricDefinition[T],
        *,
        cache: TimeBoxedCache[Any],
        executor: RetryExecutor,
        policy: RetryPolicy,
        notifier: Notifier | None = None,
    ) -> None:
        self.definition = definition
        self._cache = cache
        self._executor = executor
        self._policy = policy
        self._notifier = notifier
        self._chain = FallbackChain(
            definition.name,
            definition.strategies,
            is_usable=definition.is_usable,
        )
        # Cache keys whose last load failed completely
        self._failing: set[str] = set()

    @property
    def name(self) -> str:
        return self.definition.name

    def cache_key(self, params: Mapping[str, Any] | None = None) -> str:
        return metric_cache_key(self.definition.name, params)

    async def get(
        self, params: Mapping[str, Any] | None = None, *, use_cache: bool = True
    ) -> T:
        """Metric value, never raising for transient failures."""
        reading = await self.read(params, use_cache=use_cache)
        return reading.value

    async def read(
        self, params: Mapping[str, Any] | None = None, *, use_cache: bool = True
    ) -> MetricReading[T]:
        params = dict(params or {})
        key = self.cache_key(params)

        if use_cache and self._cache.is_valid(key, ttl_seconds=self.definition.ttl_seconds):
            logger.debug(f"{key}: served from cache")
            return MetricReading(value=self._cache.get(key), source=MetricSource.CACHE)

        try:
            result = await self._chain.run(params, self._run_strategy)
        except ChainExhaustedError as e:
            return self._fallback(key, e)

        self._cache.set(key, result.value)
        if key in self._failing:
            self._failing.discard(key)
            logger.info(f"{key}: loading again after failures")
        return MetricReading(
            value=result.value, source=MetricSource.LIVE, strategy=result.strategy
        )

    async def _run_strategy(self, strategy: Strategy[T], params: Mapping[str, Any]) -> T:
        return await self._executor.with_retry(
            lambda: strategy.fetch(params),
            self._policy,
            self.definition.label,
        )

    def _fallback(self, key: str, error: ChainExhaustedError) -> MetricReading[T]:
        first_failure = key not in self._failing
        self._failing.add(key)
        if first_failure:
            logger.warning(f"{key}: every source failed, last error: {error.last_error!r}")

        entry = self._cache.entry(key)
        if entry is not None:
            if first_failure:
                self._notify(
                    NotificationLevel.WARNING,
                    f"Showing possibly outdated {self.definition.label}.",
                    key=f"stale:{key}",
                )
            return MetricReading(value=entry.value, source=MetricSource.STALE)

        if first_failure:
            self._notify(
                NotificationLevel.ERROR,
                f"Could not load {self.definition.label}. Try refreshing.",
                key=f"unavailable:{key}",
            )
        return MetricReading(value=self.definition.default(), source=MetricSource.DEFAULT)

    def _notify(self, level: NotificationLevel, message: str, *, key: str) -> None:
        if self._notifier is not None:
            self._notifier.notify(level, message, key=key)
