"""Dashboard metrics: fallback chains, aggregation and the session service."""

from estoque.metrics.aggregator import (
    MetricAggregator,
    MetricDefinition,
    MetricReading,
    MetricSource,
)
from estoque.metrics.dashboard import DashboardService
from estoque.metrics.sources import DashboardSources
from estoque.metrics.strategies import (
    ChainExhaustedError,
    ChainResult,
    FallbackChain,
    Strategy,
)

__all__ = [
    "ChainExhaustedError",
    "ChainResult",
    "DashboardService",
    "DashboardSources",
    "FallbackChain",
    "MetricAggregator",
    "MetricDefinition",
    "MetricReading",
    "MetricSource",
    "Strategy",
]
