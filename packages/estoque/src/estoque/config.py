"""Estoque client configuration with sensible defaults for development."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.keys import metrics as metric_keys
from shared.keys.api import AUTH_LOGIN

if TYPE_CHECKING:
    from estoque.engine.retry import RetryPolicy


class Settings(BaseSettings):
    """
    Estoque client configuration.

    All settings can be overridden via environment variables with ESTOQUE_ prefix.
    Defaults target a local backend - no configuration needed to get started.
    """

    model_config = SettingsConfigDict(
        env_prefix="ESTOQUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Debug logging in the CLI without passing --verbose
    debug: bool = False

    # Backend base URL
    url: str = "http://localhost:5000"

    # Bearer token attached to every request
    api_token: str | None = None

    # Login boundary
    login_path: str = "/login"
    login_endpoint: str = AUTH_LOGIN

    # Timeout and retry controls
    request_timeout_ms: int = 10_000
    retry_attempts: int = 2
    retry_base_delay_ms: int = 1_000
    retry_max_delay_ms: int = 10_000
    retry_jitter: float = 0.0

    # Connectivity failures before the connection is reported as degraded
    degraded_after_failures: int = 1

    # Metric freshness windows (seconds)
    product_stats_ttl_seconds: float = 300.0
    sales_stats_ttl_seconds: float = 120.0
    top_products_ttl_seconds: float = 300.0
    low_stock_ttl_seconds: float = 120.0
    category_distribution_ttl_seconds: float = 180.0
    recent_transactions_ttl_seconds: float = 60.0
    overview_ttl_seconds: float = 120.0

    # Row cap for list endpoints used by client-side fallbacks
    list_sample_size: int = 1_000

    # Default metric parameters
    top_products_limit: int = 5
    low_stock_limit: int = 10
    recent_transactions_limit: int = 8

    notification_auto_close_seconds: float = 5.0

    def retry_policy(self) -> RetryPolicy:
        """Build the default retry policy for metric fetches."""
        from estoque.engine.retry import RetryPolicy

        base_delay_ms = max(1, self.retry_base_delay_ms)
        return RetryPolicy(
            max_attempts=max(0, self.retry_attempts),
            base_delay_ms=base_delay_ms,
            timeout_ms=max(1, self.request_timeout_ms),
            max_delay_ms=max(base_delay_ms, self.retry_max_delay_ms)
            if self.retry_max_delay_ms > 0
            else None,
            jitter=max(0.0, self.retry_jitter),
        )

    def ttl_for(self, metric: str) -> float:
        """Resolve the freshness window for a metric name."""
        ttls = {
            metric_keys.PRODUCT_STATS: self.product_stats_ttl_seconds,
            metric_keys.SALES_STATS: self.sales_stats_ttl_seconds,
            metric_keys.TOP_PRODUCTS: self.top_products_ttl_seconds,
            metric_keys.LOW_STOCK: self.low_stock_ttl_seconds,
            metric_keys.CATEGORY_DISTRIBUTION: self.category_distribution_ttl_seconds,
            metric_keys.RECENT_TRANSACTIONS: self.recent_transactions_ttl_seconds,
            metric_keys.DASHBOARD_OVERVIEW: self.overview_ttl_seconds,
        }
        try:
            return ttls[metric]
        except KeyError:
            raise ValueError(f"Unknown metric '{metric}'") from None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
