"""Backend endpoint paths consumed by the client.

Dashboard endpoints aggregate server-side; list endpoints return raw records
and back the client-side fallback computations.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

API_PREFIX = "/api"

# Authentication (a 401 from here is a wrong password, never an expiry)
AUTH_LOGIN = f"{API_PREFIX}/auth/login"

# Server-side aggregated dashboard endpoints
DASHBOARD_PREFIX = f"{API_PREFIX}/dashboard"
DASHBOARD_METRICS = f"{DASHBOARD_PREFIX}/metrics"
DASHBOARD_PRODUCTS = f"{DASHBOARD_PREFIX}/products"
DASHBOARD_SALES = f"{DASHBOARD_PREFIX}/sales"
DASHBOARD_TOP_PRODUCTS = f"{DASHBOARD_PREFIX}/top-products"
DASHBOARD_LOW_STOCK = f"{DASHBOARD_PREFIX}/low-stock"
DASHBOARD_CATEGORIES = f"{DASHBOARD_PREFIX}/categories"
DASHBOARD_TRANSACTIONS = f"{DASHBOARD_PREFIX}/transactions"

# Primitive list endpoints
PRODUCTS = f"{API_PREFIX}/produtos"
STOCK = f"{API_PREFIX}/estoque"
SALES = f"{API_PREFIX}/vendas"
MOVEMENTS_HISTORY = f"{API_PREFIX}/movimentacoes/historico"


def canonical_query(params: Mapping[str, Any] | None) -> str:
    """Encode params with sorted keys, dropping ``None`` values."""
    if not params:
        return ""
    items = sorted((k, _format_value(v)) for k, v in params.items() if v is not None)
    return urlencode(items)


def endpoint_key(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Path plus canonical query string."""
    query = canonical_query(params)
    return f"{path}?{query}" if query else path


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
