"""Dashboard command."""

import asyncio

import typer
from rich.box import ROUNDED
from rich.table import Table
from shared.contracts import DashboardOverview

from estoque.cli._console import (
    console,
    dim,
    error,
    error_panel,
    header,
    info,
    nl,
    setup_logging,
    success,
    warning,
)
from estoque.config import Settings, get_settings
from estoque.engine.classifier import ErrorKind, classify
from estoque.engine.notifications import Notification, NotificationCenter, NotificationLevel
from estoque.metrics.dashboard import DashboardService

_STATUS_STYLES = {
    "live": "green",
    "partial": "yellow",
    "fallback": "red",
}


def resolve_settings(url: str | None, token: str | None) -> Settings:
    """Apply command line overrides on top of the environment settings."""
    overrides: dict[str, str] = {}
    if url:
        overrides["url"] = url
    if token:
        overrides["api_token"] = token
    settings = get_settings()
    return settings.model_copy(update=overrides) if overrides else settings


async def _load(
    settings: Settings, *, use_cache: bool
) -> tuple[DashboardOverview, list[Notification], bool]:
    notifier = NotificationCenter(
        auto_close_seconds=settings.notification_auto_close_seconds
    )
    async with DashboardService.create(settings, notifier=notifier) as service:
        overview = await service.overview(use_cache=use_cache)
        return overview, notifier.history, service.is_connection_degraded()


def dashboard(
    url: str | None = typer.Option(None, "--url", help="Backend base URL"),
    token: str | None = typer.Option(None, "--token", help="Bearer token"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Skip cached metrics"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logs"),
) -> None:
    """Load the dashboard metrics and print them."""
    settings = resolve_settings(url, token)
    setup_logging(verbose or settings.debug)

    try:
        overview, notices, degraded = asyncio.run(_load(settings, use_cache=not no_cache))
    except Exception as e:
        failure = classify(e)
        if failure.kind is ErrorKind.AUTH:
            error_panel(failure.message, title="Unauthorized")
        else:
            error_panel(str(e), title="Dashboard failed")
        raise typer.Exit(1) from None

    render_overview(overview)
    render_notices(notices)
    if degraded:
        nl()
        warning(f"Backend at {settings.url} is unreachable, data may be outdated")
    nl()


def render_overview(overview: DashboardOverview) -> None:
    style = _STATUS_STYLES.get(overview.status, "white")
    header(f"Dashboard [{style}]{overview.status}[/{style}]")

    dim(f"Products: {overview.product_stats.total}")
    dim(f"Units in stock: {overview.product_stats.quantidade_total}")
    dim(f"Sales today: {overview.sales_stats.vendas_hoje}")
    if overview.degraded_metrics:
        dim(f"Degraded: {', '.join(overview.degraded_metrics)}")
    nl()

    top = _table("Top products", "Product", "Category", "Sales")
    for product in overview.top_products:
        top.add_row(
            product.nome or product.id,
            product.categoria or "-",
            str(product.quantidade_vendas),
        )
    console.print(top)

    low = _table("Low stock", "Product", "Location", "Qty", "Status")
    for item in overview.low_stock:
        low.add_row(
            item.nome or item.id,
            item.local or "-",
            str(item.estoque_atual),
            item.status.value if item.status else "-",
        )
    console.print(low)

    categories = _table("Categories", "Category", "Products")
    for share in overview.categories:
        categories.add_row(share.nome, str(share.quantidade))
    console.print(categories)

    transactions = _table("Recent movements", "Type", "Product", "Qty", "When")
    for movement in overview.transactions:
        transactions.add_row(
            movement.tipo,
            movement.produto_nome or "-",
            str(movement.quantidade),
            movement.data.strftime("%Y-%m-%d %H:%M") if movement.data else "-",
        )
    console.print(transactions)


def render_notices(notices: list[Notification]) -> None:
    if not notices:
        return
    nl()
    for notice in notices:
        if notice.level is NotificationLevel.ERROR:
            error(notice.message)
        elif notice.level is NotificationLevel.WARNING:
            warning(notice.message)
        elif notice.level is NotificationLevel.SUCCESS:
            success(notice.message)
        else:
            info(notice.message)


def _table(title: str, *columns: str) -> Table:
    table = Table(title=title, title_justify="left", box=ROUNDED, border_style="dim")
    for column in columns:
        table.add_column(column)
    return table
