"""Health command."""

import asyncio
import time
from dataclasses import dataclass

import typer
from shared.keys import api

from estoque.cli._console import dim, error, header, nl, setup_logging, success, warning
from estoque.cli.dashboard import resolve_settings
from estoque.config import Settings
from estoque.engine.classifier import ErrorInfo, classify
from estoque.engine.coordinator import RequestCoordinator
from estoque.engine.errors import HttpStatusError
from estoque.engine.session import CredentialStore
from estoque.engine.transport import HttpTransport


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single backend check."""

    reachable: bool
    elapsed_ms: float
    status: int | None = None
    failure: ErrorInfo | None = None


async def check_backend(settings: Settings, path: str = api.DASHBOARD_PRODUCTS) -> CheckResult:
    """Issue one request without retries. Any HTTP response counts as reachable."""
    transport = HttpTransport(
        settings.url,
        credentials=CredentialStore(settings.api_token),
        timeout_seconds=settings.request_timeout_ms / 1000,
    )
    async with transport:
        coordinator = RequestCoordinator(transport)
        started = time.perf_counter()
        try:
            response = await coordinator.get(path)
        except HttpStatusError as e:
            return CheckResult(
                reachable=True,
                elapsed_ms=(time.perf_counter() - started) * 1000,
                status=e.status,
                failure=classify(e),
            )
        except Exception as e:
            return CheckResult(
                reachable=False,
                elapsed_ms=(time.perf_counter() - started) * 1000,
                failure=classify(e),
            )
        return CheckResult(
            reachable=True,
            elapsed_ms=(time.perf_counter() - started) * 1000,
            status=response.status,
        )


def health(
    url: str | None = typer.Option(None, "--url", help="Backend base URL"),
    token: str | None = typer.Option(None, "--token", help="Bearer token"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logs"),
) -> None:
    """Check whether the backend is reachable."""
    settings = resolve_settings(url, token)
    setup_logging(verbose or settings.debug)
    result = asyncio.run(check_backend(settings))

    header(settings.url)
    if not result.reachable:
        assert result.failure is not None
        error(f"Unreachable ({result.failure.kind}): {result.failure.message}")
        nl()
        raise typer.Exit(1)

    if result.failure is not None:
        warning(f"Reachable, HTTP {result.status} ({result.failure.kind})")
    else:
        success(f"Reachable, HTTP {result.status}")
    dim(f"{result.elapsed_ms:.0f} ms")
    nl()
