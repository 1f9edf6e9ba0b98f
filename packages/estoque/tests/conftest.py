from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date

import pytest
import pytest_asyncio
from _fixtures.time import FakeClock, RecordingSleep
from _fixtures.transport import StubTransport
from estoque.config import Settings
from estoque.engine.notifications import NotificationCenter
from estoque.metrics.dashboard import DashboardService

TODAY = date(2026, 10, 19)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def notifier(clock: FakeClock) -> NotificationCenter:
    return NotificationCenter(auto_close_seconds=5.0, clock=clock)


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        url="http://backend.test",
        api_token="token-123",
        retry_attempts=2,
        retry_base_delay_ms=500,
        retry_max_delay_ms=10_000,
        request_timeout_ms=10_000,
    )


@pytest_asyncio.fixture
async def service(
    settings: Settings,
    transport: StubTransport,
    notifier: NotificationCenter,
    clock: FakeClock,
    sleep: RecordingSleep,
) -> AsyncIterator[DashboardService]:
    svc = DashboardService.create(
        settings,
        transport=transport,
        notifier=notifier,
        clock=clock,
        sleep=sleep,
        today=lambda: TODAY,
    )
    try:
        yield svc
    finally:
        await svc.dispose()
