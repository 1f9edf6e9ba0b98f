from __future__ import annotations

import importlib
from typing import Any

import pytest
from estoque.cli import _version_callback, app
from estoque.cli.dashboard import resolve_settings
from estoque.cli.health import CheckResult
from estoque.config import Settings
from estoque.engine.classifier import classify
from estoque.engine.errors import ErrorCode, HttpStatusError, TransportError
from estoque.engine.notifications import Notification, NotificationLevel
from shared.contracts import DashboardOverview
from typer.testing import CliRunner

dashboard_module = importlib.import_module("estoque.cli.dashboard")
health_module = importlib.import_module("estoque.cli.health")

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(dashboard_module, "setup_logging", lambda verbose: None)
    monkeypatch.setattr(health_module, "setup_logging", lambda verbose: None)


@pytest.fixture
def env_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    settings = Settings(_env_file=None, url="http://backend.test")
    monkeypatch.setattr(dashboard_module, "get_settings", lambda: settings)
    return settings


def _overview() -> DashboardOverview:
    return DashboardOverview.model_validate(
        {
            "status": "partial",
            "productStats": {"total": 42, "quantidadeTotal": 1300},
            "salesStats": {"vendasHoje": 7},
            "topProducts": [{"id": "p1", "nome": "Celular", "quantidadeVendas": 9}],
            "lowStock": [{"id": "p2", "nome": "Fone", "local": "Loja", "estoqueAtual": 0, "status": "esgotado"}],
            "degradedMetrics": ["recent-transactions"],
        }
    )


def test_cli_app_help_and_version() -> None:
    help_result = runner.invoke(app, ["--help"])
    assert help_result.exit_code == 0
    assert "estoque" in help_result.stdout
    assert "dashboard" in help_result.stdout
    assert "health" in help_result.stdout

    version_result = runner.invoke(app, ["--version"])
    assert version_result.exit_code == 0
    assert "estoque" in version_result.stdout


def test_version_callback_noop_when_false() -> None:
    assert _version_callback(False) is None


def test_resolve_settings_applies_overrides(env_settings: Settings) -> None:
    assert resolve_settings(None, None) is env_settings

    resolved = resolve_settings("http://other.test", "abc")
    assert resolved.url == "http://other.test"
    assert resolved.api_token == "abc"
    assert env_settings.url == "http://backend.test"


def test_dashboard_prints_metrics_and_notices(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    seen: dict[str, Any] = {}

    async def fake_load(settings: Settings, *, use_cache: bool):
        seen["url"] = settings.url
        seen["use_cache"] = use_cache
        notices = [
            Notification(
                key="unavailable:recent-transactions",
                level=NotificationLevel.ERROR,
                message="Could not load recent transactions. Try refreshing.",
            )
        ]
        return _overview(), notices, True

    monkeypatch.setattr(dashboard_module, "_load", fake_load)

    result = runner.invoke(app, ["dashboard", "--no-cache", "--url", "http://cli.test"])

    assert result.exit_code == 0
    assert seen == {"url": "http://cli.test", "use_cache": False}
    assert "partial" in result.stdout
    assert "Celular" in result.stdout
    assert "esgotado" in result.stdout
    assert "Could not load recent transactions" in result.stdout
    assert "unreachable" in result.stdout


def test_dashboard_reports_unauthorized(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    async def fake_load(settings: Settings, *, use_cache: bool):
        raise HttpStatusError(401, path="/api/dashboard/products")

    monkeypatch.setattr(dashboard_module, "_load", fake_load)

    result = runner.invoke(app, ["dashboard"])

    assert result.exit_code == 1
    assert "Unauthorized" in result.stdout


def test_dashboard_reports_other_failures(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    async def fake_load(settings: Settings, *, use_cache: bool):
        raise RuntimeError("boom")

    monkeypatch.setattr(dashboard_module, "_load", fake_load)

    result = runner.invoke(app, ["dashboard"])

    assert result.exit_code == 1
    assert "Dashboard failed" in result.stdout


def test_debug_setting_enables_verbose_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = Settings(_env_file=None, url="http://backend.test", debug=True)
    monkeypatch.setattr(dashboard_module, "get_settings", lambda: settings)
    levels: list[bool] = []
    monkeypatch.setattr(health_module, "setup_logging", levels.append)

    async def fake_check(settings: Settings) -> CheckResult:
        return CheckResult(reachable=True, elapsed_ms=1.0, status=200)

    monkeypatch.setattr(health_module, "check_backend", fake_check)

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 0
    assert levels == [True]


def test_verbose_flag_without_debug_setting(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    levels: list[bool] = []
    monkeypatch.setattr(health_module, "setup_logging", levels.append)

    async def fake_check(settings: Settings) -> CheckResult:
        return CheckResult(reachable=True, elapsed_ms=1.0, status=200)

    monkeypatch.setattr(health_module, "check_backend", fake_check)

    runner.invoke(app, ["health"])
    runner.invoke(app, ["health", "--verbose"])

    assert levels == [False, True]


def test_health_reachable(monkeypatch: pytest.MonkeyPatch, env_settings: Settings) -> None:
    async def fake_check(settings: Settings) -> CheckResult:
        return CheckResult(reachable=True, elapsed_ms=12.0, status=200)

    monkeypatch.setattr(health_module, "check_backend", fake_check)

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 0
    assert "Reachable, HTTP 200" in result.stdout


def test_health_reachable_with_http_error(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    async def fake_check(settings: Settings) -> CheckResult:
        return CheckResult(
            reachable=True,
            elapsed_ms=3.0,
            status=401,
            failure=classify(HttpStatusError(401)),
        )

    monkeypatch.setattr(health_module, "check_backend", fake_check)

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 0
    assert "HTTP 401" in result.stdout


def test_health_unreachable_exits_nonzero(
    monkeypatch: pytest.MonkeyPatch, env_settings: Settings
) -> None:
    async def fake_check(settings: Settings) -> CheckResult:
        return CheckResult(
            reachable=False,
            elapsed_ms=1.0,
            failure=classify(TransportError(ErrorCode.CONNECTION_REFUSED)),
        )

    monkeypatch.setattr(health_module, "check_backend", fake_check)

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 1
    assert "Unreachable" in result.stdout
