from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import test_utils, web
from estoque.engine.errors import ErrorCode, TransportError
from estoque.engine.session import CredentialStore
from estoque.engine.transport import HttpTransport


async def _products(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "total": 2,
            "page": request.query.get("page"),
            "ativo": request.query.get("ativo"),
            "auth": request.headers.get("Authorization"),
        }
    )


async def _failure(request: web.Request) -> web.Response:
    return web.json_response(
        {"sucesso": False, "mensagem": "Erro ao obter estatísticas"}, status=500
    )


async def _plain(request: web.Request) -> web.Response:
    return web.Response(text="pong")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({})


@pytest_asyncio.fixture
async def server() -> AsyncIterator[test_utils.TestServer]:
    app = web.Application()
    app.router.add_get("/api/produtos", _products)
    app.router.add_get("/api/dashboard/sales", _failure)
    app.router.add_get("/ping", _plain)
    app.router.add_get("/slow", _slow)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    try:
        yield test_server
    finally:
        await test_server.close()


def _base_url(server: test_utils.TestServer) -> str:
    return str(server.make_url("")).rstrip("/")


@pytest.mark.asyncio
async def test_json_body_params_and_bearer_token(server: test_utils.TestServer) -> None:
    credentials = CredentialStore("secret")
    async with HttpTransport(_base_url(server), credentials=credentials) as transport:
        response = await transport.request(
            "get", "/api/produtos", {"page": 2, "ativo": True, "categoria": None}
        )

    assert response.ok
    assert response.method == "GET"
    assert response.path == "/api/produtos"
    assert response.body == {"total": 2, "page": "2", "ativo": "true", "auth": "Bearer secret"}


@pytest.mark.asyncio
async def test_token_changes_apply_to_next_request(server: test_utils.TestServer) -> None:
    credentials = CredentialStore("first")
    async with HttpTransport(_base_url(server), credentials=credentials) as transport:
        await transport.request("GET", "/api/produtos")
        credentials.clear()
        response = await transport.request("GET", "/api/produtos")

    assert response.body["auth"] is None


@pytest.mark.asyncio
async def test_error_statuses_are_returned_not_raised(server: test_utils.TestServer) -> None:
    async with HttpTransport(_base_url(server), credentials=CredentialStore()) as transport:
        response = await transport.request("GET", "/api/dashboard/sales")

    assert not response.ok
    assert response.status == 500
    assert response.body["mensagem"] == "Erro ao obter estatísticas"


@pytest.mark.asyncio
async def test_non_json_body_is_kept_as_text(server: test_utils.TestServer) -> None:
    async with HttpTransport(_base_url(server), credentials=CredentialStore()) as transport:
        response = await transport.request("GET", "/ping")
    assert response.body == "pong"


@pytest.mark.asyncio
async def test_refused_connection_raises_transport_error() -> None:
    url = f"http://127.0.0.1:{test_utils.unused_port()}"
    async with HttpTransport(url, credentials=CredentialStore()) as transport:
        with pytest.raises(TransportError) as excinfo:
            await transport.request("GET", "/api/produtos")

    assert excinfo.value.code is ErrorCode.CONNECTION_REFUSED
    assert excinfo.value.path == "/api/produtos"


@pytest.mark.asyncio
async def test_transport_timeout_raises_timeout_code(server: test_utils.TestServer) -> None:
    async with HttpTransport(
        _base_url(server), credentials=CredentialStore(), timeout_seconds=0.05
    ) as transport:
        with pytest.raises(TransportError) as excinfo:
            await transport.request("GET", "/slow")

    assert excinfo.value.code is ErrorCode.TIMEOUT


@pytest.mark.asyncio
async def test_close_is_idempotent(server: test_utils.TestServer) -> None:
    transport = HttpTransport(_base_url(server), credentials=CredentialStore())
    await transport.close()
    await transport.request("GET", "/ping")
    await transport.close()
    await transport.close()
