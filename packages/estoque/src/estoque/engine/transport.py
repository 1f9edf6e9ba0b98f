"""Transport boundary to the inventory backend."""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, Self

import aiohttp

from estoque.config import get_settings
from estoque.engine.errors import ErrorCode, TransportError
from estoque.engine.session import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    """An HTTP response of any status."""

    status: int
    body: Any
    method: str = "GET"
    path: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """
    Anything that can issue a request to the backend.

    Returns a Response for every HTTP status and raises TransportError when no
    response was received at all.
    """

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Response: ...


class HttpTransport:
    """aiohttp transport with a pooled session and per-request bearer auth."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        credentials: CredentialStore | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.url).rstrip("/")
        self._credentials = credentials or CredentialStore(settings.api_token)
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_seconds
            if timeout_seconds is not None
            else settings.request_timeout_ms / 1000
        )
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or bool(getattr(self._session, "closed", False)):
            self._session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        return self._session

    async def close(self) -> None:
        session = self._session
        if session is None:
            return
        if not bool(getattr(session, "closed", False)):
            await session.close()
        self._session = None

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Response:
        method = method.upper()
        url = f"{self._base_url}{path}"
        session = await self._ensure_session()
        try:
            async with session.request(
                method,
                url,
                params=_encode_params(params),
                headers=self._credentials.authorization_header(),
            ) as resp:
                body = _decode_body(await resp.text())
                return Response(status=resp.status, body=body, method=method, path=path)
        except TimeoutError as e:
            raise TransportError(ErrorCode.TIMEOUT, path=path) from e
        except aiohttp.ClientConnectorError as e:
            raise TransportError(ErrorCode.CONNECTION_REFUSED, str(e), path=path) from e
        except aiohttp.ClientError as e:
            raise TransportError(ErrorCode.NETWORK_ERROR, str(e), path=path) from e


def _encode_params(params: Mapping[str, Any] | None) -> dict[str, str] | None:
    if not params:
        return None
    encoded: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Response body is not JSON, keeping raw text")
        return text
