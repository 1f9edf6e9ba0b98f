"""
Request coordination in front of the transport.

Identical concurrent reads are collapsed: a new request cancels the one in
flight under the same id and takes its place, and callers of the superseded
request are handed the newest outcome. Connection health is tracked across all
requests so that a sustained outage produces one notice instead of one per
failed call.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from shared.keys.api import endpoint_key

from estoque.engine.classifier import ErrorKind, classify
from estoque.engine.errors import ErrorCode, HttpStatusError, TransportError
from estoque.engine.notifications import NotificationLevel, Notifier
from estoque.engine.session import SessionGuard
from estoque.engine.transport import Response, Transport

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

CONNECTION_LOST_KEY = "connection-lost"
CONNECTION_RESTORED_KEY = "connection-restored"


def request_id_for(
    method: str, path: str, params: Mapping[str, Any] | None = None
) -> str:
    """Identity of a request: endpoint (path and canonical query) plus method."""
    return f"{endpoint_key(path, params)}|{method.upper()}"


@dataclass(eq=False)
class InFlightRequest:
    """A dispatched request that has not settled yet."""

    request_id: str
    task: asyncio.Task[Response] | None = None
    superseded_by: "InFlightRequest | None" = None

    def cancel(self) -> bool:
        if self.task is None:
            return False
        return self.task.cancel()


@dataclass
class ConnectionHealth:
    consecutive_failures: int = 0
    degraded: bool = False
    last_failure_at: float | None = None
    last_recovered_at: float | None = None


class RequestCoordinator:
    """Deduplicates reads and tracks connection health for one session."""

    def __init__(
        self,
        transport: Transport,
        *,
        notifier: Notifier | None = None,
        session: SessionGuard | None = None,
        degraded_after: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._notifier = notifier
        self._session = session
        self._degraded_after = max(1, degraded_after)
        self._in_flight: dict[str, InFlightRequest] = {}
        self._health = ConnectionHealth()
        self._clock = clock

    @property
    def health(self) -> ConnectionHealth:
        return replace(self._health)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_connection_degraded(self) -> bool:
        return self._health.degraded

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Response:
        return await self.request("GET", path, params)

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Response:
        """
        Send a request and return its 2xx response.

        Raises HttpStatusError for any other status and TransportError when no
        response was received.
        """
        method = method.upper()
        entry = InFlightRequest(request_id=request_id_for(method, path, params))

        if method not in IDEMPOTENT_METHODS:
            return await self._run(entry, method, path, params)

        # Cancel-then-register must stay free of awaits.
        previous = self._in_flight.get(entry.request_id)
        if previous is not None:
            previous.superseded_by = entry
            previous.cancel()
            logger.debug(f"Superseded in-flight request {entry.request_id}")
        entry.task = asyncio.create_task(self._run(entry, method, path, params))
        self._in_flight[entry.request_id] = entry

        return await self._await_outcome(entry, path)

    async def _await_outcome(self, entry: InFlightRequest, path: str) -> Response:
        while True:
            assert entry.task is not None
            try:
                return await asyncio.shield(entry.task)
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                if entry.superseded_by is None:
                    raise TransportError(ErrorCode.ABORTED, path=path) from None
                entry = entry.superseded_by

    async def _run(
        self,
        entry: InFlightRequest,
        method: str,
        path: str,
        params: Mapping[str, Any] | None,
    ) -> Response:
        try:
            response = await self._transport.request(method, path, params)
            if entry.superseded_by is not None:
                raise asyncio.CancelledError
            if not response.ok:
                raise HttpStatusError(
                    response.status, response.body, method=method, path=path
                )
        except asyncio.CancelledError:
            self._release(entry)
            raise
        except Exception as e:
            self._release(entry)
            if entry.superseded_by is None:
                self._record_failure(e, path)
            raise

        self._release(entry)
        self._record_success()
        return response

    def _release(self, entry: InFlightRequest) -> None:
        if self._in_flight.get(entry.request_id) is entry:
            del self._in_flight[entry.request_id]

    def _record_success(self) -> None:
        self._health.consecutive_failures = 0
        if not self._health.degraded:
            return

        self._health.degraded = False
        self._health.last_recovered_at = self._clock()
        logger.info("Connection to backend restored")
        if self._notifier is None:
            return
        self._notifier.dismiss(CONNECTION_LOST_KEY)
        if not self._notifier.is_active(CONNECTION_RESTORED_KEY):
            self._notifier.notify(
                NotificationLevel.SUCCESS,
                "Connection to the server restored.",
                key=CONNECTION_RESTORED_KEY,
            )

    def _record_failure(self, error: Exception, path: str) -> None:
        if isinstance(error, HttpStatusError):
            self._log_status(error, path)

        if classify(error).kind is not ErrorKind.CONNECTION:
            return

        self._health.consecutive_failures += 1
        self._health.last_failure_at = self._clock()
        failures = self._health.consecutive_failures
        if not self._health.degraded and failures >= self._degraded_after:
            self._health.degraded = True
            logger.warning(f"Backend unreachable after {failures} failure(s): {error}")
        if not self._health.degraded or self._notifier is None:
            return

        if self._notifier.is_active(CONNECTION_LOST_KEY):
            self._notifier.update(CONNECTION_LOST_KEY, count=failures)
        else:
            self._notifier.notify(
                NotificationLevel.ERROR,
                "Cannot reach the server. Check your connection.",
                key=CONNECTION_LOST_KEY,
                persistent=True,
            )

    def _log_status(self, error: HttpStatusError, path: str) -> None:
        if error.status == 401:
            if self._session is not None:
                self._session.handle_unauthorized(path)
        elif error.status == 404:
            logger.error(f"Resource not found: {path}")
        elif error.status >= 500:
            logger.error(f"Server error on {path}: {error.detail or error.status}")

    async def dispose(self) -> None:
        """Cancel everything still in flight."""
        entries = list(self._in_flight.values())
        self._in_flight.clear()
        tasks = [entry.task for entry in entries if entry.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
