"""Scripted transport for deterministic tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from estoque.engine.errors import ErrorCode, TransportError
from estoque.engine.transport import Response

Outcome = Response | BaseException | Mapping[str, Any] | Callable[[dict[str, Any] | None], Any]


class StubTransport:
    """
    Scripted transport.

    Each ``(method, path)`` route holds a queue of outcomes: a body (served with
    status 200), a Response, an exception to raise, or a callable receiving the
    params. The last outcome of a queue keeps being served. Unrouted requests
    fail like an unreachable backend.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any] | None]] = []
        self._routes: dict[tuple[str, str], list[Outcome]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def add(self, path: str, *outcomes: Outcome, method: str = "GET") -> None:
        self._routes.setdefault((method, path), []).extend(outcomes)

    def replace(self, path: str, *outcomes: Outcome, method: str = "GET") -> None:
        self._routes[(method, path)] = list(outcomes)

    def hold(self, path: str) -> None:
        self._gates[path] = asyncio.Event()

    def release(self, path: str) -> None:
        self._gates.pop(path).set()

    def count(self, path: str) -> int:
        return sum(1 for _, called, _ in self.calls if called == path)

    def params_for(self, path: str) -> list[dict[str, Any] | None]:
        return [params for _, called, params in self.calls if called == path]

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Response:
        params_dict = dict(params) if params else None
        self.calls.append((method, path, params_dict))

        queue = self._routes.get((method, path))
        if not queue:
            outcome: Outcome = TransportError(ErrorCode.CONNECTION_REFUSED, path=path)
        elif len(queue) > 1:
            outcome = queue.pop(0)
        else:
            outcome = queue[0]

        gate = self._gates.get(path)
        if gate is not None:
            await gate.wait()

        if callable(outcome) and not isinstance(outcome, Response):
            outcome = outcome(params_dict)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, Response):
            return outcome
        return Response(status=200, body=outcome, method=method, path=path)


def status(code: int, body: Any = None) -> Response:
    return Response(status=code, body=body)


def unreachable(path: str = "") -> TransportError:
    return TransportError(ErrorCode.CONNECTION_REFUSED, path=path)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


