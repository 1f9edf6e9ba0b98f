"""Ordered fallback strategies for one metric."""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from estoque.engine.classifier import ErrorKind, classify

logger = logging.getLogger(__name__)

Params = Mapping[str, Any]
Runner = Callable[["Strategy", Params], Awaitable[Any]]


@dataclass(frozen=True)
class Strategy[T]:
    """One way of producing a metric value (an endpoint or a client-side computation)."""

    name: str
    fetch: Callable[[Params], Awaitable[T]]
    legacy: bool = False


@dataclass(frozen=True)
class ChainResult[T]:
    value: T
    strategy: str


class ChainExhaustedError(Exception):
    """Every strategy of a chain failed."""

    def __init__(self, metric: str, errors: Sequence[tuple[str, BaseException]]) -> None:
        self.metric = metric
        self.errors = list(errors)
        details = ", ".join(f"{name}: {err!r}" for name, err in self.errors)
        super().__init__(f"All strategies failed for {metric} ({details})")

    @property
    def last_error(self) -> BaseException | None:
        return self.errors[-1][1] if self.errors else None


async def _run_directly(strategy: Strategy, params: Params) -> Any:
    return await strategy.fetch(params)


class FallbackChain[T]:
    """
    Strategies tried in order until one produces usable data.

    A strategy that fails does not stop the chain. A strategy that succeeds
    with unusable data (an empty list, zero records) is remembered and
    returned only if nothing later is usable. Authentication failures stop the
    chain and propagate.
    """

    def __init__(
        self,
        metric: str,
        strategies: Sequence[Strategy[T]],
        *,
        is_usable: Callable[[T], bool] = bool,
    ) -> None:
        if not strategies:
            raise ValueError("a fallback chain needs at least one strategy")
        self.metric = metric
        self.strategies = tuple(strategies)
        self.is_usable = is_usable

    async def run(self, params: Params, runner: Runner = _run_directly) -> ChainResult[T]:
        errors: list[tuple[str, BaseException]] = []
        unusable: ChainResult[T] | None = None

        for strategy in self.strategies:
            try:
                value = await runner(strategy, params)
            except Exception as e:
                if classify(e).kind is ErrorKind.AUTH:
                    raise
                logger.debug(f"{self.metric}: strategy '{strategy.name}' failed: {e!r}")
                errors.append((strategy.name, e))
                continue

            if self._usable(value):
                if strategy.legacy:
                    logger.info(f"{self.metric}: served by legacy path '{strategy.name}'")
                return ChainResult(value=value, strategy=strategy.name)
            logger.debug(f"{self.metric}: strategy '{strategy.name}' returned no records")
            if unusable is None:
                unusable = ChainResult(value=value, strategy=strategy.name)

        if unusable is not None:
            return unusable
        raise ChainExhaustedError(self.metric, errors)

    def _usable(self, value: T) -> bool:
        try:
            return bool(self.is_usable(value))
        except Exception as e:
            logger.debug(f"{self.metric}: usable check failed: {e!r}")
            return False
