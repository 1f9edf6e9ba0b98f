"""Timeout race and bounded retries with exponential backoff."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from estoque.engine.classifier import classify
from estoque.engine.errors import RequestTimeoutError
from estoque.engine.notifications import NotificationLevel, Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for one call site.

    ``max_attempts`` counts retries after the first call, so a policy with
    ``max_attempts=2`` calls the operation at most three times.
    """

    max_attempts: int = 2
    base_delay_ms: int = 1_000
    timeout_ms: int = 10_000
    max_delay_ms: int | None = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be > 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if self.max_delay_ms is not None and self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        if not 0.0 <= self.jitter < 1.0:
            raise ValueError("jitter must be in [0, 1)")

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds before retry number ``attempt + 1``."""
        delay_ms = self.base_delay_ms * (2**attempt)
        if self.max_delay_ms is not None:
            delay_ms = min(self.max_delay_ms, delay_ms)
        if self.jitter:
            delay_ms *= random.uniform(1.0 - self.jitter, 1.0 + self.jitter)
        return delay_ms / 1000


async def with_timeout[T](
    operation: Callable[[], Awaitable[T]],
    timeout_ms: int,
    context: str = "operation",
) -> T:
    """
    Race an operation against a timer.

    When the timer wins the operation is cancelled and RequestTimeoutError is
    raised. Whatever the losing operation settles with afterwards is consumed
    and dropped.
    """
    task = asyncio.ensure_future(operation())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_discard_outcome)
    raise RequestTimeoutError(context, timeout_ms)


def _discard_outcome(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Dropped late failure after timeout: {exc!r}")


class RetryExecutor:
    """Runs operations under a RetryPolicy."""

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._notifier = notifier
        self._sleep = sleep

    async def with_retry[T](
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        context: str,
    ) -> T:
        """Run ``operation`` until it succeeds, fails for good or runs out of retries."""
        notified = False
        for attempt in range(policy.max_attempts + 1):
            try:
                return await with_timeout(operation, policy.timeout_ms, context)
            except Exception as e:
                info = classify(e)
                if not info.retryable:
                    logger.debug(f"{context}: {info.kind} failure, not retrying")
                    raise
                if attempt >= policy.max_attempts:
                    logger.debug(
                        f"{context}: giving up after {attempt + 1} attempt(s) ({info.kind})"
                    )
                    raise

                if not notified:
                    notified = True
                    self._notify_retrying(context)

                delay = policy.delay_for(attempt)
                logger.debug(
                    f"{context}: attempt {attempt + 1} failed ({info.kind}), "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

        # range() always runs at least once and every path above returns or raises
        raise AssertionError("unreachable")

    def _notify_retrying(self, context: str) -> None:
        if self._notifier is None:
            return
        self._notifier.notify(
            NotificationLevel.INFO,
            f"Retrying {context}, please wait...",
            key=f"retry:{context}",
        )
