"""Utility functions for Inbox Mirror."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    name: str | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Call an async function with exponential backoff between attempts.

    Every exception counts as a failed attempt. After the last attempt the
    last exception is re-raised unchanged.

    Args:
        func: Zero-argument coroutine function to call.
        max_attempts: Total number of attempts, including the first one.
        delay: Delay before the first retry in seconds.
        backoff: Multiplier for delay after each retry.
        name: Operation name used in log events.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The result of the first successful call.
    """

    operation = name or getattr(func, "__name__", "operation")
    current_delay = delay
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except Exception as e:
            if attempt >= attempts:
                logger.error(
                    "function_retry_exhausted",
                    function=operation,
                    attempts=attempts,
                    error=str(e),
                )
                raise

            logger.warning(
                "function_retry",
                function=operation,
                attempt=attempt,
                max_attempts=attempts,
                delay=current_delay,
                error=str(e),
            )
            await sleep(current_delay)
            current_delay *= backoff

    raise AssertionError("unreachable")


class SingleFlight(Generic[T]):
    """Coalesce overlapping calls of one coroutine into a single execution.

    While a call is in flight, further callers await the same task and get
    its result (or its exception). The next call after completion starts a
    fresh execution.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, func: Callable[[], Awaitable[T]]) -> T:
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(func())
        else:
            logger.debug("single_flight_joined")
        return await asyncio.shield(self._task)
