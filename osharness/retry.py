"""Fixed-interval polling helpers for eventually consistent assertions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from osharness.errors import TestAborted, TestFailure, TestSkipped

log = logging.getLogger(__name__)


async def retry(
    attempts: int,
    interval: float,
    probe: Callable[[], Awaitable[object]],
) -> None:
    """Await ``probe`` until it succeeds, at most ``attempts`` times.

    Sleeps ``interval`` seconds between attempts. There is no backoff. Failure,
    skip and abort signals raised by the probe (e.g. by ``must_exec``) end the
    current node at once and are never retried.

    Raises:
        Exception: The exception raised by the final attempt, unchanged.

    """
    await retry_conditional(attempts, interval, _is_retryable, probe)


def _is_retryable(exc: Exception) -> bool:
    return not isinstance(exc, TestFailure | TestAborted | TestSkipped)


async def retry_conditional(
    attempts: int,
    interval: float,
    should_retry: Callable[[Exception], bool],
    probe: Callable[[], Awaitable[object]],
) -> None:
    """Like :func:`retry`, but stops early when ``should_retry`` returns False."""
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            await probe()
        except Exception as exc:
            if attempt == attempts or not should_retry(exc):
                raise
            log.debug("Attempt %d/%d failed: %s", attempt, attempts, exc)
            await asyncio.sleep(interval)
        else:
            return
