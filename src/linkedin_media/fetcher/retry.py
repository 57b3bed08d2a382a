"""Retry an async operation with linearly increasing backoff."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

OnRetryFn = Callable[[BaseException, int], None]
IsRetryableFn = Callable[[BaseException], bool]


async def with_retries(
    task: Callable[[], Awaitable[T]],
    *,
    retries: int = 2,
    base_delay: float = 0.4,
    on_retry: Optional[OnRetryFn] = None,
    is_retryable: Optional[IsRetryableFn] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``task()`` up to ``retries + 1`` times.

    After failed attempt N (1-based) ``on_retry(error, N)`` is called and the
    next attempt starts after ``base_delay * N`` seconds. The error of the
    final attempt, or of any attempt ``is_retryable`` rejects, propagates.
    ``on_retry`` is for diagnostics and cannot change the outcome.
    """
    attempt = 0
    while True:
        try:
            return await task()
        except Exception as exc:
            if attempt >= retries:
                raise
            if is_retryable is not None and not is_retryable(exc):
                raise

            attempt += 1
            if on_retry is not None:
                try:
                    on_retry(exc, attempt)
                except Exception:
                    pass

            await sleep(base_delay * attempt)
