from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    value: Optional[T]
    attempts: int
    exhausted: bool


async def retry_while(
    call: Callable[[], Awaitable[T]],
    should_retry: Callable[[T], bool],
    *,
    max_retries: int,
    base_delay_s: float,
) -> RetryOutcome[T]:
    """
    Calls `call` until `should_retry` rejects its value, sleeping
    base_delay_s * 2**n before retry n. At most max_retries + 1 calls are made;
    `exhausted` is set when the last value still asked for a retry.
    Exceptions from `call` propagate.
    """
    value: Optional[T] = None
    for attempt in range(max_retries + 1):
        if attempt:
            await asyncio.sleep(base_delay_s * (2 ** (attempt - 1)))
        value = await call()
        if not should_retry(value):
            return RetryOutcome(value=value, attempts=attempt + 1, exhausted=False)
    return RetryOutcome(value=value, attempts=max_retries + 1, exhausted=True)
