"""Bounded retry for page acquisition.

Only TransientException is retried. Anything else means the operation is
wrong rather than unlucky, so it propagates on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from newsharvest.common.exceptions import TransientException
from newsharvest.config import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "operation",
) -> T:
    """Await ``operation()`` until it succeeds or the policy is exhausted.

    Between attempts the loop sleeps ``policy.delay_ms``. There is no sleep
    after the final attempt.

    Args:
        operation: Zero-argument coroutine factory. Called once per attempt.
        policy: Attempt budget and delay.
        description: What is being attempted, usually a URL (for logs).

    Returns:
        The result of the first successful attempt.

    Raises:
        TransientException: The error of the last attempt, when every
            attempt failed.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientException as e:
            logger.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed for "
                f"{description}: {e}",
                extra={"attempt": attempt, "target": description},
            )
            if attempt >= policy.max_attempts:
                raise
        attempt += 1
        if policy.delay_ms:
            await asyncio.sleep(policy.delay_ms / 1000)
