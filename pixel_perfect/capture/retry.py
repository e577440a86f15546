"""Navigation with a fixed-backoff retry policy."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from pixel_perfect.errors import NavigationError
from pixel_perfect.models.config import RetryPolicy

logger = logging.getLogger(__name__)


async def navigate_with_retry(
    navigate: Callable[[], Awaitable[object]],
    policy: RetryPolicy,
    url: str,
    label: str = "",
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> None:
    """Call ``navigate`` until it succeeds or ``policy.max_attempts`` is used up.

    Raises NavigationError carrying the last failure once attempts run out.
    """
    last_error: Exception | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            await navigate()
            if attempt > 1:
                logger.info("Navigation for %s succeeded on attempt %d", label or url, attempt)
            return
        except Exception as e:
            last_error = e
            remaining = policy.max_attempts - attempt
            if remaining == 0:
                break
            logger.warning(
                "Navigation failed for %s, retrying... (%d attempts left): %s",
                label or url, remaining, e,
            )
            await sleep(policy.backoff_seconds)

    raise NavigationError(url, policy.max_attempts, str(last_error)) from last_error
