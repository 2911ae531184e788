r"""Backoff sleep utilities.

This module provides the functions computing and performing the sleep
between two attempts of the same request. The sleep is interruptible:
it returns early when the call context is cancelled.
"""

from __future__ import annotations

__all__ = ["calculate_sleep_time", "sleep_with_context"]

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flareapi.context import Context
    from flareapi.core.config import RetryPolicy

logger: logging.Logger = logging.getLogger(__name__)


def calculate_sleep_time(attempt: int, retry_policy: RetryPolicy) -> float:
    """Calculate the sleep time before a request attempt.

    The sleep time is ``min(max_retry_delay, min_retry_delay * 2 ** (attempt - 1))``
    with the default policy, so successive delays never decrease and never
    exceed ``max_retry_delay``.

    Args:
        attempt: The attempt index (0-indexed). The first retry is
            attempt 1.
        retry_policy: The retry policy of the client.

    Returns:
        The sleep time in seconds. ``0.0`` for the first attempt.

    Example:
        ```pycon
        >>> from flareapi.core.config import RetryPolicy
        >>> from flareapi.utils.sleep import calculate_sleep_time
        >>> policy = RetryPolicy(min_retry_delay=1.0, max_retry_delay=3.0)
        >>> [calculate_sleep_time(i, policy) for i in range(4)]
        [0.0, 1.0, 2.0, 3.0]

        ```
    """
    if attempt <= 0:
        return 0.0
    return retry_policy.delay(attempt)


def sleep_with_context(seconds: float, ctx: Context) -> None:
    """Sleep for ``seconds`` or until ``ctx`` is done, whichever first.

    Args:
        seconds: The sleep time in seconds.
        ctx: The call context.

    Raises:
        ContextError: If the context is done before the sleep is over.
    """
    if ctx.wait(seconds):
        err = ctx.err()
        if err is not None:
            raise err
