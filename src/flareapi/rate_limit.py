r"""Token bucket rate limiter shared by all requests of one client.

The limiter works with reservations: a caller takes a token immediately,
possibly driving the bucket negative, and then sleeps until the token
would have been available. Reservations are made under a lock, so
concurrent callers are served in the order they reserved.

Example:
    ```pycon
    >>> from flareapi.rate_limit import RateLimiter
    >>> limiter = RateLimiter(rate=4.0, burst=1)
    >>> limiter.allow()
    True
    >>> limiter.allow()
    False

    ```
"""

from __future__ import annotations

__all__ = ["DEFAULT_RATE_BURST", "DEFAULT_RATE_LIMIT", "RateLimiter"]

import logging
import math
import threading
import time
from typing import TYPE_CHECKING

from flareapi.context import Context, DeadlineExceededError
from flareapi.core.config import DEFAULT_RATE_BURST, DEFAULT_RATE_LIMIT
from flareapi.core.validation import validate_rate_limit

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)


class RateLimiter:
    """Thread-safe token bucket.

    Args:
        rate: Tokens added per second. ``math.inf`` disables limiting.
        burst: Capacity of the bucket. Must be >= 1.
        clock: Monotonic clock returning seconds, for tests.
    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE_LIMIT,
        burst: int = DEFAULT_RATE_BURST,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        validate_rate_limit(rate=rate, burst=burst)
        self.rate = float(rate)
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rate={self.rate}, burst={self.burst})"

    def _advance(self, now: float) -> None:
        elapsed = max(0.0, now - self._last)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last = now

    def _reserve(self, max_delay: float | None) -> float | None:
        with self._lock:
            if math.isinf(self.rate):
                return 0.0
            self._advance(self._clock())
            tokens = self._tokens - 1.0
            delay = 0.0 if tokens >= 0 else -tokens / self.rate
            if max_delay is not None and delay > max_delay:
                return None
            self._tokens = tokens
            return delay

    def _release(self) -> None:
        with self._lock:
            if not math.isinf(self.rate):
                self._tokens = min(float(self.burst), self._tokens + 1.0)

    def allow(self) -> bool:
        """Take a token if one is available right now, without blocking."""
        return self._reserve(max_delay=0.0) is not None

    def wait(self, ctx: Context | None = None) -> None:
        """Block until a token is available.

        Args:
            ctx: Optional context. If it is done before a token is
                available, the reserved token is handed back.

        Raises:
            ContextError: If the context is done before the token is
                available, or if waiting would exceed its deadline.
        """
        ctx = ctx if ctx is not None else Context()
        err = ctx.err()
        if err is not None:
            raise err

        delay = self._reserve(max_delay=ctx.remaining())
        if delay is None:
            msg = "rate limiter wait would exceed context deadline"
            raise DeadlineExceededError(msg)
        if delay <= 0:
            return

        logger.debug(f"Waiting {delay:.3f}s for a rate limiter token")
        if ctx.wait(delay):
            self._release()
            err = ctx.err()
            if err is not None:
                raise err
