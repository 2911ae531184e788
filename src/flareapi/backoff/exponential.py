r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

import sys

from flareapi.backoff.base import BaseBackoffStrategy

# Largest exponent for which 2**exponent is still a finite float.
_MAX_EXPONENT = sys.float_info.max_exp - 1


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: min(max_delay, min_delay * (2 ** attempt)).

    There is no random component: the client-wide rate limiter already
    spreads retries out.

    Args:
        min_delay: Delay in seconds before the first retry.
        max_delay: Maximum delay cap in seconds.

    Example:
        ```pycon
        >>> from flareapi.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(min_delay=1.0, max_delay=30.0)
        >>> backoff.calculate(0)  # First retry
        1.0
        >>> backoff.calculate(1)  # Second retry
        2.0
        >>> backoff.calculate(2)  # Third retry
        4.0
        >>> backoff.calculate(10)  # Would be 1024.0, but capped
        30.0

        ```
    """

    def __init__(self, min_delay: float = 1.0, max_delay: float = 30.0) -> None:
        if min_delay <= 0:
            msg = f"min_delay must be positive, got {min_delay}"
            raise ValueError(msg)
        if max_delay < min_delay:
            msg = f"max_delay must be >= min_delay, got {max_delay}"
            raise ValueError(msg)

        self.min_delay = min_delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return f"{type(self).__name__}(min_delay={self.min_delay}, max_delay={self.max_delay})"

    def calculate(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        The delay is computed in floating point seconds. The exponent is
        clamped so the intermediate value never overflows; any result
        above ``max_delay`` is capped.

        Args:
            attempt: The retry number (0-indexed).

        Returns:
            The delay in seconds, between ``min_delay`` and ``max_delay``.
        """
        exponent = min(max(attempt, 0), _MAX_EXPONENT)
        delay = self.min_delay * (2.0**exponent)
        return min(delay, self.max_delay)
