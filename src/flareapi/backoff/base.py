r"""Abstract base class for retry backoff strategies."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy"]

from abc import ABC, abstractmethod


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines how long the request executor sleeps
    before retrying a request that hit a transport error, a 429 or a
    5xx response.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Return the delay in seconds before a retry.

        Args:
            attempt: The retry number (0-indexed): ``0`` is the delay
                before the second request attempt.

        Returns:
            The delay in seconds.
        """
