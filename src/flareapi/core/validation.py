r"""Parameter validation utilities for the client configuration.

This module provides validation functions for retry, rate limit and
transport parameters to ensure they meet the required constraints
before a client is built.
"""

from __future__ import annotations

__all__ = [
    "validate_auth_type",
    "validate_rate_limit",
    "validate_retry_policy",
    "validate_timeout",
]


def validate_timeout(timeout: float) -> None:
    """Check the per-attempt transport timeout.

    The timeout bounds one HTTP attempt, so it must leave room for at
    least a connection to be opened.

    Raises:
        ValueError: If ``timeout`` is not strictly positive.

    Example:
        ```pycon
        >>> from flareapi.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(-2.5)
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got -2.5

        ```
    """
    if timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_retry_policy(
    max_retries: int,
    min_retry_delay: float,
    max_retry_delay: float,
) -> None:
    """Validate retry policy parameters.

    Args:
        max_retries: Maximum number of retry attempts for failed requests.
            Must be >= 0. A value of 0 means no retries (only the initial attempt).
        min_retry_delay: Delay in seconds before the first retry.
            Must be > 0.
        max_retry_delay: Upper bound in seconds of any backoff delay.
            Must be >= min_retry_delay.

    Raises:
        ValueError: If any parameter is out of range.

    Example:
        ```pycon
        >>> from flareapi.core.validation import validate_retry_policy
        >>> validate_retry_policy(max_retries=3, min_retry_delay=1.0, max_retry_delay=30.0)
        >>> validate_retry_policy(
        ...     max_retries=-1, min_retry_delay=1.0, max_retry_delay=30.0
        ... )  # doctest: +SKIP

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if min_retry_delay <= 0:
        msg = f"min_retry_delay must be > 0, got {min_retry_delay}"
        raise ValueError(msg)
    if max_retry_delay < min_retry_delay:
        msg = (
            f"max_retry_delay must be >= min_retry_delay ({min_retry_delay}), "
            f"got {max_retry_delay}"
        )
        raise ValueError(msg)


def validate_rate_limit(rate: float, burst: int) -> None:
    """Validate rate limiter parameters.

    Args:
        rate: Requests per second. Must be > 0.
        burst: Bucket capacity. Must be >= 1.

    Raises:
        ValueError: If rate or burst are out of range.
    """
    if rate <= 0:
        msg = f"rate must be > 0, got {rate}"
        raise ValueError(msg)
    if burst < 1:
        msg = f"burst must be >= 1, got {burst}"
        raise ValueError(msg)


def validate_auth_type(auth_type: int) -> None:
    """Validate an authentication mask.

    Args:
        auth_type: Combination of ``AuthMethod`` bits. Must be non-zero
            and use only known bits.

    Raises:
        ValueError: If the mask is zero or has unknown bits.
    """
    if auth_type <= 0 or auth_type & ~0b111:
        msg = f"auth_type must be a non-zero combination of AuthMethod flags, got {auth_type}"
        raise ValueError(msg)
