r"""Configuration dataclasses and defaults for the API client.

This module provides configuration constants and the immutable
configuration objects of a ``Client``. A configuration is built once,
validated in ``__post_init__``, and derived configurations are created
with ``merge``.
"""

from __future__ import annotations

__all__ = [
    "API_VERSION",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MAX_RETRY_DELAY",
    "DEFAULT_MIN_RETRY_DELAY",
    "DEFAULT_RATE_BURST",
    "DEFAULT_RATE_LIMIT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    "TRACE_ID_HEADER",
    "ClientConfig",
    "RetryPolicy",
]

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from flareapi.auth import AuthMethod, Credentials
from flareapi.backoff import ExponentialBackoff
from flareapi.core.validation import (
    validate_auth_type,
    validate_rate_limit,
    validate_retry_policy,
    validate_timeout,
)

if TYPE_CHECKING:
    from flareapi.backoff import BaseBackoffStrategy

API_VERSION = "v4"

DEFAULT_BASE_URL = f"https://api.cloudflare.com/client/{API_VERSION}"

DEFAULT_USER_AGENT = f"flareapi/{API_VERSION}"

# Response header carrying the server-assigned trace id
TRACE_ID_HEADER = "cf-ray"

# Default timeout in seconds of one HTTP attempt
DEFAULT_TIMEOUT = 10.0

# Default maximum number of retry attempts
# Total attempts = max_retries + 1 (initial attempt)
DEFAULT_MAX_RETRIES = 3

# Backoff bounds in seconds
# Wait time = min(max_retry_delay, min_retry_delay * 2 ** (retry - 1))
DEFAULT_MIN_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 30.0

# 4 requests per second equates to the default API limit of 1200 requests
# per 5 minutes
DEFAULT_RATE_LIMIT = 4.0
DEFAULT_RATE_BURST = 1


@dataclass(frozen=True)
class RetryPolicy:
    """Number of retries and backoff bounds of the request executor.

    Args:
        max_retries: Maximum number of retry attempts. Must be >= 0.
        min_retry_delay: Delay in seconds before the first retry. Must be > 0.
        max_retry_delay: Maximum delay in seconds between attempts.
            Must be >= min_retry_delay.
        backoff_strategy: Optional custom strategy replacing the default
            exponential backoff built from the delay bounds.

    Example:
        ```pycon
        >>> from flareapi.core.config import RetryPolicy
        >>> policy = RetryPolicy(max_retries=3, min_retry_delay=0.001, max_retry_delay=0.01)
        >>> policy.delay(1)
        0.001
        >>> policy.delay(2)
        0.002

        ```
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    min_retry_delay: float = DEFAULT_MIN_RETRY_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    backoff_strategy: BaseBackoffStrategy | None = None

    def __post_init__(self) -> None:
        validate_retry_policy(
            max_retries=self.max_retries,
            min_retry_delay=self.min_retry_delay,
            max_retry_delay=self.max_retry_delay,
        )

    def strategy(self) -> BaseBackoffStrategy:
        """Return the backoff strategy of the policy."""
        if self.backoff_strategy is not None:
            return self.backoff_strategy
        return ExponentialBackoff(min_delay=self.min_retry_delay, max_delay=self.max_retry_delay)

    def delay(self, attempt: int) -> float:
        """Return the sleep before request attempt ``attempt``.

        Args:
            attempt: The attempt index (0-indexed). Must be >= 1, the
                first attempt is never delayed.

        Returns:
            The delay in seconds, capped at ``max_retry_delay``.
        """
        return min(self.strategy().calculate(attempt - 1), self.max_retry_delay)


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration of one ``Client``.

    Note:
        The three ``Client`` constructors build this object from a single
        set of credentials; building it directly is only needed for
        advanced setups such as several auth schemes on one client.

    Args:
        credentials: Secrets used to authenticate requests.
        auth_type: Default ``AuthMethod`` mask. Must be non-zero.
        base_url: Origin and base path of the API.
        user_agent: Value of the ``User-Agent`` header. Empty disables it.
        headers: Default headers sent with every request.
        retry_policy: Retry count and backoff bounds.
        rate_limit: Requests per second allowed by the client-wide limiter.
        rate_burst: Capacity of the client-wide limiter.
        timeout: Timeout in seconds of one HTTP attempt. A call context
            with less time remaining shortens it.
        logger: Logger receiving executor events and debug dumps. Defaults
            to the ``flareapi`` logger.
        debug: If ``True``, requests and responses are dumped to the
            logger with every secret redacted.

    Example:
        ```pycon
        >>> from flareapi.auth import AuthMethod, Credentials
        >>> from flareapi.core.config import ClientConfig
        >>> config = ClientConfig(
        ...     credentials=Credentials(api_token="T"), auth_type=AuthMethod.TOKEN
        ... )
        >>> config.rate_limit
        4.0
        >>> merged = config.merge(debug=True)
        >>> merged.debug, config.debug
        (True, False)

        ```
    """

    credentials: Credentials = field(default_factory=Credentials)
    auth_type: AuthMethod = AuthMethod.TOKEN
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, str] = field(default_factory=dict)
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    rate_limit: float = DEFAULT_RATE_LIMIT
    rate_burst: int = DEFAULT_RATE_BURST
    timeout: float = DEFAULT_TIMEOUT
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("flareapi"), repr=False, compare=False
    )
    debug: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_auth_type(int(self.auth_type))
        validate_rate_limit(rate=self.rate_limit, burst=self.rate_burst)
        validate_timeout(self.timeout)
        object.__setattr__(self, "auth_type", AuthMethod(self.auth_type))
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "headers", dict(self.headers))

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new ClientConfig instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)
