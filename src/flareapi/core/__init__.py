r"""Configuration objects and validation helpers of the API client."""

from __future__ import annotations

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "RetryPolicy",
    "validate_auth_type",
    "validate_rate_limit",
    "validate_retry_policy",
    "validate_timeout",
]

from flareapi.core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    ClientConfig,
    RetryPolicy,
)
from flareapi.core.validation import (
    validate_auth_type,
    validate_rate_limit,
    validate_retry_policy,
    validate_timeout,
)
