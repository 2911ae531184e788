r"""Retry decision logic for determining whether to retry requests.

This module provides the RetryDecider class that encapsulates the logic
for deciding whether an attempt should be retried based on the response
status code, or on the transport exception and the state of the call
context.
"""

from __future__ import annotations

__all__ = ["RETRYABLE_STATUS_CODES", "RetryDecider"]

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from flareapi.context import Context

logger: logging.Logger = logging.getLogger(__name__)

# Statuses below 500 that are retried. Every 5xx is retried as well.
RETRYABLE_STATUS_CODES: tuple[int, ...] = (429,)


class RetryDecider:
    """Decides whether a request attempt should be retried.

    Only transport failures, HTTP 429 and HTTP 5xx are retried. Other
    error responses are terminal even if the server is transiently
    misbehaving.

    Example:
        ```pycon
        >>> import httpx
        >>> from flareapi.retry import RetryDecider
        >>> decider = RetryDecider()
        >>> decider.should_retry_response(httpx.Response(503))
        (True, 'status 503')
        >>> decider.should_retry_response(httpx.Response(404))
        (False, 'terminal status 404')

        ```
    """

    def __init__(self, status_forcelist: tuple[int, ...] = RETRYABLE_STATUS_CODES) -> None:
        """Initialize retry decider.

        Args:
            status_forcelist: Retryable HTTP status codes below 500.
        """
        self.status_forcelist = status_forcelist

    def should_retry_response(self, response: httpx.Response) -> tuple[bool, str]:
        """Determine if a response should trigger a retry.

        Args:
            response: The HTTP response to evaluate. Its body does not
                need to be read.

        Returns:
            Tuple of (should_retry, reason).
        """
        status_code = response.status_code
        if status_code >= 500 or status_code in self.status_forcelist:
            return (True, f"status {status_code}")
        return (False, f"terminal status {status_code}")

    def should_retry_exception(self, exception: Exception, ctx: Context) -> tuple[bool, str]:
        """Determine if a transport exception should trigger a retry.

        A failure observed once the call context is done is never retried:
        the deadline passed or the caller gave up.

        Args:
            exception: The exception raised by the transport.
            ctx: The call context.

        Returns:
            Tuple of (should_retry, reason).
        """
        err = ctx.err()
        if err is not None:
            return (False, f"context done ({err})")
        return (True, f"{type(exception).__name__}")
