r"""Helpers of the request executor: backoff sleeps, response
classification, debug dumps and structured logging."""

from __future__ import annotations

__all__ = [
    "calculate_sleep_time",
    "classify_status",
    "format_request",
    "format_response",
    "handle_response",
    "log_structured",
    "redact",
    "sleep_with_context",
]

from flareapi.utils.debug import format_request, format_response, redact
from flareapi.utils.response import classify_status, handle_response
from flareapi.utils.sleep import calculate_sleep_time, sleep_with_context
from flareapi.utils.structured_logging import log_structured
