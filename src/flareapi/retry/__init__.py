r"""Retry package implementing the request execution loop.

Public API:
    - RetryDecider: Logic for deciding whether to retry an attempt
    - RequestExecutor: Synchronous request executor
"""

from __future__ import annotations

__all__ = ["RequestExecutor", "RetryDecider"]

from flareapi.retry.decider import RetryDecider
from flareapi.retry.executor import RequestExecutor
