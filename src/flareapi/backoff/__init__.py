r"""Backoff strategies for retry delays."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ExponentialBackoff"]

from flareapi.backoff.base import BaseBackoffStrategy
from flareapi.backoff.exponential import ExponentialBackoff
