from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from flareapi.context import Context
from flareapi.utils.structured_logging import clear_trace_id

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch the backoff sleep of the request executor to make tests run
    faster."""
    with patch("flareapi.retry.executor.sleep_with_context", return_value=None) as mock:
        yield mock


@pytest.fixture
def ctx() -> Generator[Context, None, None]:
    """Create a cancellable context, cancelled after the test."""
    context = Context.with_cancel(Context())
    yield context
    context.cancel()


@pytest.fixture(autouse=True)
def _reset_trace_id() -> Generator[None, None, None]:
    """Keep the trace id of one test from leaking into the next one."""
    clear_trace_id()
    yield
    clear_trace_id()
