r"""Structured logging utilities for API client events.

The request executor emits its per-attempt events through
``log_structured`` with fields such as ``method``, ``path``, ``attempt``
and ``status_code``. Attaching ``StructuredFormatter`` to a handler
renders those records as JSON, and ``RedactingFilter`` scrubs secrets
from any record before it is emitted.

The trace id (``cf-ray`` header) of the last response received in the
current context is kept in a context variable and added to every JSON
record, so log lines can be correlated with server-side traces.

Example:
    Enable structured logging for flareapi:

    ```python
    import logging
    from flareapi.utils.structured_logging import RedactingFilter, StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(RedactingFilter(["my-api-token"]))

    logger = logging.getLogger("flareapi")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = [
    "RedactingFilter",
    "StructuredFormatter",
    "clear_trace_id",
    "get_trace_id",
    "log_structured",
    "set_trace_id",
]

import contextvars
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from flareapi.utils.debug import redact

if TYPE_CHECKING:
    from collections.abc import Iterable

_trace_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "flareapi_trace_id", default=None
)

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "msecs",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "sinfo",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


def get_trace_id() -> str | None:
    """Return the trace id of the last response in this context.

    Example:
        ```pycon
        >>> from flareapi.utils.structured_logging import get_trace_id, set_trace_id
        >>> set_trace_id("8f2a1b3c4d5e6f70-AMS")
        >>> get_trace_id()
        '8f2a1b3c4d5e6f70-AMS'

        ```
    """
    return _trace_id.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace id for the current context.

    Empty values clear the trace id.
    """
    _trace_id.set(trace_id or None)


def clear_trace_id() -> None:
    """Clear the trace id for the current context."""
    _trace_id.set(None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Standard fields in the JSON output:
        - timestamp: ISO 8601 timestamp
        - level: Log level name
        - logger: Logger name
        - message: Log message
        - trace_id: Trace id of the last response, when known
        - module, function, line: Origin of the record

    Any field passed with ``extra`` is included as well.

    Example:
        ```pycon
        >>> import json
        >>> import logging
        >>> from io import StringIO
        >>> from flareapi.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("doc_structured")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("Request sent", extra={"method": "GET"})
        >>> json.loads(stream.getvalue())["method"]
        'GET'

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace_id = get_trace_id()
        if trace_id is not None:
            log_data["trace_id"] = trace_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        """Format timestamp as ISO 8601 with millisecond precision (UTC)."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


class RedactingFilter(logging.Filter):
    """Logging filter replacing secret values with ``[redacted]``.

    The message is rendered once with its arguments, scrubbed, and stored
    back on the record.

    Args:
        secrets: The secret values to scrub. Empty values are ignored.
    """

    def __init__(self, secrets: Iterable[str], name: str = "") -> None:
        super().__init__(name)
        self.secrets = sorted((s for s in secrets if s), key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            record.msg = redact(record.getMessage(), self.secrets)
            record.args = None
        return True


def log_structured(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Emit ``message`` with ``extra`` attached as record attributes.

    The record is only built when ``logger`` is enabled for ``level``,
    which keeps the per-attempt events of the executor free when debug
    logging is off.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
