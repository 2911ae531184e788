r"""Response envelope shared by every API endpoint.

Every response body has the shape::

    {
        "success": true,
        "errors": [],
        "messages": [{"code": 1000, "message": "..."}],
        "result": ...,
        "result_info": {"page": 1, "per_page": 20, ...}
    }

This module provides the dataclasses used to decode that envelope and
the pagination metadata it carries.
"""

from __future__ import annotations

__all__ = [
    "ApiResponse",
    "RawResponse",
    "ResponseEnvelope",
    "ResponseInfo",
    "ResultInfo",
    "ResultInfoCursors",
    "parse_envelope",
]

import json
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from flareapi.uri import query_field

if TYPE_CHECKING:
    import httpx


@dataclass(frozen=True)
class ResponseInfo:
    """A code and message returned by the API as an error or an
    informational message.

    Attributes:
        code: The server-assigned code. ``0`` when the server sent none.
        message: The human readable message.
    """

    code: int = 0
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResponseInfo:
        if not isinstance(data, dict):
            msg = f"expected a JSON object for a response info, got {type(data).__name__}"
            raise TypeError(msg)
        return cls(code=int(data.get("code") or 0), message=str(data.get("message") or ""))

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


@dataclass(frozen=True)
class ResultInfoCursors:
    """Cursors of a cursor-paginated list response."""

    before: str = ""
    after: str = ""


@dataclass(frozen=True)
class ResultInfo:
    """Pagination metadata of a list response.

    The same record is used both to decode ``result_info`` and, embedded in
    the parameters of list operations, to request a page. Only ``page``,
    ``per_page`` and ``cursor`` are sent in the query string.

    A response is paginated by page number when ``total_pages`` or
    ``per_page`` are populated, and by cursor when any of ``cursor``,
    ``cursors.before`` or ``cursors.after`` are populated. ``done`` and
    ``next`` branch on which fields are populated rather than on a mode
    flag.

    Example:
        ```pycon
        >>> from flareapi.envelope import ResultInfo
        >>> info = ResultInfo(page=1, per_page=1, total_pages=2, count=1, total=2)
        >>> info.done()
        False
        >>> info.next().page
        2
        >>> info.next().done()
        True

        ```
    """

    page: int = query_field("page", default=0)
    per_page: int = query_field("per_page", default=0)
    total_pages: int = 0
    count: int = 0
    total: int = 0
    cursor: str = query_field("cursor", default="")
    cursors: ResultInfoCursors = field(default_factory=ResultInfoCursors)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ResultInfo:
        if not data:
            return cls()
        if not isinstance(data, dict):
            msg = f"expected a JSON object for result_info, got {type(data).__name__}"
            raise TypeError(msg)
        cursors = data.get("cursors") or {}
        if not isinstance(cursors, dict):
            msg = f"expected a JSON object for cursors, got {type(cursors).__name__}"
            raise TypeError(msg)
        return cls(
            page=int(data.get("page") or 0),
            per_page=int(data.get("per_page") or 0),
            total_pages=int(data.get("total_pages") or 0),
            count=int(data.get("count") or 0),
            total=int(data.get("total_count") or 0),
            cursor=str(data.get("cursor") or ""),
            cursors=ResultInfoCursors(
                before=str(cursors.get("before") or ""),
                after=str(cursors.get("after") or ""),
            ),
        )

    def is_cursor_mode(self) -> bool:
        """Return whether the record carries cursor information."""
        return bool(self.cursor or self.cursors.before or self.cursors.after)

    def is_empty(self) -> bool:
        """Return whether the record carries no pagination information."""
        return not self.is_cursor_mode() and not (
            self.page or self.per_page or self.total_pages or self.total
        )

    def done(self) -> bool:
        """Return ``True`` when the current page is the last one.

        A record without any pagination information is always done.
        """
        if self.is_cursor_mode():
            return not self.cursors.after
        if self.total_pages > 0:
            return self.page >= self.total_pages
        if self.per_page > 0:
            return self.page * self.per_page >= self.total
        return True

    def has_more_pages(self) -> bool:
        """Return whether another page follows the current one."""
        return not self.done()

    def next(self) -> ResultInfo:
        """Return the record describing the following page.

        In cursor mode the ``cursor`` is replaced by ``cursors.after``,
        otherwise ``page`` is advanced by one. The record is returned
        unchanged when there are no more pages.
        """
        if self.done():
            return self
        if self.is_cursor_mode():
            return replace(self, cursor=self.cursors.after)
        return replace(self, page=self.page + 1)


def _entries(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        msg = f"expected a JSON array for {key}, got {type(value).__name__}"
        raise TypeError(msg)
    return value


@dataclass
class ResponseEnvelope:
    """Decoded response envelope.

    Attributes:
        success: The ``success`` flag of the envelope.
        errors: The structured errors, in server order.
        messages: The informational messages, in server order.
        result: The decoded ``result`` value, left untouched.
        result_info: The pagination metadata, or ``None`` if absent.
    """

    success: bool = False
    errors: list[ResponseInfo] = field(default_factory=list)
    messages: list[ResponseInfo] = field(default_factory=list)
    result: Any = None
    result_info: ResultInfo | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResponseEnvelope:
        if not isinstance(data, dict):
            msg = f"expected a JSON object, got {type(data).__name__}"
            raise TypeError(msg)
        raw_info = data.get("result_info")
        return cls(
            success=bool(data.get("success", False)),
            errors=[ResponseInfo.from_dict(e) for e in _entries(data, "errors")],
            messages=[ResponseInfo.from_dict(m) for m in _entries(data, "messages")],
            result=data.get("result"),
            result_info=ResultInfo.from_dict(raw_info) if raw_info is not None else None,
        )


# RawResponse keeps the result as decoded JSON; it is the same shape as the
# envelope and only exists under its own name for callers of Client.raw().
RawResponse = ResponseEnvelope


def parse_envelope(body: bytes) -> ResponseEnvelope:
    """Decode a response body into a ``ResponseEnvelope``.

    Args:
        body: The raw response body.

    Returns:
        The decoded envelope.

    Raises:
        ValueError: If the body is not valid JSON.
        TypeError: If the body is valid JSON but not shaped like an
            envelope.
    """
    return ResponseEnvelope.from_dict(json.loads(body))


@dataclass
class ApiResponse:
    """Raw response of one successful round trip.

    Attributes:
        body: The raw response body.
        status_code: The HTTP status code.
        status: The HTTP status line, e.g. ``"200 OK"``.
        headers: The response headers.
    """

    body: bytes
    status_code: int
    status: str
    headers: httpx.Headers
