r"""Page-number and cursor pagination of list endpoints.

List operations take a parameters dataclass embedding a ``ResultInfo``
in its ``result_info`` field. ``paginate`` fetches a single page when the
caller set ``page`` or ``per_page`` explicitly, and otherwise walks all
the pages from the first one, accumulating the results in server order.

Example:
    ```python
    from flareapi import Client
    from flareapi.pagination import paginate

    with Client.from_api_token("my-token") as client:
        zones, info = paginate(client, "/zones", default_per_page=50)
    ```
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_PER_PAGE",
    "ERR_UNMARSHAL",
    "ListParams",
    "PaginationOptions",
    "check_result_info",
    "decode_envelope",
    "paginate",
]

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from flareapi.envelope import ResponseEnvelope, ResultInfo, parse_envelope
from flareapi.exceptions import TransportError
from flareapi.uri import build_uri, query_field

if TYPE_CHECKING:
    from collections.abc import Callable

    from flareapi.auth import AuthMethod
    from flareapi.client import Client
    from flareapi.context import Context

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 25

ERR_UNMARSHAL = "error unmarshalling the JSON response"


@dataclass(frozen=True)
class PaginationOptions:
    """Explicit paging options of resources that do not embed a
    ``ResultInfo``.

    Example:
        ```pycon
        >>> from flareapi.pagination import PaginationOptions
        >>> from flareapi.uri import build_uri
        >>> build_uri("/zones/z1/dns_records", PaginationOptions(page=2, per_page=50))
        '/zones/z1/dns_records?page=2&per_page=50'

        ```
    """

    page: int = query_field("page", default=0)
    per_page: int = query_field("per_page", default=0)


@dataclass(frozen=True)
class ListParams:
    """Parameters of a list endpoint taking no filter besides paging."""

    result_info: ResultInfo = query_field(default_factory=ResultInfo)


def decode_envelope(body: bytes) -> ResponseEnvelope:
    """Decode a successful response body.

    Raises:
        TransportError: If the body is not a JSON envelope.
    """
    try:
        return parse_envelope(body)
    except (TypeError, ValueError) as exc:
        raise TransportError(message=f"{ERR_UNMARSHAL}: {exc}", cause=exc) from exc


def _results(envelope: ResponseEnvelope, decode: Callable[[Any], Any] | None) -> list[Any]:
    result = envelope.result
    if result is None:
        return []
    items = result if isinstance(result, list) else [result]
    if decode is None:
        return list(items)
    return [decode(item) for item in items]


def paginate(
    client: Client,
    path: str,
    params: Any = None,
    *,
    default_per_page: int = DEFAULT_PER_PAGE,
    decode: Callable[[Any], Any] | None = None,
    auth: AuthMethod | int | None = None,
    ctx: Context | None = None,
) -> tuple[list[Any], ResultInfo]:
    """Fetch the results of a list endpoint.

    If ``params.result_info`` has ``page >= 1`` or ``per_page >= 1``, only
    that page is fetched. Otherwise pages are fetched from page 1 with
    ``default_per_page`` results per page until ``ResultInfo.done()``
    holds. In cursor mode the ``cursor`` query parameter is replaced by
    ``cursors.after`` between pages.

    Args:
        client: The API client.
        path: The endpoint path without query string.
        params: A dataclass instance with a ``result_info`` field and
            optional filter fields declared with ``query_field``.
            Defaults to ``ListParams()``.
        default_per_page: The page size used when auto-paginating.
        decode: Optional function applied to every result item.
        auth: Optional auth mask overriding the client default.
        ctx: Optional call context.

    Returns:
        The accumulated results and the ``ResultInfo`` of the last page.

    Raises:
        ApiError: If a page request fails. Results of the previous pages
            are discarded.
    """
    if params is None:
        params = ListParams()
    requested: ResultInfo = params.result_info
    auto_paginate = not (requested.per_page >= 1 or requested.page >= 1)
    requested = replace(
        requested,
        page=requested.page if requested.page >= 1 else 1,
        per_page=requested.per_page if requested.per_page >= 1 else default_per_page,
    )
    params = replace(params, result_info=requested)

    results: list[Any] = []
    while True:
        body = client.execute("GET", build_uri(path, params), auth=auth, ctx=ctx)
        envelope = decode_envelope(body)
        results.extend(_results(envelope, decode))
        info = envelope.result_info or ResultInfo()

        if not auto_paginate or info.done():
            return results, info

        following = info.next()
        logger.debug(f"Fetching next page of {path} (page={following.page})")
        requested = replace(requested, page=following.page, cursor=following.cursor)
        params = replace(params, result_info=requested)


def check_result_info(per_page: int, page: int, count: int, info: ResultInfo) -> bool:
    """Check the invariants the server maintains on ``result_info``.

    This is a test aid, not a runtime check.

    Args:
        per_page: The expected page size.
        page: The expected page number.
        count: The expected number of results on the page.
        info: The pagination metadata to check.

    Returns:
        ``True`` if ``info`` is consistent.

    Raises:
        NotImplementedError: If ``info`` carries cursors.

    Example:
        ```pycon
        >>> from flareapi.envelope import ResultInfo
        >>> from flareapi.pagination import check_result_info
        >>> info = ResultInfo(page=2, per_page=50, total_pages=2, count=10, total=60)
        >>> check_result_info(50, 2, 10, info)
        True

        ```
    """
    if info.is_cursor_mode():
        msg = "check_result_info is unimplemented for cursors"
        raise NotImplementedError(msg)

    if info.per_page != per_page or info.page != page or info.count != count:
        return False
    if info.per_page <= 0:
        return False
    if info.total == 0 and info.total_pages == 0 and info.page == 1 and info.count == 0:
        return True
    if info.total <= 0 or info.total_pages <= 0:
        return False
    if (
        info.total > info.per_page * info.total_pages
        or info.total <= info.per_page * (info.total_pages - 1)
    ):
        return False

    if info.page > info.total_pages or info.page <= 0:
        return False
    if info.page < info.total_pages:
        return info.count == info.per_page
    return info.count == info.total - info.per_page * (info.total_pages - 1)
