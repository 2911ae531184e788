r"""Query string construction for API endpoints.

Parameters of list and filter operations are described by dataclasses
whose fields carry a query key in their metadata. ``build_uri`` walks
those fields and appends the non-empty ones to a base path.

Example:
    ```pycon
    >>> from dataclasses import dataclass
    >>> from flareapi.uri import build_uri, query_field
    >>> @dataclass
    ... class Params:
    ...     a: str = query_field("a", default="")
    ...     c: str = query_field("c", default="")
    ...
    >>> build_uri("/a/b", Params(a="", c="d"))
    '/a/b?c=d'

    ```
"""

from __future__ import annotations

__all__ = ["QUERY_KEY", "QUERY_OMITEMPTY", "build_uri", "path_escape", "query_field"]

import dataclasses
import enum
from datetime import date, datetime
from typing import Any
from urllib.parse import quote

import httpx

QUERY_KEY = "query"
QUERY_OMITEMPTY = "omitempty"

_MISSING = dataclasses.MISSING


def query_field(
    key: str | None = None,
    *,
    omitempty: bool = True,
    default: Any = _MISSING,
    default_factory: Any = _MISSING,
) -> Any:
    """Declare a dataclass field that is encoded in the query string.

    Args:
        key: The query key. ``None`` on a dataclass-valued field embeds
            that dataclass, so its own query fields are flattened into the
            parent's query string.
        omitempty: If ``True``, empty values (``""``, ``0``, ``False``,
            ``None``, empty collections) are left out of the query.
        default: Default value of the field.
        default_factory: Default factory of the field.

    Returns:
        A ``dataclasses.field`` carrying the query metadata.
    """
    metadata = {QUERY_KEY: key, QUERY_OMITEMPTY: omitempty}
    if default_factory is not _MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return value == 0
    return False


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _query_items(params: Any) -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    for field in dataclasses.fields(params):
        if QUERY_KEY not in field.metadata:
            continue
        key = field.metadata[QUERY_KEY]
        value = getattr(params, field.name)
        if key is None:
            if value is not None and dataclasses.is_dataclass(value):
                items.extend(_query_items(value))
            continue
        if field.metadata.get(QUERY_OMITEMPTY, True) and _is_empty(value):
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            items.extend((key, _format_value(v)) for v in value)
        else:
            items.append((key, _format_value(value)))
    return items


def build_uri(path: str, params: Any = None) -> str:
    """Append the query string derived from ``params`` to ``path``.

    Keys are sorted so that the same parameters always produce the same
    URI. The path is used verbatim: segments that may contain reserved
    characters must be escaped beforehand with ``path_escape``.

    Args:
        path: The endpoint path, e.g. ``"/zones"``.
        params: Optional dataclass instance declaring its query fields
            with ``query_field``.

    Returns:
        The path followed by ``?`` and the encoded query, or the bare path
        if no field is set.

    Raises:
        TypeError: If ``params`` is not a dataclass instance.
    """
    if params is None:
        return path
    if not dataclasses.is_dataclass(params) or isinstance(params, type):
        msg = f"params must be a dataclass instance, got {type(params).__name__}"
        raise TypeError(msg)

    items = sorted(_query_items(params), key=lambda item: item[0])
    if not items:
        return path
    return f"{path}?{httpx.QueryParams(items)}"


def path_escape(segment: str) -> str:
    """Percent-encode a value so it can be used as a single path segment.

    Slashes are encoded too, which keeps values such as URLs inside one
    segment.

    Example:
        ```pycon
        >>> from flareapi.uri import path_escape
        >>> path_escape("https://example.com/a b")
        'https%3A%2F%2Fexample.com%2Fa%20b'

        ```
    """
    return quote(segment, safe="")
