r"""Debug dumps of HTTP exchanges with secret redaction."""

from __future__ import annotations

__all__ = ["REDACTED", "format_request", "format_response", "redact"]

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

REDACTED = "[redacted]"


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret in ``text``.

    Example:
        ```pycon
        >>> from flareapi.utils.debug import redact
        >>> redact("Authorization: Bearer abc123", ["abc123"])
        'Authorization: Bearer [redacted]'

        ```
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def _format_headers(headers: httpx.Headers) -> list[str]:
    return [f"{key}: {value}" for key, value in headers.multi_items()]


def _format_content(read: Callable[[], bytes]) -> str:
    try:
        content = read()
    except (httpx.RequestNotRead, httpx.ResponseNotRead):
        return "<streaming body>"
    return content.decode("utf-8", errors="replace")


def format_request(request: httpx.Request) -> str:
    """Render a request line, its headers and its body."""
    lines = [f"{request.method} {request.url} HTTP/1.1", *_format_headers(request.headers)]
    return "\n".join([*lines, "", _format_content(lambda: request.content)])


def format_response(response: httpx.Response) -> str:
    """Render a status line, the response headers and the response body."""
    lines = [
        f"{response.http_version} {response.status_code} {response.reason_phrase}",
        *_format_headers(response.headers),
    ]
    return "\n".join([*lines, "", _format_content(lambda: response.content)])
