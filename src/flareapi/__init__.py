r"""flareapi - Request execution core of a client for the v4 REST API.

This package provides the part of the API client every resource module
delegates to: authenticated, rate-limited, retrying and cancellable
request execution on top of httpx, classification of responses into
typed errors, and page-number or cursor pagination of list endpoints.

Key Features:
    - Three authentication schemes (API key and email, API token, user
      service key) selectable per request with an ``AuthMethod`` mask
    - Client-wide token bucket rate limiter (4 requests/second by default)
    - Exponential backoff on transport errors, HTTP 429 and HTTP 5xx
    - Cooperative cancellation and deadlines with ``Context``
    - Typed errors carrying the HTTP status, the trace id and the
      envelope errors verbatim
    - Automatic pagination of list endpoints
    - Debug dumps of requests and responses with secrets redacted

Example:
    ```pycon
    >>> from flareapi import Client, Context, NotFoundError
    >>> ctx = Context.with_timeout(Context(), 30.0)
    >>> with Client.from_api_token("my-token") as client:  # doctest: +SKIP
    ...     try:
    ...         body = client.execute("GET", "/zones/z1", ctx=ctx)
    ...     except NotFoundError as exc:
    ...         print(exc.error_codes)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "ApiError",
    "ApiResponse",
    "AuthMethod",
    "AuthenticationError",
    "AuthorizationError",
    "BodyEncodeError",
    "Client",
    "ClientConfig",
    "Context",
    "ContextCancelledError",
    "ContextError",
    "Credentials",
    "DeadlineExceededError",
    "EmptyCredentialsError",
    "ErrorType",
    "NotFoundError",
    "PaginationOptions",
    "RateLimitError",
    "RateLimiter",
    "RawResponse",
    "RequestError",
    "ResourceContainer",
    "ResponseEnvelope",
    "ResponseInfo",
    "ResultInfo",
    "RetryPolicy",
    "RouteLevel",
    "ServiceError",
    "TransportError",
    "ZoneLookupError",
    "__version__",
    "account_identifier",
    "build_uri",
    "paginate",
    "path_escape",
    "query_field",
    "user_identifier",
    "zone_identifier",
]

from importlib.metadata import PackageNotFoundError, version

from flareapi.auth import AuthMethod, Credentials
from flareapi.client import Client
from flareapi.context import (
    Context,
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
)
from flareapi.core.config import ClientConfig, RetryPolicy
from flareapi.envelope import (
    ApiResponse,
    RawResponse,
    ResponseEnvelope,
    ResponseInfo,
    ResultInfo,
)
from flareapi.exceptions import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    BodyEncodeError,
    EmptyCredentialsError,
    ErrorType,
    NotFoundError,
    RateLimitError,
    RequestError,
    ServiceError,
    TransportError,
    ZoneLookupError,
)
from flareapi.pagination import PaginationOptions, paginate
from flareapi.rate_limit import RateLimiter
from flareapi.resource import (
    ResourceContainer,
    RouteLevel,
    account_identifier,
    user_identifier,
    zone_identifier,
)
from flareapi.uri import build_uri, path_escape, query_field

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
