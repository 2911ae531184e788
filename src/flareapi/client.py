r"""Public client handle of the API.

The ``Client`` owns the configuration, the rate limiter and the HTTP
transport, and exposes the request primitives used by resource modules:
``execute``, ``execute_with_headers``, ``execute_complete``, ``raw`` and
``paginate``.
"""

from __future__ import annotations

__all__ = ["ERR_EMPTY_API_TOKEN", "ERR_EMPTY_CREDENTIALS", "Client"]

import logging
from typing import TYPE_CHECKING, Any

import httpx

from flareapi.auth import AuthMethod, Credentials
from flareapi.core.config import ClientConfig
from flareapi.exceptions import EmptyCredentialsError
from flareapi.pagination import DEFAULT_PER_PAGE, decode_envelope, paginate
from flareapi.rate_limit import RateLimiter
from flareapi.retry import RequestExecutor
from flareapi.zones import zone_id_by_name

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType
    from typing import Self

    from flareapi.context import Context
    from flareapi.envelope import ApiResponse, RawResponse, ResultInfo

logger: logging.Logger = logging.getLogger(__name__)

ERR_EMPTY_CREDENTIALS = "invalid credentials: key & email must not be empty"
ERR_EMPTY_API_TOKEN = "invalid credentials: API Token must not be empty"


class Client:
    r"""Client of the v4 REST API.

    A client is usually built with one of the three constructors matching
    the authentication schemes of the API: ``from_api_key``,
    ``from_api_token`` and ``from_user_service_key``.

    The ``httpx.Client`` transport can be injected. An injected transport
    belongs to the caller and is never closed by this client, while a
    transport created by the client is closed by ``close`` or when the
    ``with`` block exits.

    .. code-block:: python

        import httpx
        from flareapi import Client

        with httpx.Client(proxy="http://localhost:8030") as http_client:
            client = Client.from_api_token("my-token", http_client=http_client)
            body = client.execute("GET", "/zones/023e105f4ecef8ad9ca31a8372d0c353")
        # http_client is closed here by the outer ``with`` block

    Args:
        config: The client configuration.
        http_client: Optional transport. If ``None``, a new
            ``httpx.Client`` is created with ``config.timeout``.
        rate_limiter: Optional limiter shared with other clients. If
            ``None``, a new limiter is created from ``config.rate_limit``
            and ``config.rate_burst``.

    Example:
        ```pycon
        >>> from flareapi import Client
        >>> with Client.from_api_token("my-token") as client:  # doctest: +SKIP
        ...     body = client.execute("GET", "/zones/023e105f4ecef8ad9ca31a8372d0c353")
        ...

        ```

    Note:
        A client is safe to use from several threads. Its configuration
        is immutable; ``with_auth_type`` derives a new client instead of
        changing the current one.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: httpx.Client | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._config = config
        self._close_client = http_client is None
        self._http_client: httpx.Client = http_client or httpx.Client(timeout=config.timeout)
        self._rate_limiter = rate_limiter or RateLimiter(
            rate=config.rate_limit, burst=config.rate_burst
        )
        self._executor = RequestExecutor(config, self._http_client, self._rate_limiter)

    @classmethod
    def from_api_key(
        cls, key: str, email: str, *, http_client: httpx.Client | None = None, **options: Any
    ) -> Client:
        """Create a client authenticating with a global API key and the
        account email.

        Args:
            key: The global API key.
            email: The email of the account owning the key.
            http_client: Optional transport.
            **options: ``ClientConfig`` fields, e.g. ``base_url`` or
                ``retry_policy``.

        Raises:
            EmptyCredentialsError: If ``key`` or ``email`` is empty.
        """
        if not key or not email:
            raise EmptyCredentialsError(ERR_EMPTY_CREDENTIALS)
        config = ClientConfig(
            credentials=Credentials(api_key=key, api_email=email),
            auth_type=AuthMethod.KEY_EMAIL,
            **options,
        )
        return cls(config, http_client=http_client)

    @classmethod
    def from_api_token(
        cls, token: str, *, http_client: httpx.Client | None = None, **options: Any
    ) -> Client:
        """Create a client authenticating with a scoped API token.

        Example:
            ```pycon
            >>> from flareapi import Client
            >>> client = Client.from_api_token("my-token", rate_limit=10.0)
            >>> client.config.rate_limit
            10.0
            >>> client.close()

            ```

        Raises:
            EmptyCredentialsError: If ``token`` is empty.
        """
        if not token:
            raise EmptyCredentialsError(ERR_EMPTY_API_TOKEN)
        config = ClientConfig(
            credentials=Credentials(api_token=token), auth_type=AuthMethod.TOKEN, **options
        )
        return cls(config, http_client=http_client)

    @classmethod
    def from_user_service_key(
        cls, key: str, *, http_client: httpx.Client | None = None, **options: Any
    ) -> Client:
        """Create a client authenticating with a user service key.

        Raises:
            EmptyCredentialsError: If ``key`` is empty.
        """
        if not key:
            raise EmptyCredentialsError(ERR_EMPTY_CREDENTIALS)
        config = ClientConfig(
            credentials=Credentials(user_service_key=key),
            auth_type=AuthMethod.USER_SERVICE,
            **options,
        )
        return cls(config, http_client=http_client)

    @property
    def config(self) -> ClientConfig:
        """The immutable configuration of the client."""
        return self._config

    @property
    def rate_limiter(self) -> RateLimiter:
        """The rate limiter shared by all the requests of the client."""
        return self._rate_limiter

    def with_auth_type(self, auth_type: AuthMethod | int) -> Client:
        """Return a client using another default auth mask.

        The new client shares the transport and the rate limiter of this
        one, and never closes the transport.

        Args:
            auth_type: The new default ``AuthMethod`` mask.

        Raises:
            ValueError: If the mask is zero or has unknown bits.
        """
        return Client(
            self._config.merge(auth_type=auth_type),
            http_client=self._http_client,
            rate_limiter=self._rate_limiter,
        )

    def close(self) -> None:
        """Close the transport if it was created by this client."""
        if self._close_client:
            self._http_client.close()
            self._close_client = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(config={self._config!r})"

    def execute_complete(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        *,
        auth: AuthMethod | int | None = None,
        ctx: Context | None = None,
    ) -> ApiResponse:
        """Execute one request and return the body with its metadata.

        Use this method for endpoints whose responses are not always JSON
        envelopes.

        Args:
            method: The HTTP method.
            path: The API path relative to the base URL, including the
                query string.
            body: Optional request body: a JSON serializable value, bytes,
                or a binary stream.
            headers: Optional extra headers.
            auth: Optional auth mask overriding the client default.
            ctx: Optional call context.

        Returns:
            The raw body, status code, status line and headers.

        Raises:
            ApiError: If the request fails.
        """
        return self._executor.execute(
            method, path, body, auth_type=auth, headers=headers, ctx=ctx
        )

    def execute_with_headers(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        *,
        auth: AuthMethod | int | None = None,
        ctx: Context | None = None,
    ) -> bytes:
        """Execute one request with extra headers and return the raw
        response body."""
        return self.execute_complete(method, path, body, headers, auth=auth, ctx=ctx).body

    def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        auth: AuthMethod | int | None = None,
        ctx: Context | None = None,
    ) -> bytes:
        """Execute one request and return the raw response body.

        Example:
            ```pycon
            >>> from flareapi import Client
            >>> client = Client.from_api_token("my-token")
            >>> body = client.execute("GET", "/zones/z1")  # doctest: +SKIP

            ```
        """
        return self.execute_complete(method, path, body, auth=auth, ctx=ctx).body

    def raw(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        ctx: Context | None = None,
    ) -> RawResponse:
        """Execute a request against any endpoint and decode the envelope
        without interpreting its ``result``.

        Raises:
            ApiError: If the request fails, or a ``TransportError`` if the
                body is not a JSON envelope.
        """
        return decode_envelope(self.execute_with_headers(method, path, body, headers, ctx=ctx))

    def paginate(
        self,
        path: str,
        params: Any = None,
        *,
        default_per_page: int = DEFAULT_PER_PAGE,
        decode: Callable[[Any], Any] | None = None,
        auth: AuthMethod | int | None = None,
        ctx: Context | None = None,
    ) -> tuple[list[Any], ResultInfo]:
        """Fetch the results of a list endpoint.

        See ``flareapi.pagination.paginate``.
        """
        return paginate(
            self,
            path,
            params,
            default_per_page=default_per_page,
            decode=decode,
            auth=auth,
            ctx=ctx,
        )

    def zone_id_by_name(
        self, name: str, *, account_id: str = "", ctx: Context | None = None
    ) -> str:
        """Resolve the id of a zone from its name.

        See ``flareapi.zones.zone_id_by_name``.
        """
        return zone_id_by_name(self, name, account_id=account_id, ctx=ctx)
