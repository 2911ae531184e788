r"""Request executor implementing the retry and backoff loop.

One call of ``RequestExecutor.execute`` is one logical round trip: the
body is serialized once, then each attempt waits for the backoff delay,
takes a rate limiter token and issues the HTTP request. Transport
failures, HTTP 429 and HTTP 5xx are retried within the retry budget of
the client; the terminal response is classified by
``flareapi.utils.response.handle_response``.

The three blocking points of an attempt (backoff sleep, rate limiter
wait, transport round trip) honor the call context.
"""

from __future__ import annotations

__all__ = ["RequestExecutor"]

import logging
from typing import TYPE_CHECKING

import httpx

from flareapi.auth import AuthMethod, apply_auth_headers
from flareapi.body import StreamBody, to_request_body
from flareapi.context import Context, ContextError
from flareapi.core.config import TRACE_ID_HEADER
from flareapi.envelope import ApiResponse
from flareapi.exceptions import ApiError, RateLimitError, ServiceError, TransportError
from flareapi.retry.decider import RetryDecider
from flareapi.utils.debug import format_request, format_response, redact
from flareapi.utils.response import handle_response
from flareapi.utils.sleep import calculate_sleep_time, sleep_with_context
from flareapi.utils.structured_logging import log_structured, set_trace_id

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from flareapi.core.config import ClientConfig
    from flareapi.rate_limit import RateLimiter

logger: logging.Logger = logging.getLogger(__name__)

ERR_RATE_LIMIT_EXHAUSTED = "exceeded available rate limit retries"


class RequestExecutor:
    """Executes API requests with authentication, rate limiting and
    retries.

    The executor holds no per-request state, so one instance is shared by
    all the calls of a client and is safe to use from several threads.

    Args:
        config: The client configuration.
        http_client: The transport. Must be thread-safe.
        rate_limiter: The limiter shared by all requests of the client.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client,
        rate_limiter: RateLimiter,
    ) -> None:
        self.config = config
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.decider = RetryDecider()

    def build_url(self, path: str) -> str:
        """Return the absolute URL of an API path.

        Example:
            ```pycon
            >>> import httpx
            >>> from flareapi.core.config import ClientConfig
            >>> from flareapi.rate_limit import RateLimiter
            >>> from flareapi.retry import RequestExecutor
            >>> executor = RequestExecutor(ClientConfig(), httpx.Client(), RateLimiter())
            >>> executor.build_url("/zones/z1")
            'https://api.cloudflare.com/client/v4/zones/z1'

            ```
        """
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.config.base_url}{path}"

    def build_headers(
        self,
        headers: Mapping[str, str] | None,
        auth_type: AuthMethod | int,
        has_body: bool,
    ) -> httpx.Headers:
        """Assemble the headers of an outgoing request.

        The client default headers are layered first, then the caller
        extras, then the headers of the selected auth schemes.
        ``Content-Type: application/json`` is only added when the request
        has a body and no layer supplied a content type.

        Args:
            headers: Optional caller supplied extra headers.
            auth_type: The auth mask of the request.
            has_body: Whether the request carries a body.

        Returns:
            The outgoing headers.
        """
        request_headers = httpx.Headers(self.config.headers)
        if headers:
            request_headers.update(headers)
        apply_auth_headers(request_headers, self.config.credentials, auth_type)
        if self.config.user_agent:
            request_headers["User-Agent"] = self.config.user_agent
        if has_body and "Content-Type" not in request_headers:
            request_headers["Content-Type"] = "application/json"
        return request_headers

    def _attempt_timeout(self, ctx: Context) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.config.timeout
        return min(self.config.timeout, remaining)

    def _dump(self, label: str, text: str) -> None:
        if self.config.debug:
            secrets = self.config.credentials.secrets()
            self.config.logger.debug(f"{label}:\n{redact(text, secrets)}")

    def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        auth_type: AuthMethod | int | None = None,
        headers: Mapping[str, str] | None = None,
        ctx: Context | None = None,
    ) -> ApiResponse:
        """Execute one request with retry logic.

        Args:
            method: The HTTP method.
            path: The API path relative to the base URL, including the
                query string.
            body: Optional request body: a JSON serializable value, bytes,
                a binary stream, or a ``RequestBody`` variant.
            auth_type: Optional auth mask overriding the client default.
            headers: Optional extra headers.
            ctx: Optional call context. ``None`` never cancels.

        Returns:
            The raw body and metadata of the successful response.

        Raises:
            BodyEncodeError: If the body cannot be serialized. No request
                is issued.
            ApiError: The typed error of the terminal response, a
                ``TransportError`` if no usable response was obtained, or
                a ``RateLimitError``/``ServiceError`` once the retry budget
                is spent.
        """
        ctx = ctx if ctx is not None else Context()
        if auth_type is None:
            auth_type = self.config.auth_type
        policy = self.config.retry_policy
        log = self.config.logger

        request_body = to_request_body(body)
        content = None
        if request_body is not None and not isinstance(request_body, StreamBody):
            content = request_body.encode()
        request_headers = self.build_headers(headers, auth_type, has_body=request_body is not None)
        url = self.build_url(path)

        last_error: ApiError | None = None
        response: httpx.Response | None = None

        for attempt in range(policy.max_retries + 1):
            if attempt > 0:
                sleep_time = calculate_sleep_time(attempt, policy)
                log_structured(
                    log,
                    logging.DEBUG,
                    f"Sleeping {sleep_time:.3f}s before retry attempt number {attempt} "
                    f"for request {method} {path}",
                    method=method,
                    path=path,
                    attempt=attempt,
                    sleep_time=sleep_time,
                )
                try:
                    sleep_with_context(sleep_time, ctx)
                except ContextError as exc:
                    raise TransportError(
                        message=f"operation aborted during backoff: {exc}", cause=exc
                    ) from exc

            try:
                self.rate_limiter.wait(ctx)
            except ContextError as exc:
                raise TransportError(
                    message=f"error caused by request rate limiting: {exc}", cause=exc
                ) from exc

            if isinstance(request_body, StreamBody):
                if attempt > 0 and not request_body.seekable:
                    log_structured(
                        log,
                        logging.DEBUG,
                        f"Request body of {method} {path} is not seekable, "
                        f"retry attempt number {attempt} sends the unread remainder only",
                        method=method,
                        path=path,
                        attempt=attempt,
                    )
                request_body.rewind()
                content = request_body.iter_chunks()
            request = self.http_client.build_request(
                method,
                url,
                content=content,
                headers=request_headers,
                timeout=self._attempt_timeout(ctx),
            )
            self._dump("Request", format_request(request))

            try:
                response = self.http_client.send(request, stream=True)
            except httpx.RequestError as exc:
                should_retry, reason = self.decider.should_retry_exception(exc, ctx)
                if not should_retry:
                    err = ctx.err() or exc
                    raise TransportError(message=f"HTTP request failed: {err}", cause=err) from exc
                log_structured(
                    log,
                    logging.DEBUG,
                    f"{method} request to {path} failed, will retry ({reason})",
                    method=method,
                    path=path,
                    attempt=attempt,
                )
                last_error = TransportError(message=f"HTTP request failed: {exc}", cause=exc)
                response = None
                continue

            err = ctx.err()
            if err is not None:
                response.close()
                raise TransportError(message=f"HTTP request failed: {err}", cause=err) from err

            ray_id = response.headers.get(TRACE_ID_HEADER, "")
            set_trace_id(ray_id)
            log_structured(
                log,
                logging.DEBUG,
                f"{method} request to {path} returned status {response.status_code}",
                method=method,
                path=path,
                attempt=attempt,
                status_code=response.status_code,
            )

            should_retry, reason = self.decider.should_retry_response(response)
            if should_retry:
                if self.config.debug:
                    self._read_body(response, ray_id)
                    self._dump("Response", format_response(response))
                else:
                    response.close()
                last_error = self._retryable_error(response, ray_id)
                log_structured(
                    log,
                    logging.DEBUG,
                    f"{method} request to {path}: will retry ({reason})",
                    method=method,
                    path=path,
                    attempt=attempt,
                    status_code=response.status_code,
                )
                continue

            self._read_body(response, ray_id)
            self._dump("Response", format_response(response))
            break
        else:
            logger.debug(f"{method} request to {path} failed after {policy.max_retries + 1} attempts")
            raise last_error from last_error.cause

        handle_response(response)
        return ApiResponse(
            body=response.content,
            status_code=response.status_code,
            status=f"{response.status_code} {response.reason_phrase}",
            headers=response.headers,
        )

    @staticmethod
    def _read_body(response: httpx.Response, ray_id: str) -> None:
        try:
            response.read()
        except httpx.RequestError as exc:
            raise TransportError(
                status_code=response.status_code,
                ray_id=ray_id,
                message=f"could not read response body: {exc}",
                cause=exc,
            ) from exc
        finally:
            response.close()

    @staticmethod
    def _retryable_error(response: httpx.Response, ray_id: str) -> ApiError:
        status_code = response.status_code
        if status_code == 429:
            return RateLimitError(
                status_code=status_code, ray_id=ray_id, message=ERR_RATE_LIMIT_EXHAUSTED
            )
        reason = httpx.codes.get_reason_phrase(status_code).lower() or "unexpected"
        return ServiceError(
            status_code=status_code,
            ray_id=ray_id,
            message=f"received {reason} response (HTTP {status_code}), please try again later",
        )
