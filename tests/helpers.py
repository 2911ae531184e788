r"""Shared test helpers for the API client tests.

This module contains the infrastructure used across test files to serve
canned responses through ``httpx.MockTransport`` and to build clients
wired to it.
"""

from __future__ import annotations

__all__ = [
    "BASE_URL",
    "FAST_RETRY_POLICY",
    "RecordingHandler",
    "envelope",
    "json_response",
    "make_client",
    "make_executor",
]

import json
import math
from typing import TYPE_CHECKING, Any

import httpx

from flareapi.client import Client
from flareapi.core.config import ClientConfig, RetryPolicy
from flareapi.rate_limit import RateLimiter
from flareapi.retry import RequestExecutor

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://api.example.test/client/v4"

FAST_RETRY_POLICY = RetryPolicy(max_retries=3, min_retry_delay=0.001, max_retry_delay=0.01)


def envelope(
    result: Any = None,
    *,
    success: bool = True,
    errors: list[dict[str, Any]] | None = None,
    messages: list[dict[str, Any]] | None = None,
    result_info: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a response envelope as decoded JSON."""
    data: dict[str, Any] = {
        "success": success,
        "errors": errors or [],
        "messages": messages or [],
        "result": result,
    }
    if result_info is not None:
        data["result_info"] = result_info
    return data


def json_response(
    status_code: int = 200,
    payload: Any = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Create a JSON response. ``None`` payloads become an empty success
    envelope."""
    if payload is None:
        payload = envelope()
    return httpx.Response(status_code, json=payload, headers=headers)


class RecordingHandler:
    """Serve canned responses in order and record the received requests.

    Each item is an ``httpx.Response``, an exception to raise, or a
    callable receiving the request and returning a response.
    """

    def __init__(self, *responses: httpx.Response | Exception | Callable) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(request.read())
        self.requests.append(request)
        if not self.responses:
            msg = f"unexpected request: {request.method} {request.url}"
            raise AssertionError(msg)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return item(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_bodies(self) -> list[Any]:
        return [json.loads(body) for body in self.bodies]


def make_client(handler: Callable[[httpx.Request], httpx.Response], **options: Any) -> Client:
    """Create a token client talking to ``handler``.

    Rate limiting is disabled and retries use millisecond delays unless
    ``options`` say otherwise.
    """
    options.setdefault("base_url", BASE_URL)
    options.setdefault("rate_limit", math.inf)
    options.setdefault("retry_policy", FAST_RETRY_POLICY)
    token = options.pop("token", "T")
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return Client.from_api_token(token, http_client=http_client, **options)


def make_executor(
    handler: Callable[[httpx.Request], httpx.Response],
    config: ClientConfig | None = None,
    rate_limiter: RateLimiter | None = None,
) -> RequestExecutor:
    """Create a request executor talking to ``handler``."""
    if config is None:
        from flareapi.auth import AuthMethod, Credentials

        config = ClientConfig(
            credentials=Credentials(api_token="T"),
            auth_type=AuthMethod.TOKEN,
            base_url=BASE_URL,
            rate_limit=math.inf,
            retry_policy=FAST_RETRY_POLICY,
        )
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return RequestExecutor(
        config,
        http_client,
        rate_limiter or RateLimiter(rate=config.rate_limit, burst=config.rate_burst),
    )
