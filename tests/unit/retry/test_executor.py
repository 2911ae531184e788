r"""Unit tests for the synchronous request executor."""

from __future__ import annotations

import io
import logging
import math
from unittest.mock import ANY, Mock, call, patch

import httpx
import pytest

from flareapi.auth import AuthMethod, Credentials
from flareapi.context import Context, ContextCancelledError, DeadlineExceededError
from flareapi.core.config import ClientConfig, RetryPolicy
from flareapi.exceptions import (
    BodyEncodeError,
    NotFoundError,
    RateLimitError,
    ServiceError,
    TransportError,
)
from flareapi.rate_limit import RateLimiter
from flareapi.utils.sleep import sleep_with_context
from flareapi.utils.structured_logging import get_trace_id
from tests.helpers import (
    BASE_URL,
    FAST_RETRY_POLICY,
    RecordingHandler,
    envelope,
    json_response,
    make_executor,
)


def make_config(**kwargs: object) -> ClientConfig:
    kwargs.setdefault("credentials", Credentials(api_token="T"))
    kwargs.setdefault("base_url", BASE_URL)
    kwargs.setdefault("rate_limit", math.inf)
    kwargs.setdefault("retry_policy", FAST_RETRY_POLICY)
    return ClientConfig(**kwargs)


#######################################
#     Tests for successful requests   #
#######################################


def test_execute_success(mock_sleep: Mock) -> None:
    """Test that a 2xx response returns the raw body and its
    metadata."""
    payload = envelope({"id": "z1"})
    handler = RecordingHandler(json_response(200, payload, headers={"cf-ray": "ray-1"}))
    response = make_executor(handler).execute("GET", "/zones/z1")

    assert response.status_code == 200
    assert response.status == "200 OK"
    assert response.headers["cf-ray"] == "ray-1"
    assert response.body == httpx.Response(200, json=payload).content
    assert handler.call_count == 1
    mock_sleep.assert_not_called()


def test_execute_url() -> None:
    """Test that the path is appended to the base URL."""
    handler = RecordingHandler(json_response(), json_response())
    executor = make_executor(handler)
    executor.execute("GET", "/zones?name=example.com")
    executor.execute("GET", "user")
    assert str(handler.requests[0].url) == f"{BASE_URL}/zones?name=example.com"
    assert str(handler.requests[1].url) == f"{BASE_URL}/user"


def test_execute_non_json_success_body() -> None:
    """Test that non-JSON success bodies are returned unchanged."""
    handler = RecordingHandler(httpx.Response(200, content=b"zone file", headers={"content-type": "text/plain"}))
    assert make_executor(handler).execute("GET", "/zones/z1/dns_records/export").body == b"zone file"


def test_execute_records_trace_id() -> None:
    """Test that the trace id of the last response is recorded for
    structured logs."""
    handler = RecordingHandler(json_response(headers={"cf-ray": "8f2a1b3c4d5e6f70-AMS"}))
    make_executor(handler).execute("GET", "/zones")
    assert get_trace_id() == "8f2a1b3c4d5e6f70-AMS"


##################################
#     Tests for header layering  #
##################################


def test_execute_headers_without_body() -> None:
    """Test that no body and no default content type are sent without a
    body."""
    handler = RecordingHandler(json_response())
    make_executor(handler).execute("GET", "/zones/z1")
    request = handler.requests[0]
    assert request.headers["Authorization"] == "Bearer T"
    assert request.headers["User-Agent"] == "flareapi/v4"
    assert "Content-Type" not in request.headers
    assert handler.bodies == [b""]


def test_execute_headers_with_body() -> None:
    """Test that JSON bodies get the default content type."""
    handler = RecordingHandler(json_response())
    make_executor(handler).execute("POST", "/zones", {"name": "example.com"})
    assert handler.requests[0].headers["Content-Type"] == "application/json"
    assert handler.json_bodies() == [{"name": "example.com"}]


def test_execute_caller_content_type_suppresses_default() -> None:
    """Test that a caller supplied content type wins."""
    handler = RecordingHandler(json_response())
    make_executor(handler).execute(
        "PUT", "/accounts/a1/workers/scripts/w", b"addEventListener()",
        headers={"Content-Type": "application/javascript"},
    )
    assert handler.requests[0].headers.get_list("Content-Type") == ["application/javascript"]
    assert handler.bodies == [b"addEventListener()"]


def test_execute_header_layering() -> None:
    """Test that caller extras override the client default headers."""
    handler = RecordingHandler(json_response())
    config = make_config(headers={"X-Default": "1", "X-Shared": "default"}, user_agent="")
    make_executor(handler, config=config).execute(
        "GET", "/zones", headers={"X-Shared": "extra", "X-Extra": "2"}
    )
    headers = handler.requests[0].headers
    assert headers["X-Default"] == "1"
    assert headers["X-Shared"] == "extra"
    assert headers["X-Extra"] == "2"
    assert not headers["User-Agent"].startswith("flareapi")


def test_execute_auth_override() -> None:
    """Test that a per-request mask overrides the client default."""
    handler = RecordingHandler(json_response())
    config = make_config(
        credentials=Credentials(api_key="K", api_email="e@example.com", user_service_key="S"),
        auth_type=AuthMethod.KEY_EMAIL,
    )
    make_executor(handler, config=config).execute(
        "GET", "/certificates", auth_type=AuthMethod.USER_SERVICE
    )
    headers = handler.requests[0].headers
    assert headers["X-Auth-User-Service-Key"] == "S"
    assert "X-Auth-Key" not in headers
    assert "X-Auth-Email" not in headers


def test_execute_default_auth() -> None:
    """Test that the client mask is used without override."""
    handler = RecordingHandler(json_response())
    config = make_config(
        credentials=Credentials(api_key="K", api_email="e@example.com"),
        auth_type=AuthMethod.KEY_EMAIL,
    )
    make_executor(handler, config=config).execute("GET", "/zones")
    assert handler.requests[0].headers["X-Auth-Key"] == "K"
    assert handler.requests[0].headers["X-Auth-Email"] == "e@example.com"


##############################
#     Tests for the body     #
##############################


def test_execute_body_encode_error_before_any_attempt() -> None:
    """Test that an unserializable body fails before any request."""
    handler = RecordingHandler()
    with pytest.raises(BodyEncodeError, match="error marshalling params to JSON"):
        make_executor(handler).execute("POST", "/zones", {"bad": object()})
    assert handler.call_count == 0


def test_execute_body_sent_once_per_attempt(mock_sleep: Mock) -> None:
    """Test that the same body is delivered on every attempt."""
    handler = RecordingHandler(json_response(500), json_response(502), json_response())
    make_executor(handler).execute("POST", "/zones", {"name": "example.com"})
    assert handler.json_bodies() == [{"name": "example.com"}] * 3


def test_execute_stream_body_rewound_between_attempts(mock_sleep: Mock) -> None:
    """Test that seekable streams are replayed on retries."""
    handler = RecordingHandler(json_response(503), json_response())
    make_executor(handler).execute("PUT", "/upload", io.BytesIO(b"binary payload"))
    assert handler.bodies == [b"binary payload", b"binary payload"]


class OneShotStream:
    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)

    def seekable(self) -> bool:
        return False


def test_execute_stream_body_not_seekable(
    mock_sleep: Mock, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that retrying a stream that cannot be rewound is logged and
    sends what is left of the stream."""
    handler = RecordingHandler(json_response(503), json_response())
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler).execute("PUT", "/upload", OneShotStream(b"binary payload"))

    assert handler.bodies == [b"binary payload", b""]
    records = [r for r in caplog.records if "is not seekable" in r.getMessage()]
    assert len(records) == 1
    assert records[0].attempt == 1


def test_execute_seekable_stream_body_not_logged(
    mock_sleep: Mock, caplog: pytest.LogCaptureFixture
) -> None:
    handler = RecordingHandler(json_response(503), json_response())
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler).execute("PUT", "/upload", io.BytesIO(b"binary payload"))
    assert "is not seekable" not in caplog.text


################################
#     Tests for retry logic    #
################################


def test_execute_retry_then_success(mock_sleep: Mock) -> None:
    """Test that a 429 is retried after one backoff wait."""
    handler = RecordingHandler(json_response(429), json_response(200, envelope({"id": "z1"})))
    response = make_executor(handler).execute("GET", "/zones/z1")
    assert response.status_code == 200
    assert handler.call_count == 2
    mock_sleep.assert_called_once_with(0.001, ANY)


def test_execute_backoff_delays(mock_sleep: Mock) -> None:
    """Test that the backoff delays double and are capped."""
    handler = RecordingHandler(*[json_response(500) for _ in range(6)])
    config = make_config(
        retry_policy=RetryPolicy(max_retries=5, min_retry_delay=0.001, max_retry_delay=0.005)
    )
    with pytest.raises(ServiceError):
        make_executor(handler, config=config).execute("GET", "/zones")
    delays = [c.args[0] for c in mock_sleep.call_args_list]
    assert delays == [0.001, 0.002, 0.004, 0.005, 0.005]
    assert handler.call_count == 6


def test_execute_5xx_exhausted(mock_sleep: Mock) -> None:
    """Test the error raised once 5xx retries are exhausted."""
    handler = RecordingHandler(*[json_response(500, headers={"cf-ray": "r"}) for _ in range(4)])
    with pytest.raises(ServiceError) as exc_info:
        make_executor(handler).execute("GET", "/zones")
    error = exc_info.value
    assert str(error) == "received internal server error response (HTTP 500), please try again later"
    assert error.status_code == 500
    assert error.ray_id == "r"
    assert handler.call_count == 4
    assert mock_sleep.call_count == 3


def test_execute_429_exhausted(mock_sleep: Mock) -> None:
    """Test the error raised once rate limit retries are exhausted."""
    handler = RecordingHandler(*[json_response(429) for _ in range(4)])
    with pytest.raises(RateLimitError, match="exceeded available rate limit retries") as exc_info:
        make_executor(handler).execute("GET", "/zones")
    assert exc_info.value.status_code == 429
    assert exc_info.value.client_rate_limited()


def test_execute_last_error_wins(mock_sleep: Mock) -> None:
    """Test that the error of the last attempt is raised."""
    handler = RecordingHandler(
        json_response(429), json_response(429), json_response(429), json_response(503)
    )
    with pytest.raises(ServiceError, match=r"service unavailable response \(HTTP 503\)"):
        make_executor(handler).execute("GET", "/zones")


def test_execute_no_retry_on_4xx(mock_sleep: Mock) -> None:
    """Test that 4xx responses other than 429 fail fast."""
    handler = RecordingHandler(
        json_response(404, envelope(success=False, errors=[{"code": 7003, "message": "Not found"}]))
    )
    with pytest.raises(NotFoundError, match=r"Not found \(7003\)"):
        make_executor(handler).execute("GET", "/zones/missing")
    assert handler.call_count == 1
    mock_sleep.assert_not_called()


def test_execute_max_retries_zero(mock_sleep: Mock) -> None:
    """Test that max_retries=0 issues a single attempt."""
    handler = RecordingHandler(json_response(500))
    config = make_config(retry_policy=RetryPolicy(max_retries=0))
    with pytest.raises(ServiceError):
        make_executor(handler, config=config).execute("GET", "/zones")
    assert handler.call_count == 1
    mock_sleep.assert_not_called()


def test_execute_transport_error_then_success(mock_sleep: Mock) -> None:
    """Test that transport errors are retried."""
    handler = RecordingHandler(httpx.ConnectError("connection refused"), json_response())
    assert make_executor(handler).execute("GET", "/zones").status_code == 200
    assert handler.call_count == 2


def test_execute_transport_error_exhausted(mock_sleep: Mock) -> None:
    """Test the error raised once transport retries are exhausted."""
    handler = RecordingHandler(*[httpx.ConnectError("connection refused") for _ in range(4)])
    with pytest.raises(TransportError, match="HTTP request failed: connection refused") as exc_info:
        make_executor(handler).execute("GET", "/zones")
    assert isinstance(exc_info.value.cause, httpx.ConnectError)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert exc_info.value.status_code == 0


#################################
#     Tests for cancellation    #
#################################


def test_execute_cancelled_during_backoff() -> None:
    """Test that cancellation during backoff halts the loop."""
    ctx = Context()

    def cancel_then_sleep(seconds: float, context: Context) -> None:
        ctx.cancel()
        sleep_with_context(seconds, context)

    handler = RecordingHandler(json_response(500), json_response())
    with (
        patch("flareapi.retry.executor.sleep_with_context", side_effect=cancel_then_sleep),
        pytest.raises(TransportError, match="operation aborted during backoff: context canceled") as exc_info,
    ):
        make_executor(handler).execute("GET", "/zones", ctx=ctx)
    assert isinstance(exc_info.value.cause, ContextCancelledError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    assert handler.call_count == 1


def test_execute_cancelled_before_rate_limiter() -> None:
    """Test that a cancelled context fails at the rate limiter without
    issuing a request."""
    ctx = Context()
    ctx.cancel()
    handler = RecordingHandler()
    with pytest.raises(TransportError, match="error caused by request rate limiting: context canceled"):
        make_executor(handler).execute("GET", "/zones", ctx=ctx)
    assert handler.call_count == 0


def test_execute_rate_limiter_deadline() -> None:
    """Test that a limiter wait beyond the deadline fails fast."""
    limiter = RateLimiter(rate=0.01, burst=1)
    assert limiter.allow()
    handler = RecordingHandler()
    ctx = Context.with_timeout(Context(), 5.0)
    with pytest.raises(TransportError, match="error caused by request rate limiting") as exc_info:
        make_executor(handler, rate_limiter=limiter).execute("GET", "/zones", ctx=ctx)
    assert isinstance(exc_info.value.cause, DeadlineExceededError)
    assert handler.call_count == 0


def test_execute_cancelled_during_round_trip(mock_sleep: Mock) -> None:
    """Test that a response received after cancellation is neither
    retried nor parsed."""
    ctx = Context()

    def respond(request: httpx.Request) -> httpx.Response:
        ctx.cancel()
        return json_response(500)

    handler = RecordingHandler(respond, json_response())
    with pytest.raises(TransportError, match="HTTP request failed: context canceled") as exc_info:
        make_executor(handler).execute("GET", "/zones", ctx=ctx)
    assert isinstance(exc_info.value.cause, ContextCancelledError)
    assert handler.call_count == 1
    mock_sleep.assert_not_called()


def test_execute_transport_error_after_deadline(mock_sleep: Mock) -> None:
    """Test that a transport failure observed after the deadline is not
    retried."""
    ctx = Context()

    def time_out(request: httpx.Request) -> httpx.Response:
        ctx.cancel(DeadlineExceededError())
        raise httpx.ReadTimeout("timed out", request=request)

    handler = RecordingHandler(time_out, json_response())
    with pytest.raises(TransportError, match="context deadline exceeded") as exc_info:
        make_executor(handler).execute("GET", "/zones", ctx=ctx)
    assert isinstance(exc_info.value.cause, DeadlineExceededError)
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
    assert handler.call_count == 1


def test_execute_attempt_timeout_from_config() -> None:
    """Test that attempts use the configured timeout without
    deadline."""
    handler = RecordingHandler(json_response())
    make_executor(handler, config=make_config(timeout=7.0)).execute("GET", "/zones")
    assert handler.requests[0].extensions["timeout"]["read"] == 7.0


def test_execute_attempt_timeout_bounded_by_deadline() -> None:
    """Test that attempts never outlive the context deadline."""
    handler = RecordingHandler(json_response())
    ctx = Context.with_timeout(Context(), 2.0)
    make_executor(handler, config=make_config(timeout=7.0)).execute("GET", "/zones", ctx=ctx)
    assert 0.0 < handler.requests[0].extensions["timeout"]["read"] <= 2.0


###############################
#     Tests for logging       #
###############################


def test_execute_debug_dump_redacts_secrets(caplog: pytest.LogCaptureFixture) -> None:
    """Test that debug dumps never contain credentials."""
    handler = RecordingHandler(json_response(200, envelope({"token": "secret-token-123"})))
    config = make_config(credentials=Credentials(api_token="secret-token-123"), debug=True)
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler, config=config).execute("POST", "/zones", {"name": "example.com"})

    assert "secret-token-123" not in caplog.text
    assert "Bearer [redacted]" in caplog.text
    assert caplog.text.count("[redacted]") >= 2
    assert f"POST {BASE_URL}/zones HTTP/1.1" in caplog.text
    assert "HTTP/1.1 200 OK" in caplog.text


def test_execute_debug_dump_retried_response_body(
    mock_sleep: Mock, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that the body of a retried response is included in the debug
    dump."""
    handler = RecordingHandler(
        json_response(
            503,
            envelope(success=False, errors=[{"code": 1000, "message": "Service temporarily down"}]),
        ),
        json_response(),
    )
    config = make_config(debug=True)
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler, config=config).execute("GET", "/zones")

    assert "HTTP/1.1 503 Service Unavailable" in caplog.text
    assert "Service temporarily down" in caplog.text
    assert handler.call_count == 2


def test_execute_no_debug_dump_by_default(caplog: pytest.LogCaptureFixture) -> None:
    """Test that requests are not dumped unless debug is enabled."""
    handler = RecordingHandler(json_response())
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler).execute("GET", "/zones")
    assert "HTTP/1.1" not in caplog.text
    assert "Bearer" not in caplog.text


def test_execute_structured_retry_events(mock_sleep: Mock, caplog: pytest.LogCaptureFixture) -> None:
    """Test that attempts are logged with structured fields."""
    handler = RecordingHandler(json_response(503), json_response())
    with caplog.at_level(logging.DEBUG, logger="flareapi"):
        make_executor(handler).execute("GET", "/zones")

    statuses = [r.status_code for r in caplog.records if hasattr(r, "status_code")]
    assert statuses[0] == 503
    assert statuses[-1] == 200
    sleeps = [r for r in caplog.records if hasattr(r, "sleep_time")]
    assert len(sleeps) == 1
    assert sleeps[0].attempt == 1
    assert sleeps[0].method == "GET"
    assert sleeps[0].path == "/zones"


def test_execute_uses_configured_logger(mock_sleep: Mock) -> None:
    """Test that executor events go to the configured logger."""
    log = Mock(spec=logging.Logger)
    log.isEnabledFor.return_value = True
    handler = RecordingHandler(json_response(500), json_response())
    make_executor(handler, config=make_config(logger=log)).execute("GET", "/zones")
    assert call(logging.DEBUG, ANY, extra=ANY) in log.log.call_args_list
