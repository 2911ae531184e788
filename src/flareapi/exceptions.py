r"""Typed errors raised by the API client.

Every failed call raises one ``ApiError`` subclass. The subclass and the
``error_type`` attribute identify the kind of failure, and the error
keeps the HTTP status, the server trace id and the envelope's errors and
messages verbatim so callers can dispatch on error codes.

Example:
    ```pycon
    >>> from flareapi.envelope import ResponseInfo
    >>> from flareapi.exceptions import ErrorType, NotFoundError
    >>> error = NotFoundError(
    ...     status_code=404, errors=[ResponseInfo(code=7003, message="Not found")]
    ... )
    >>> str(error)
    'Not found (7003)'
    >>> error.error_type is ErrorType.NOT_FOUND
    True

    ```
"""

from __future__ import annotations

__all__ = [
    "ERROR_TYPE_CLASSES",
    "ApiError",
    "AuthenticationError",
    "AuthorizationError",
    "BodyEncodeError",
    "EmptyCredentialsError",
    "ErrorType",
    "NotFoundError",
    "RateLimitError",
    "RequestError",
    "ServiceError",
    "TransportError",
    "ZoneLookupError",
    "new_api_error",
]

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flareapi.envelope import ResponseInfo


class ErrorType(str, enum.Enum):
    """Closed set of error kinds surfaced to callers."""

    REQUEST = "request"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    SERVICE = "service"
    TRANSPORT = "transport"


class ApiError(Exception):
    """Base class of all errors produced by the request executor.

    Args:
        status_code: The HTTP status code, or ``0`` if no response was
            received.
        ray_id: The server-assigned trace id (``cf-ray`` header), if any.
        errors: The structured errors of the response envelope.
        messages: The informational messages of the response envelope.
        message: Optional explicit message, used when the envelope carries
            no errors.
        cause: Optional underlying exception.
    """

    error_type: ErrorType = ErrorType.REQUEST

    def __init__(
        self,
        *,
        status_code: int = 0,
        ray_id: str = "",
        errors: Sequence[ResponseInfo] = (),
        messages: Sequence[ResponseInfo] = (),
        message: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.status_code = status_code
        self.ray_id = ray_id
        self.errors = list(errors)
        self.messages = list(messages)
        self.message = message
        self.cause = cause
        super().__init__(self._render())

    @property
    def error_codes(self) -> list[int]:
        """The codes of ``errors``, in server order."""
        return [e.code for e in self.errors]

    @property
    def error_messages(self) -> list[str]:
        """The messages of ``errors``, in server order."""
        return [e.message for e in self.errors]

    def _render(self) -> str:
        text = ", ".join(str(e) for e in self.errors) if self.errors else self.message
        # Messages mostly carry extra validation notes.
        notes = [m.message for m in self.messages]
        if notes:
            text += "\n" + "  \n".join(notes)
        return text

    def __str__(self) -> str:
        return self._render()

    def internal_error_code_is(self, code: int) -> bool:
        """Return whether ``code`` is one of the envelope error codes."""
        return code in self.error_codes

    def error_message_contains(self, text: str) -> bool:
        """Return whether any envelope error message contains ``text``."""
        return any(text in m for m in self.error_messages)

    def client_error(self) -> bool:
        """Return whether the error was caused by the client (4xx)."""
        return 400 <= self.status_code < 500

    def client_rate_limited(self) -> bool:
        """Return whether the client sent too many requests."""
        return self.error_type is ErrorType.RATE_LIMIT


class RequestError(ApiError):
    """Raised for 4xx responses not covered by a more specific error
    (generally bad payloads)."""

    error_type = ErrorType.REQUEST


class AuthenticationError(ApiError):
    """Raised for HTTP 403 responses."""

    error_type = ErrorType.AUTHENTICATION


class AuthorizationError(ApiError):
    """Raised for HTTP 401 responses."""

    error_type = ErrorType.AUTHORIZATION


class NotFoundError(ApiError):
    """Raised for HTTP 404 responses."""

    error_type = ErrorType.NOT_FOUND


class RateLimitError(ApiError):
    """Raised for HTTP 429 responses once the retry budget is spent."""

    error_type = ErrorType.RATE_LIMIT


class ServiceError(ApiError):
    """Raised for 5xx responses."""

    error_type = ErrorType.SERVICE


class TransportError(ApiError):
    """Raised when no usable response was obtained.

    This covers connection failures, undecodable bodies and cancellation
    of the call context. The underlying exception is available as
    ``cause`` and as ``__cause__``.
    """

    error_type = ErrorType.TRANSPORT


ERROR_TYPE_CLASSES: dict[ErrorType, type[ApiError]] = {
    ErrorType.REQUEST: RequestError,
    ErrorType.AUTHENTICATION: AuthenticationError,
    ErrorType.AUTHORIZATION: AuthorizationError,
    ErrorType.NOT_FOUND: NotFoundError,
    ErrorType.RATE_LIMIT: RateLimitError,
    ErrorType.SERVICE: ServiceError,
    ErrorType.TRANSPORT: TransportError,
}


def new_api_error(error_type: ErrorType, **kwargs: object) -> ApiError:
    """Create the error variant matching ``error_type``.

    Example:
        ```pycon
        >>> from flareapi.exceptions import ErrorType, RateLimitError, new_api_error
        >>> error = new_api_error(ErrorType.RATE_LIMIT, status_code=429)
        >>> isinstance(error, RateLimitError)
        True

        ```
    """
    return ERROR_TYPE_CLASSES[error_type](**kwargs)


class EmptyCredentialsError(ValueError):
    """Raised when a client is constructed with an empty secret."""


class BodyEncodeError(TypeError):
    """Raised when a request body cannot be serialized to JSON."""


class ZoneLookupError(LookupError):
    """Raised when a zone name does not resolve to exactly one zone id."""
