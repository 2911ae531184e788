r"""HTTP response classification.

This module turns a terminal HTTP response into either a success or one
of the typed errors of ``flareapi.exceptions``.
"""

from __future__ import annotations

__all__ = [
    "ERR_INTERNAL_SERVICE_ERROR",
    "ERR_UNMARSHAL_ERROR_BODY",
    "FILTER_VALIDATION_SUFFIX",
    "classify_status",
    "handle_response",
]

import json
import logging
from typing import TYPE_CHECKING

from flareapi.core.config import TRACE_ID_HEADER
from flareapi.envelope import ResponseEnvelope, ResponseInfo, parse_envelope
from flareapi.exceptions import ErrorType, ServiceError, TransportError, new_api_error

if TYPE_CHECKING:
    import httpx

logger: logging.Logger = logging.getLogger(__name__)

ERR_INTERNAL_SERVICE_ERROR = "internal service error"
ERR_UNMARSHAL_ERROR_BODY = "error unmarshalling the JSON response error body"

# The filter validation endpoint answers errors with a plain text body.
# TODO: replace this path match with a per-request "envelope off" flag.
FILTER_VALIDATION_SUFFIX = "/filters/validate-expr"


def classify_status(status_code: int) -> ErrorType:
    """Map a non-success HTTP status to an error kind.

    Example:
        ```pycon
        >>> from flareapi.utils.response import classify_status
        >>> classify_status(404)
        <ErrorType.NOT_FOUND: 'not_found'>
        >>> classify_status(409)
        <ErrorType.REQUEST: 'request'>

        ```
    """
    if status_code >= 500:
        return ErrorType.SERVICE
    return {
        401: ErrorType.AUTHORIZATION,
        403: ErrorType.AUTHENTICATION,
        404: ErrorType.NOT_FOUND,
        429: ErrorType.RATE_LIMIT,
    }.get(status_code, ErrorType.REQUEST)


def _success_envelope(response: httpx.Response, ray_id: str) -> ResponseEnvelope | None:
    # Some endpoints answer with raw content on success, only JSON objects
    # are checked against the envelope.
    if "json" not in response.headers.get("content-type", ""):
        return None
    try:
        data = json.loads(response.content)
    except ValueError:
        return None
    if not isinstance(data, dict) or data.get("success", True) is not False:
        return None
    try:
        return ResponseEnvelope.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise TransportError(
            status_code=response.status_code,
            ray_id=ray_id,
            message=f"{ERR_UNMARSHAL_ERROR_BODY}: {exc}",
            cause=exc,
        ) from exc


def handle_response(response: httpx.Response) -> None:
    """Raise the typed error matching a terminal response.

    The response body must already be read.

    Args:
        response: The terminal HTTP response.

    Raises:
        ApiError: The error variant matching the status code, carrying the
            envelope's errors and messages verbatim. A 2xx response whose
            JSON envelope reports ``"success": false`` raises a
            ``RequestError``.
        TransportError: If the error body is not a valid envelope.
    """
    status_code = response.status_code
    ray_id = response.headers.get(TRACE_ID_HEADER, "")
    method = response.request.method
    path = response.request.url.path

    if 200 <= status_code < 300:
        envelope = _success_envelope(response, ray_id)
        if envelope is None:
            return
        logger.debug(f"{method} request to {path} returned an unsuccessful envelope")
        raise new_api_error(
            ErrorType.REQUEST,
            status_code=status_code,
            ray_id=ray_id,
            errors=envelope.errors,
            messages=envelope.messages,
            message=f"request failed with HTTP status {status_code}",
        )

    logger.debug(f"{method} request to {path} failed with status {status_code}")

    if path.endswith(FILTER_VALIDATION_SUFFIX):
        raise new_api_error(
            classify_status(status_code),
            status_code=status_code,
            ray_id=ray_id,
            message=response.content.decode("utf-8", errors="replace"),
        )

    if status_code >= 500:
        raise ServiceError(
            status_code=status_code,
            ray_id=ray_id,
            errors=[ResponseInfo(message=ERR_INTERNAL_SERVICE_ERROR)],
        )

    try:
        envelope = parse_envelope(response.content)
    except (TypeError, ValueError) as exc:
        raise TransportError(
            status_code=status_code,
            ray_id=ray_id,
            message=f"{ERR_UNMARSHAL_ERROR_BODY}: {exc}",
            cause=exc,
        ) from exc

    raise new_api_error(
        classify_status(status_code),
        status_code=status_code,
        ray_id=ray_id,
        errors=envelope.errors,
        messages=envelope.messages,
        message=f"request failed with HTTP status {status_code}",
    )
