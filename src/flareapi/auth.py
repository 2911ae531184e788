r"""Authentication header selection.

The API accepts three credential schemes. The client has a default
``AuthMethod`` mask and every call may override it; each bit of the
mask attaches the headers of one scheme, so several schemes can be
combined on a single request.
"""

from __future__ import annotations

__all__ = ["AuthMethod", "Credentials", "apply_auth_headers"]

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


class AuthMethod(enum.IntFlag):
    """Bits selecting the authentication headers of a request."""

    KEY_EMAIL = 1
    USER_SERVICE = 2
    TOKEN = 4


@dataclass(frozen=True)
class Credentials:
    """Secrets used to authenticate requests.

    The secrets are excluded from ``repr`` so that a config can be logged
    safely.

    Attributes:
        api_key: Global API key, paired with ``api_email``.
        api_email: Email of the account owning ``api_key``.
        user_service_key: User service key.
        api_token: Scoped API token sent as a bearer token.
    """

    api_key: str = field(default="", repr=False)
    api_email: str = field(default="", repr=False)
    user_service_key: str = field(default="", repr=False)
    api_token: str = field(default="", repr=False)

    def secrets(self) -> list[str]:
        """Return the non-empty secret values, longest first."""
        values = [self.api_key, self.api_email, self.api_token, self.user_service_key]
        return sorted((v for v in values if v), key=len, reverse=True)


def apply_auth_headers(
    headers: httpx.Headers, credentials: Credentials, auth_type: AuthMethod | int
) -> None:
    """Set the authentication headers selected by ``auth_type``.

    Args:
        headers: The outgoing headers, updated in place.
        credentials: The client credentials.
        auth_type: The auth mask of the request.

    Example:
        ```pycon
        >>> import httpx
        >>> from flareapi.auth import AuthMethod, Credentials, apply_auth_headers
        >>> headers = httpx.Headers()
        >>> apply_auth_headers(headers, Credentials(api_token="T"), AuthMethod.TOKEN)
        >>> headers["Authorization"]
        'Bearer T'

        ```
    """
    if auth_type & AuthMethod.KEY_EMAIL:
        headers["X-Auth-Key"] = credentials.api_key
        headers["X-Auth-Email"] = credentials.api_email
    if auth_type & AuthMethod.USER_SERVICE:
        headers["X-Auth-User-Service-Key"] = credentials.user_service_key
    if auth_type & AuthMethod.TOKEN:
        headers["Authorization"] = f"Bearer {credentials.api_token}"
