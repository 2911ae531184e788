r"""Resource scopes used to address account, zone and user endpoints.

Many operations exist at several levels of the API and only differ by
their URL prefix, e.g. ``/accounts/{id}/access/apps`` and
``/zones/{id}/access/apps``. A ``ResourceContainer`` carries the level
and identifier so that one operation can serve all of them.

Example:
    ```pycon
    >>> from flareapi.resource import account_identifier, scoped_path
    >>> rc = account_identifier("01a7362d577a6c3019a474fd6f485823")
    >>> scoped_path(rc, "access/apps")
    '/accounts/01a7362d577a6c3019a474fd6f485823/access/apps'
    >>> scoped_path(None, "zones")
    '/zones'

    ```
"""

from __future__ import annotations

__all__ = [
    "ResourceContainer",
    "RouteLevel",
    "account_identifier",
    "require_level",
    "scoped_path",
    "user_identifier",
    "zone_identifier",
]

import enum
from dataclasses import dataclass

ERR_MISSING_RESOURCE_IDENTIFIER = "required missing resource identifier"
ERR_REQUIRED_ACCOUNT_LEVEL = (
    "this endpoint requires using an account level resource container and identifiers"
)
ERR_REQUIRED_ZONE_LEVEL = (
    "this endpoint requires using a zone level resource container and identifiers"
)


class RouteLevel(str, enum.Enum):
    """Top-level collection an operation targets."""

    ACCOUNT = "accounts"
    ZONE = "zones"
    USER = "user"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResourceContainer:
    """Where an operation applies.

    Attributes:
        level: The top-level collection.
        identifier: The identifier of the account, zone or user. May be
            empty for the user level, which addresses the current user.
    """

    level: RouteLevel
    identifier: str = ""

    @property
    def prefix(self) -> str:
        """The URL prefix of the scope, e.g. ``/zones/{id}``.

        Raises:
            ValueError: If an account or zone scope has no identifier.
        """
        if not self.identifier:
            if self.level is RouteLevel.USER:
                return f"/{self.level}"
            raise ValueError(ERR_MISSING_RESOURCE_IDENTIFIER)
        return f"/{self.level}/{self.identifier}"


def account_identifier(identifier: str) -> ResourceContainer:
    """Return an account level scope."""
    return ResourceContainer(level=RouteLevel.ACCOUNT, identifier=identifier)


def zone_identifier(identifier: str) -> ResourceContainer:
    """Return a zone level scope."""
    return ResourceContainer(level=RouteLevel.ZONE, identifier=identifier)


def user_identifier(identifier: str = "") -> ResourceContainer:
    """Return a user level scope."""
    return ResourceContainer(level=RouteLevel.USER, identifier=identifier)


def scoped_path(scope: ResourceContainer | None, subpath: str) -> str:
    """Join a scope prefix and an endpoint sub-path.

    Args:
        scope: The scope, or ``None`` to address the API root.
        subpath: The path below the scope, with or without a leading slash.

    Returns:
        ``/{level}/{id}/{subpath}`` or ``/{subpath}``.
    """
    subpath = subpath.lstrip("/")
    if scope is None:
        return f"/{subpath}"
    return f"{scope.prefix}/{subpath}" if subpath else scope.prefix


def require_level(scope: ResourceContainer | None, *levels: RouteLevel) -> ResourceContainer:
    """Check that ``scope`` targets one of ``levels``.

    Args:
        scope: The scope passed by the caller.
        *levels: The levels the endpoint supports.

    Returns:
        The validated scope.

    Raises:
        ValueError: If the scope is missing, has no identifier, or targets
            an unsupported level.
    """
    if scope is None or (not scope.identifier and scope.level is not RouteLevel.USER):
        raise ValueError(ERR_MISSING_RESOURCE_IDENTIFIER)
    if scope.level in levels:
        return scope
    if levels == (RouteLevel.ACCOUNT,):
        raise ValueError(ERR_REQUIRED_ACCOUNT_LEVEL)
    if levels == (RouteLevel.ZONE,):
        raise ValueError(ERR_REQUIRED_ZONE_LEVEL)
    msg = f'requested resource container ("{scope.level}") is not supported for this endpoint'
    raise ValueError(msg)
