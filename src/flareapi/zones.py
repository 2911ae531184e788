r"""Zone listing and zone id lookup by name.

These are the only resource operations shipped with the core: every other
resource module is built on ``Client.execute`` and ``paginate`` the same
way ``list_zones`` is.
"""

from __future__ import annotations

__all__ = [
    "ERR_AMBIGUOUS_ZONE",
    "ERR_ZONE_NOT_FOUND",
    "ERR_ZONE_WITHOUT_ID",
    "ListZonesParams",
    "ZONES_PER_PAGE",
    "list_zones",
    "normalize_zone_name",
    "zone_id_by_name",
]

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flareapi.envelope import ResultInfo
from flareapi.exceptions import ZoneLookupError
from flareapi.pagination import paginate
from flareapi.uri import query_field

if TYPE_CHECKING:
    from flareapi.client import Client
    from flareapi.context import Context

logger: logging.Logger = logging.getLogger(__name__)

ZONES_PER_PAGE = 50

ERR_ZONE_NOT_FOUND = "zone could not be found"
ERR_AMBIGUOUS_ZONE = "ambiguous zone name; an account ID might help"
ERR_ZONE_WITHOUT_ID = "zone lookup returned a zone without an id"


@dataclass(frozen=True)
class ListZonesParams:
    """Filters of the zone list endpoint.

    Example:
        ```pycon
        >>> from flareapi.envelope import ResultInfo
        >>> from flareapi.uri import build_uri
        >>> from flareapi.zones import ListZonesParams
        >>> params = ListZonesParams(name="example.com", result_info=ResultInfo(per_page=5))
        >>> build_uri("/zones", params)
        '/zones?name=example.com&per_page=5'

        ```
    """

    name: str = query_field("name", default="")
    account_id: str = query_field("account.id", default="")
    status: str = query_field("status", default="")
    result_info: ResultInfo = query_field(default_factory=ResultInfo)


def normalize_zone_name(name: str) -> str:
    """Convert a zone name to its ASCII (punycode) form.

    Names that cannot be converted are returned unchanged.

    Example:
        ```pycon
        >>> from flareapi.zones import normalize_zone_name
        >>> normalize_zone_name("bücher.example")
        'xn--bcher-kva.example'
        >>> normalize_zone_name("example.com")
        'example.com'

        ```
    """
    try:
        return name.encode("idna").decode("ascii")
    except UnicodeError:
        logger.debug(f"Zone name {name!r} could not be converted to ASCII")
        return name


def list_zones(
    client: Client,
    params: ListZonesParams | None = None,
    *,
    ctx: Context | None = None,
) -> tuple[list[dict[str, Any]], ResultInfo]:
    """List the zones visible to the client credentials.

    All pages are fetched unless ``params.result_info`` selects one.

    Args:
        client: The API client.
        params: Optional filters.
        ctx: Optional call context.

    Returns:
        The zones as decoded JSON objects and the last ``ResultInfo``.
    """
    return paginate(
        client,
        "/zones",
        params if params is not None else ListZonesParams(),
        default_per_page=ZONES_PER_PAGE,
        ctx=ctx,
    )


def zone_id_by_name(
    client: Client,
    name: str,
    *,
    account_id: str = "",
    ctx: Context | None = None,
) -> str:
    """Resolve the id of a zone from its name.

    Args:
        client: The API client.
        name: The zone name. Internationalized names are converted to
            ASCII first.
        account_id: Optional account filter, used to disambiguate zones
            with the same name in several accounts.
        ctx: Optional call context.

    Returns:
        The zone id.

    Raises:
        ZoneLookupError: If no zone or several zones have this name, or
            if the matching zone carries no id.
        ApiError: If the list request fails.
    """
    params = ListZonesParams(name=normalize_zone_name(name), account_id=account_id)
    zones, _ = list_zones(client, params, ctx=ctx)
    if not zones:
        raise ZoneLookupError(ERR_ZONE_NOT_FOUND)
    if len(zones) > 1:
        raise ZoneLookupError(ERR_AMBIGUOUS_ZONE)
    zone = zones[0]
    zone_id = zone.get("id") if isinstance(zone, dict) else None
    if not zone_id or not isinstance(zone_id, str):
        raise ZoneLookupError(ERR_ZONE_WITHOUT_ID)
    return zone_id
