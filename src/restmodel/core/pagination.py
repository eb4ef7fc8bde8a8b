"""Pagination state, page URL construction and next/prev link discovery."""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode, urlsplit

from requests.structures import CaseInsensitiveDict
from requests.utils import parse_header_links

from restmodel.errors import ConfigurationError
from restmodel.models.request import TransportResponse

if TYPE_CHECKING:
    from restmodel.config import PaginationOptions

DEFAULT_LINK_HEADER = "Link"


@dataclass
class PageState:
    """Cursor bookkeeping for a collection.

    ``clean`` is True only while ``next``/``prev`` were computed for the
    current filters and ordering.
    """

    next: str | None = None
    prev: str | None = None
    clean: bool = False
    count: int = 0
    total_pages: int = 0
    current_page: int = 0


def _query_int(url: str | None, param: str | None) -> int | None:
    if not url or not param:
        return None
    values = parse_qs(urlsplit(url).query).get(param)
    if not values:
        return None
    try:
        return int(values[-1])
    except ValueError:
        return None


def page_from_url(url: str | None, page_param: str) -> int | None:
    """Return the page number embedded in ``url``, if any."""
    return _query_int(url, page_param)


def page_size_from_url(url: str | None, page_size_param: str | None) -> int | None:
    """Return the page size embedded in ``url``, if any."""
    return _query_int(url, page_size_param)


def _first_set(*values: Any) -> Any:
    # 0 is a valid page, so only None falls through.
    return next((v for v in values if v is not None), None)


def build_page_url(
    base_url: str | None,
    options: "PaginationOptions",
    *,
    old_url: str | None = None,
    update: Mapping[str, Any] | None = None,
    ordering: str = "",
    filters: Mapping[str, Any] | None = None,
) -> str:
    """Serialize page, page size, ordering and filters onto ``base_url``.

    Page and page size come from ``update`` first, then from ``old_url``,
    then from the configured defaults.

    Raises:
        ConfigurationError: ``base_url`` is not set.
    """
    if base_url is None:
        msg = "Collection url is not set."
        raise ConfigurationError(msg)

    update = update or {}
    page = _first_set(
        update.get("page"),
        page_from_url(old_url, options.page_query_param),
        options.page_start,
    )

    params: dict[str, Any] = {options.page_query_param: page}
    if options.page_size_param:
        params[options.page_size_param] = _first_set(
            update.get("page_size"),
            page_size_from_url(old_url, options.page_size_param),
            options.page_size,
        )
    if ordering:
        params[options.order_param] = ordering
    params.update(filters or {})

    separator = "&" if "?" in base_url else "?"
    return base_url + separator + urlencode(params, doseq=True)


def total_pages(count: int, page_size: int) -> int:
    return math.ceil(count / page_size)


def parse_response_link(body: Any) -> dict[str, str | None]:
    """Read next/prev links from the ``next``/``prev`` fields of the body."""
    if not isinstance(body, Mapping):
        return {"next": None, "prev": None}
    return {"next": body.get("next") or None, "prev": body.get("prev") or None}


def parse_header_link(
    header_name: str | None, response: TransportResponse
) -> dict[str, str | None]:
    """Read next/prev links from an RFC 5988 style ``Link`` header.

    The header looks like ``<url>; rel="next", <url>; rel="prev"``.
    """
    headers = CaseInsensitiveDict(response.headers)
    value = headers.get(header_name or DEFAULT_LINK_HEADER) or ""
    links: dict[str, str | None] = {"next": None, "prev": None}
    for link in parse_header_links(value):
        rel = link.get("rel")
        if rel in ("prev", "previous"):
            links["prev"] = link.get("url") or None
        elif rel == "next":
            links["next"] = link.get("url") or None
    return links
