"""Configuration constants and pagination options for restmodel."""

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from restmodel.core.pagination import parse_header_link, parse_response_link
from restmodel.models.request import TransportResponse

# Seconds before the default transport gives up on a request.
DEFAULT_TIMEOUT: float = float(os.environ.get("RESTMODEL_TIMEOUT", "30"))

# Prefix for relative resource URLs, used by the default transport and the CLI.
DEFAULT_BASE_URL: str | None = os.environ.get("RESTMODEL_BASE_URL") or None

USER_AGENT: str = "restmodel/0.1"

# Level for the stderr sink unless --verbose forces DEBUG.
LOG_LEVEL: str = os.environ.get("RESTMODEL_LOG_LEVEL", "INFO").upper()


@dataclass
class PaginationOptions:
    """How a collection names and walks its pages."""

    # Query parameter holding the page number.
    page_query_param: str = "page"
    # Query parameter holding the page size. Falsy: never sent.
    page_size_param: str | None = "page_size"
    page_size: int = 20
    page_start: int = 1
    page_increment: int = 1
    order_param: str = "ordering"
    # Look for next/prev links in a response header. A string names the header,
    # True means "Link". Ignored while response_link is enabled.
    header_link: bool | str = False
    parse_header_link: Callable[[str | None, TransportResponse], dict[str, str | None]] = (
        parse_header_link
    )
    # Look for next/prev links in the response body.
    response_link: bool = True
    parse_response_link: Callable[[Any], dict[str, str | None]] = parse_response_link
