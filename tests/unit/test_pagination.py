"""Tests for page URL construction and link parsing."""

import pytest

from restmodel.config import PaginationOptions
from restmodel.core.pagination import (
    build_page_url,
    page_from_url,
    page_size_from_url,
    parse_header_link,
    parse_response_link,
    total_pages,
)
from restmodel.errors import ConfigurationError
from restmodel.models.request import TransportResponse


def test_build_page_url_uses_defaults() -> None:
    url = build_page_url("/items", PaginationOptions())

    assert url == "/items?page=1&page_size=20"


def test_build_page_url_serializes_ordering_then_filters() -> None:
    url = build_page_url(
        "/items",
        PaginationOptions(page_size=5),
        update={"page": 3},
        ordering="name,-created",
        filters={"status": "open", "tag": ["a", "b"]},
    )

    assert url == (
        "/items?page=3&page_size=5&ordering=name%2C-created&status=open&tag=a&tag=b"
    )


def test_build_page_url_reuses_page_and_size_from_old_url() -> None:
    url = build_page_url(
        "/items", PaginationOptions(), old_url="/items?page=4&page_size=50"
    )

    assert url == "/items?page=4&page_size=50"


def test_build_page_url_update_wins_over_old_url() -> None:
    url = build_page_url(
        "/items", PaginationOptions(), old_url="/items?page=4", update={"page": 2}
    )

    assert url == "/items?page=2&page_size=20"


def test_build_page_url_honors_custom_param_names() -> None:
    options = PaginationOptions(
        page_query_param="p", page_size_param=None, page_start=0, order_param="sort"
    )

    url = build_page_url("/items", options, ordering="name")

    assert url == "/items?p=0&sort=name"


def test_build_page_url_appends_to_existing_query() -> None:
    url = build_page_url("/items?format=json", PaginationOptions(page_size_param=None))

    assert url == "/items?format=json&page=1"


def test_build_page_url_requires_base_url() -> None:
    with pytest.raises(ConfigurationError):
        build_page_url(None, PaginationOptions())


def test_page_from_url() -> None:
    assert page_from_url("/items?page=3&page_size=10", "page") == 3
    assert page_size_from_url("/items?page=3&page_size=10", "page_size") == 10
    assert page_from_url("/items?homepage=9", "page") is None
    assert page_from_url("/items?page=abc", "page") is None
    assert page_from_url(None, "page") is None
    assert page_size_from_url("/items?page_size=10", None) is None


def test_total_pages_rounds_up() -> None:
    assert total_pages(5, 2) == 3
    assert total_pages(4, 2) == 2
    assert total_pages(0, 20) == 0


def test_parse_response_link() -> None:
    assert parse_response_link({"next": "/n", "prev": None}) == {"next": "/n", "prev": None}
    assert parse_response_link({}) == {"next": None, "prev": None}
    assert parse_response_link([1, 2]) == {"next": None, "prev": None}


def test_parse_header_link_reads_next_and_prev() -> None:
    response = TransportResponse(
        headers={
            "Link": '<https://api.test/items?page=3>; rel="next", '
            '<https://api.test/items?page=1>; rel="prev"'
        }
    )

    links = parse_header_link(None, response)

    assert links == {
        "next": "https://api.test/items?page=3",
        "prev": "https://api.test/items?page=1",
    }


def test_parse_header_link_missing_header() -> None:
    assert parse_header_link("X-Links", TransportResponse()) == {"next": None, "prev": None}


def test_parse_header_link_ignores_other_relations() -> None:
    response = TransportResponse(
        headers={"link": '</items?page=9>; rel="last", </items?page=2>; rel="next"'}
    )

    assert parse_header_link(None, response) == {"next": "/items?page=2", "prev": None}


def test_build_page_url_explicit_page_zero_wins() -> None:
    options = PaginationOptions(page_start=0)

    url = build_page_url("/items", options, old_url="/items?page=3&page_size=2", update={"page": 0})

    assert url == "/items?page=0&page_size=2"
