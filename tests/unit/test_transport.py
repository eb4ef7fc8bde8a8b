"""Tests for verb mapping and RequestsTransport."""

import asyncio
import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from restmodel.errors import InvalidVerbError, TransportError
from restmodel.models.request import TransportRequest
from restmodel.transport import RequestsTransport, build_request, resolve_verb


def _make_response(
    data: Any = None, *, status: int = 200, headers: dict[str, str] | None = None
) -> MagicMock:
    """Create a mock HTTP response with given JSON data."""
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.reason = "Error" if status >= 400 else "OK"
    response.content = json.dumps(data).encode() if data is not None else b""
    response.text = json.dumps(data) if data is not None else ""
    response.json.return_value = data
    response.headers = headers or {}
    response.url = "https://api.test/items"
    return response


@pytest.mark.parametrize(
    ("verb", "expected"),
    [
        ("get", "GET"),
        ("HEAD", "HEAD"),
        ("create", "POST"),
        ("read", "GET"),
        ("update", "PUT"),
        ("Delete", "DELETE"),
        ("patch", "PATCH"),
    ],
)
def test_resolve_verb(verb: str, expected: str) -> None:
    assert resolve_verb(verb) == expected


def test_resolve_verb_rejects_unknown() -> None:
    with pytest.raises(InvalidVerbError, match="CRUD or HTTP verb"):
        resolve_verb("upsert")


def test_build_request_applies_params() -> None:
    request = build_request(
        "/items", "read", params={"headers": {"X-Trace": "1"}, "verb": "head"}
    )

    assert request == TransportRequest(url="/items", verb="HEAD", headers={"X-Trace": "1"})


def test_send_returns_decoded_json() -> None:
    session = MagicMock()
    session.request.return_value = _make_response(
        {"results": []}, headers={"Link": "<x>; rel=next"}
    )
    transport = RequestsTransport(session=session, base_url=None)

    response = asyncio.run(transport.send(TransportRequest(url="/items", verb="GET")))

    assert response.body == {"results": []}
    assert response.status == 200
    assert response.headers == {"Link": "<x>; rel=next"}
    method, url = session.request.call_args[0]
    assert (method, url) == ("GET", "/items")


def test_send_joins_base_url_and_sets_content_type() -> None:
    session = MagicMock()
    session.request.return_value = _make_response({"id": 1}, status=201)
    transport = RequestsTransport(session=session, base_url="https://api.test/v1/")

    asyncio.run(
        transport.send(TransportRequest(url="items", verb="POST", body='{"a": 1}'))
    )

    call = session.request.call_args
    assert call[0][1] == "https://api.test/v1/items"
    assert call.kwargs["data"] == '{"a": 1}'
    assert call.kwargs["headers"]["Content-Type"] == "application/json"
    assert call.kwargs["timeout"] == transport.timeout


def test_send_empty_body_decodes_to_none() -> None:
    session = MagicMock()
    session.request.return_value = _make_response(None, status=204)
    transport = RequestsTransport(session=session)

    response = asyncio.run(transport.send(TransportRequest(url="/items/1/", verb="DELETE")))

    assert response.body is None
    assert response.status == 204


def test_send_raises_on_http_error() -> None:
    session = MagicMock()
    session.request.return_value = _make_response({"detail": "nope"}, status=404)
    transport = RequestsTransport(session=session)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(transport.send(TransportRequest(url="/items/9/", verb="GET")))

    assert excinfo.value.status == 404
    assert "nope" in excinfo.value.message


def test_send_maps_connection_errors_to_status_zero() -> None:
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("refused")
    transport = RequestsTransport(session=session)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(transport.send(TransportRequest(url="/items", verb="GET")))

    assert excinfo.value.status == 0
    assert "refused" in excinfo.value.message


def test_send_rejects_invalid_json() -> None:
    session = MagicMock()
    bad = _make_response({"x": 1})
    bad.json.side_effect = ValueError("bad json")
    session.request.return_value = bad
    transport = RequestsTransport(session=session)

    with pytest.raises(TransportError, match="Invalid JSON"):
        asyncio.run(transport.send(TransportRequest(url="/items", verb="GET")))


def test_default_session_is_created() -> None:
    with patch("restmodel.transport.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        transport = RequestsTransport()

    assert transport.sess is mock_session
