"""HTTP transport built on requests, and CRUD verb mapping."""

import asyncio
import dataclasses
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import requests
from loguru import logger

from restmodel.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, USER_AGENT
from restmodel.errors import InvalidVerbError, TransportError
from restmodel.models.request import TransportRequest, TransportResponse

HTTP_VERBS: frozenset[str] = frozenset({"POST", "GET", "PUT", "DELETE", "PATCH", "HEAD"})

# CRUD verbs used by models and collections, mapped to HTTP verbs.
METHOD_MAP: dict[str, str] = {
    "create": "POST",
    "read": "GET",
    "update": "PUT",
    "delete": "DELETE",
    "patch": "PATCH",
}


def resolve_verb(verb: str) -> str:
    """Return the HTTP verb for an HTTP or CRUD verb.

    Raises:
        InvalidVerbError: ``verb`` is neither.
    """
    if verb.upper() in HTTP_VERBS:
        return verb.upper()
    try:
        return METHOD_MAP[verb.lower()]
    except KeyError:
        msg = f"Expected a CRUD or HTTP verb, got {verb!r}"
        raise InvalidVerbError(msg) from None


def build_request(
    url: str,
    verb: str,
    *,
    body: str | None = None,
    params: Mapping[str, Any] | None = None,
) -> TransportRequest:
    """Assemble a request; ``params`` override any field, verb included.

    Raises:
        InvalidVerbError: the final verb is not recognized.
    """
    request = TransportRequest(url=url, verb=verb, body=body)
    if params:
        request = dataclasses.replace(request, **params)
    return dataclasses.replace(request, verb=resolve_verb(request.verb))


class RequestsTransport:
    """Send requests with a shared requests.Session.

    The blocking call runs in a worker thread so callers can await it.
    """

    def __init__(
        self,
        *,
        base_url: str | None = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.sess = session or requests.Session()
        self.sess.headers.setdefault("User-Agent", USER_AGENT)

    def absolute_url(self, url: str) -> str:
        if self.base_url:
            return urljoin(self.base_url, url)
        return url

    async def send(self, request: TransportRequest) -> TransportResponse:
        return await asyncio.to_thread(self._send_blocking, request)

    def _send_blocking(self, request: TransportRequest) -> TransportResponse:
        url = self.absolute_url(request.url)
        headers = {"Accept": "application/json", **request.headers}
        if request.body is not None:
            headers["Content-Type"] = request.content_type

        logger.debug("Making request: {} {}", request.verb, url)
        try:
            r = self.sess.request(
                request.verb,
                url,
                data=request.body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(0, str(e)) from e

        if not r.ok:
            msg = r.text or r.reason or "request failed"
            logger.debug("Request failed: {} {} -> {}", request.verb, url, r.status_code)
            raise TransportError(r.status_code, msg)

        return TransportResponse(
            body=_decode_body(r, request.data_type),
            status=r.status_code,
            headers=r.headers,
        )


def _decode_body(r: requests.Response, data_type: str) -> Any:
    if not r.content:
        return None
    if data_type != "json":
        return r.text
    try:
        return r.json()
    except ValueError as e:
        msg = f"Invalid JSON in response from {r.url!r}"
        raise TransportError(r.status_code, msg) from e


_default_transport: RequestsTransport | None = None


def default_transport() -> RequestsTransport:
    """Return the shared transport used when none is injected."""
    global _default_transport
    if _default_transport is None:
        _default_transport = RequestsTransport()
    return _default_transport
