"""Fake implementations for testing models and collections."""

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from restmodel.errors import TransportError
from restmodel.models.request import TransportRequest, TransportResponse


class FakeTransport:
    """In-memory fake for RequestsTransport.

    Replays queued responses in order and records every request for
    assertions. A response may be held back until an ``asyncio.Event`` is set.
    """

    def __init__(self) -> None:
        self.requests: list[TransportRequest] = []
        self.on_send: Callable[[TransportRequest], None] | None = None
        self._queue: list[tuple[TransportResponse | Exception, asyncio.Event | None]] = []

    def add_response(
        self,
        body: Any = None,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        """Queue a successful response."""
        response = TransportResponse(body=body, status=status, headers=dict(headers or {}))
        self._queue.append((response, gate))

    def add_error(self, status: int, message: str) -> None:
        """Queue a transport failure."""
        self._queue.append((TransportError(status, message), None))

    @property
    def urls(self) -> list[str]:
        return [r.url for r in self.requests]

    async def send(self, request: TransportRequest) -> TransportResponse:
        """Return the next queued response and record the request."""
        self.requests.append(request)
        if self.on_send is not None:
            self.on_send(request)
        if not self._queue:
            msg = f"FakeTransport: no response queued for {request.verb} {request.url!r}"
            raise KeyError(msg)
        result, gate = self._queue.pop(0)
        if gate is not None:
            await gate.wait()
        if isinstance(result, Exception):
            raise result
        return result


def page_body(
    ids: list[int], *, count: int = 5, next: str | None = None, prev: str | None = None
) -> dict[str, Any]:
    """Build a paginated response body holding one record per id."""
    return {
        "count": count,
        "next": next,
        "prev": prev,
        "results": [{"id": i, "name": f"item-{i}"} for i in ids],
    }
