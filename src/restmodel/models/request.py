"""Request and response records exchanged with a transport."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TransportRequest:
    """A fully assembled request, ready to hand to a transport."""

    url: str
    verb: str
    content_type: str = "application/json"
    data_type: str = "json"
    body: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportResponse:
    """The decoded result of a successful request."""

    body: Any = None
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
