"""Client-side models and paginated collections synced with a REST resource."""

from restmodel.config import PaginationOptions
from restmodel.core.collection import Collection
from restmodel.core.model import Model
from restmodel.errors import (
    ConfigurationError,
    InvalidVerbError,
    RequestError,
    SyncError,
    TransportError,
)
from restmodel.events import EventEmitter
from restmodel.ids import IdFactory
from restmodel.models.request import TransportRequest, TransportResponse
from restmodel.protocols import TransportProtocol
from restmodel.transport import RequestsTransport

__all__ = [
    "Collection",
    "ConfigurationError",
    "EventEmitter",
    "IdFactory",
    "InvalidVerbError",
    "Model",
    "PaginationOptions",
    "RequestError",
    "RequestsTransport",
    "SyncError",
    "TransportError",
    "TransportProtocol",
    "TransportRequest",
    "TransportResponse",
]
