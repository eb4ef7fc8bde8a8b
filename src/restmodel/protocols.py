"""Protocols for dependency injection of the network layer."""

from typing import Protocol, runtime_checkable

from restmodel.models.request import TransportRequest, TransportResponse


@runtime_checkable
class TransportProtocol(Protocol):
    """Protocol for transports used by models and collections."""

    async def send(self, request: TransportRequest) -> TransportResponse:
        """Perform the request and return the decoded response.

        Raises:
            TransportError: the request failed; carries status and message.
        """
        ...
