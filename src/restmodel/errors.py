"""Exceptions raised by models, collections and transports."""


class SyncError(Exception):
    """Base exception for synchronization errors."""


class RequestError(SyncError):
    """A request that failed, either locally or on the remote side.

    Local precondition failures (no URL, unknown page) use HTTP-like status
    codes so callers can treat them the same way as server failures.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class TransportError(RequestError):
    """The transport could not complete the request."""


class ConfigurationError(SyncError, TypeError):
    """A request cannot be built because the base URL is not set."""


class InvalidVerbError(SyncError, ValueError):
    """The request verb is neither an HTTP verb nor a CRUD verb."""
