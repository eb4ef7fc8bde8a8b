"""Minimal publish/subscribe channel used by models and collections."""

from collections import defaultdict
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    """Map event names to the callbacks listening for them.

    Listeners run synchronously, in subscription order, with the positional
    arguments given to :meth:`emit`.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, callback: Listener) -> Listener:
        """Subscribe ``callback`` to ``event``; returns the callback."""
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)
        return callback

    def once(self, event: str, callback: Listener) -> Listener:
        """Subscribe ``callback`` for a single emission of ``event``."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return callback(*args)

        return self.on(event, wrapper)

    def off(self, event: str, callback: Listener | None = None) -> None:
        """Unsubscribe one callback, or every callback when none is given."""
        if callback is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event)
        if listeners and callback in listeners:
            listeners.remove(callback)

    def emit(self, event: str, *args: Any) -> None:
        # Copy, so listeners may unsubscribe while we iterate.
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))
