"""Client-side identifiers for models and collections."""

import itertools


class IdFactory:
    """Hand out process-unique ids, optionally prefixed.

    Models and collections take a factory in their constructor, so tests can
    use a fresh one and get predictable ids.
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def __call__(self, prefix: str = "") -> str:
        return f"{prefix}{next(self._counter)}"


default_ids = IdFactory()
