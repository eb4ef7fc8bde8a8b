"""Match incoming records against the models a collection already holds."""

from collections.abc import Iterable, Mapping
from typing import Any

from restmodel.core.model import Model, same_value


def candidate_id(item: Model | Mapping[str, Any], id_attribute: str) -> Any:
    """Return the server id carried by ``item``, or None."""
    if isinstance(item, Model):
        return None if item.is_new() else item.id
    return item.get(id_attribute)


def find_existing(
    models: Iterable[Model], item: Model | Mapping[str, Any], id_attribute: str
) -> Model | None:
    """Find the model ``item`` corresponds to.

    Records with an id match the first model with the same id. Model instances
    without an id fall back to matching by cid. Plain mappings without an id
    never match.
    """
    if isinstance(item, Model):
        id_attribute = item.id_attribute

    item_id = candidate_id(item, id_attribute)
    if item_id is not None:
        return next((m for m in models if same_value(m.get(id_attribute), item_id)), None)
    if isinstance(item, Model):
        return next((m for m in models if m.cid == item.cid), None)
    return None
