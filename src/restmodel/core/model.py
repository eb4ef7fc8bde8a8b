"""A single server-backed record with change tracking."""

import json
import weakref
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from loguru import logger

from restmodel.errors import ConfigurationError, RequestError
from restmodel.events import EventEmitter
from restmodel.ids import IdFactory, default_ids
from restmodel.models.request import TransportRequest, TransportResponse
from restmodel.protocols import TransportProtocol
from restmodel.transport import build_request, default_transport

if TYPE_CHECKING:
    from restmodel.core.collection import Collection

NO_URL_MESSAGE = "No url or invalid url specified for fetch"


def same_value(a: Any, b: Any) -> bool:
    """Strict equality: ``1``, ``1.0`` and ``True`` are all different values."""
    return type(a) is type(b) and a == b


class Model:
    """One record of a REST resource.

    Attributes live in ``attributes``. Every ``set`` that changes a value
    records the value it replaced in ``changed``; ``get_changes`` turns that
    into a partial-update payload. ``changed`` is emptied after a successful
    ``fetch`` or ``save``, so it describes local edits not yet synced.

    Events (see ``events``): ``change(model, key)``, ``changed(model, changed)``,
    ``sync(model)``, ``destroy(model)``, ``remove(model)``,
    ``invalid.fetch(model)``.
    """

    id_attribute: str = "id"

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        *,
        url: str | None = None,
        id_attribute: str | None = None,
        page: int = 0,
        collection: "Collection | None" = None,
        transport: TransportProtocol | None = None,
        ids: IdFactory | None = None,
        **options: Any,
    ) -> None:
        self.options = dict(options)
        self.cid = (ids or default_ids)("model")
        if id_attribute:
            self.id_attribute = id_attribute
        self.attributes: dict[str, Any] = {}
        self.changed: dict[str, Any] = {}
        self.events = EventEmitter()
        # Own endpoint; takes precedence over the collection's.
        self.url = url
        # Page of the owning collection this record was loaded on; 0 means none.
        self.page = page
        self._collection: weakref.ReferenceType[Collection] | None = None
        self.collection = collection
        self._transport = transport

        self.set(attributes or {})
        self.changed.clear()

    @classmethod
    def extend(cls, name: str | None = None, **overrides: Any) -> type["Model"]:
        """Return a subclass with ``overrides`` as class attributes/methods."""
        return type(name or cls.__name__, (cls,), overrides)

    @property
    def collection(self) -> "Collection | None":
        return self._collection() if self._collection is not None else None

    @collection.setter
    def collection(self, value: "Collection | None") -> None:
        self._collection = weakref.ref(value) if value is not None else None

    @property
    def transport(self) -> TransportProtocol:
        if self._transport is not None:
            return self._transport
        collection = self.collection
        if collection is not None:
            return collection.transport
        return default_transport()

    @transport.setter
    def transport(self, value: TransportProtocol | None) -> None:
        self._transport = value

    @property
    def id(self) -> Any:
        return self.attributes.get(self.id_attribute)

    def is_new(self) -> bool:
        return self.attributes.get(self.id_attribute) is None

    def to_json(self) -> dict[str, Any]:
        return dict(self.attributes)

    def __str__(self) -> str:
        return json.dumps(self.to_json())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cid={self.cid!r}, attributes={self.attributes!r})"

    def get_url(self) -> str:
        """Return the URL for this record.

        New records use the base URL; saved ones append their id, as in
        ``/items/7/``.

        Raises:
            ConfigurationError: neither the model nor its collection has a URL.
        """
        collection = self.collection
        base_url = self.url or (collection.url if collection is not None else None)
        if not base_url:
            msg = "URL is not set on model."
            raise ConfigurationError(msg)
        if self.is_new():
            return base_url
        if not base_url.endswith("/"):
            base_url += "/"
        return f"{base_url}{quote(str(self.id), safe='')}/"

    # Attributes

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> "Model":
        """Set one attribute, or several from a mapping.

        A value of None deletes the attribute. Emits ``change`` per modified
        key, then ``changed`` once if anything was modified.
        """
        attrs = dict(key) if isinstance(key, Mapping) else {key: value}
        current = self.attributes
        modified = False

        for attr, val in attrs.items():
            old = current.get(attr)
            if same_value(old, val):
                continue
            self.changed[attr] = old
            if val is None:
                del current[attr]
            else:
                current[attr] = val
            modified = True
            self.events.emit("change", self, attr)

        if modified:
            self.events.emit("changed", self, self.changed)
        return self

    def get(self, *keys: str | Iterable[str]) -> Any:
        """Return one attribute, or a dict of several.

        ``get("a")`` returns the value; ``get("a", "b")`` and ``get(["a", "b"])``
        return ``{"a": ..., "b": ...}``. Missing keys give None.
        """
        if len(keys) == 1 and not isinstance(keys[0], str):
            names = list(keys[0])
        else:
            names = [str(k) for k in keys]
        if len(names) == 1:
            return self.attributes.get(names[0])
        return {name: self.attributes.get(name) for name in names}

    def remove(self, keys: str | Iterable[str]) -> "Model":
        if isinstance(keys, str):
            keys = [keys]
        return self.set({k: None for k in keys})

    def has_changed(self) -> bool:
        return bool(self.changed)

    def get_previous(self) -> dict[str, Any]:
        return self.changed

    def get_changes(self) -> dict[str, Any]:
        return {key: self.attributes.get(key) for key in self.changed}

    def clear_changed(self) -> None:
        self.changed.clear()

    def _replace_attributes(self, attrs: Mapping[str, Any]) -> None:
        stale = {key: None for key in self.attributes if key not in attrs}
        self.set({**stale, **attrs})

    # Sync

    def parse_response(self, body: Any) -> Mapping[str, Any]:
        """Turn a response body into attributes. Override for envelopes."""
        return body or {}

    async def sync(
        self, request: TransportRequest, transport: TransportProtocol | None = None
    ) -> TransportResponse:
        """Send ``request`` through ``transport``, by default the model's own."""
        return await (transport or self.transport).send(request)

    async def fetch(self, **options: Any) -> TransportResponse:
        """Reload attributes from the server, replacing the local ones.

        Raises:
            RequestError: 404 when no URL can be resolved (nothing is sent),
                or whatever the transport raised.
        """
        opts = {**self.options, **options}
        try:
            url = self.get_url()
        except ConfigurationError:
            url = ""
        request = build_request(url, "read", params=opts.get("params"))
        if not request.url:
            self.events.emit("invalid.fetch", self)
            raise RequestError(404, NO_URL_MESSAGE)

        logger.debug("Fetching model {} from {}", self.cid, request.url)
        response = await self.sync(request)
        self._replace_attributes(self.parse_response(response.body))
        self.clear_changed()
        self.events.emit("sync", self)
        return response

    async def save(
        self, attrs: Mapping[str, Any] | None = None, **options: Any
    ) -> TransportResponse:
        """Create, update or patch this record on the server.

        New records are created (POST). Saved ones are updated with the full
        attribute set (PUT), or with only the changed keys (PATCH) when
        ``patch=True``. The response is merged back into the attributes.
        """
        opts = {**self.options, **options}
        verb = "create" if self.is_new() else ("patch" if opts.get("patch") else "update")
        url = self.get_url()

        if attrs:
            self.set(attrs)
        payload = self.get_changes() if verb == "patch" else self.attributes
        request = build_request(url, verb, body=json.dumps(payload), params=opts.get("params"))

        logger.debug("Saving model {} ({} {})", self.cid, request.verb, request.url)
        response = await self.sync(request)
        self.set(self.parse_response(response.body))
        self.clear_changed()
        self.events.emit("sync", self)
        return response

    async def destroy(
        self, *, wait: bool | None = None, **options: Any
    ) -> TransportResponse | None:
        """Delete this record.

        Removal from the collection (and the ``destroy`` event) happens before
        the request, or after it succeeds when ``wait=True``. New records were
        never stored remotely, so they are removed without a request.
        """
        opts = {**self.options, **options}
        if wait is None:
            wait = bool(opts.get("wait"))

        if self.is_new():
            self._remove_from_collection()
            return None

        request = build_request(self.get_url(), "delete", params=opts.get("params"))
        # Removal clears the collection, and with it the inherited transport.
        transport = self.transport
        if not wait:
            self._remove_from_collection()

        logger.debug("Destroying model {} at {}", self.cid, request.url)
        response = await self.sync(request, transport)
        if wait:
            self._remove_from_collection()
        return response

    def _remove_from_collection(self) -> None:
        collection = self.collection
        if collection is not None:
            collection.remove(self)
        self.events.emit("destroy", self)
