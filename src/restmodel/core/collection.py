"""Ordered, paginated sets of models backed by one REST endpoint."""

import asyncio
import dataclasses
from collections.abc import Coroutine, Iterable, Iterator, Mapping
from typing import Any

from loguru import logger

from restmodel.config import PaginationOptions
from restmodel.core.identity import find_existing
from restmodel.core.model import NO_URL_MESSAGE, Model, same_value
from restmodel.core.pagination import PageState, build_page_url, page_from_url, total_pages
from restmodel.errors import RequestError
from restmodel.events import EventEmitter
from restmodel.ids import IdFactory, default_ids
from restmodel.models.request import TransportRequest, TransportResponse
from restmodel.protocols import TransportProtocol
from restmodel.transport import build_request, default_transport

Item = Model | Mapping[str, Any]


class Collection:
    """An ordered sequence of models, fetched a page at a time.

    The collection keeps ``next``/``prev`` links in ``state``. While the state
    is clean, ``fetch`` follows ``next``; once filters or ordering change the
    state is dirty and the next ``fetch`` starts over from the first page.

    Events: ``set``, ``reset``, ``sync``, ``pagesync(page, collection)``,
    ``invalid.fetch``, ``unknownpage.fetch``, ``invalidpage.fetch``.
    """

    model: type[Model] = Model

    def __init__(
        self,
        models: Iterable[Item] | None = None,
        *,
        url: str | None = None,
        model: type[Model] | None = None,
        transport: TransportProtocol | None = None,
        state: Mapping[str, Any] | None = None,
        pagination: PaginationOptions | None = None,
        ids: IdFactory | None = None,
        bootstrap: bool = False,
        **options: Any,
    ) -> None:
        self.ids = ids or default_ids
        self.cid = self.ids("collection")
        self.options = dataclasses.replace(pagination or PaginationOptions(), **options)
        self.url = url
        if model is not None:
            self.model = model
        self.models: list[Model] = []
        self.events = EventEmitter()
        self.state = PageState(**(state or {}))
        self.filters: dict[str, Any] = {}
        self.ordering: list[str] = []
        self._transport = transport
        # Token of the latest fetch issued, and of the latest one applied.
        self._generation = 0
        self._applied = 0
        self._tasks: set[asyncio.Task[list[Model]]] = set()

        if models:
            self.set(models, bootstrap=bootstrap)

    @classmethod
    def extend(cls, name: str | None = None, **overrides: Any) -> type["Collection"]:
        """Return a subclass with ``overrides`` as class attributes/methods."""
        return type(name or cls.__name__, (cls,), overrides)

    @property
    def transport(self) -> TransportProtocol:
        return self._transport if self._transport is not None else default_transport()

    @transport.setter
    def transport(self, value: TransportProtocol | None) -> None:
        self._transport = value

    @property
    def id_attribute(self) -> str:
        return self.model.id_attribute

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[Model]:
        return iter(self.models)

    def to_json(self) -> list[dict[str, Any]]:
        return [m.to_json() for m in self.models]

    # Fetching

    async def sync(self, request: TransportRequest) -> TransportResponse:
        return await self.transport.send(request)

    async def fetch(self, url: str | None = None, **options: Any) -> list[Model]:
        """Fetch a page and merge its records.

        A dirty collection is reset and starts again from the first page; a
        clean one follows ``state.next``. An explicit ``url`` is fetched as is.

        Returns:
            The models the response was merged into. Empty if a newer fetch was
            issued while this one was in flight; its response is discarded.

        Raises:
            RequestError: 404 when there is no URL to fetch (nothing is sent),
                or whatever the transport raised.
            ConfigurationError: the collection has no base URL to rebuild from.
        """
        if not self.state.clean:
            self.reset()
            if url is None:
                self.rebuild_next({})
        if url is None:
            url = self.state.next

        if not url:
            self.events.emit("invalid.fetch", self)
            raise RequestError(404, NO_URL_MESSAGE)

        request = build_request(url, "read", params=options.get("params"))
        self._generation += 1
        generation = self._generation

        logger.debug("Fetching collection {} from {}", self.cid, request.url)
        response = await self.sync(request)
        if generation != self._generation:
            logger.warning("Discarding stale response for {} from {}", self.cid, request.url)
            return []

        self._applied = generation
        current_page = page_from_url(request.url, self.options.page_query_param)
        if current_page is None:
            current_page = self.options.page_start
        results = self.parse_response(response)

        self.update_state(clean=True, current_page=current_page)
        models = self.set(results)
        self.events.emit("sync", self)
        return models

    async def fetch_next(self, **options: Any) -> list[Model]:
        return await self.fetch(**options)

    async def fetch_prev(self, **options: Any) -> list[Model]:
        return await self.fetch(self.state.prev, **options)

    async def fetch_page(self, page: int, **options: Any) -> list[Model]:
        """Fetch a specific page. Needs ``total_pages`` from an earlier fetch.

        Raises:
            RequestError: 400 when the page count is unknown, 404 when ``page``
                is out of range. Nothing is sent in either case.
        """
        opts = self.options
        if not self.state.total_pages:
            self.events.emit("unknownpage.fetch", self)
            raise RequestError(400, "Unable to calculate total pages.")
        if page < opts.page_start or page > self.state.total_pages:
            self.events.emit("invalidpage.fetch", self)
            raise RequestError(404, "Page requested out of range for current set.")

        prev_page = page - opts.page_increment
        self.update_state(
            next={"page": page},
            prev=None if prev_page < opts.page_start else {"page": prev_page},
        )

        generation = self._generation + 1
        models = await self.fetch(self.state.next, **options)
        if self._applied == generation:
            self.events.emit("pagesync", page, self)
        return models

    def parse_response(self, response: TransportResponse) -> list[Any]:
        """Update the state from ``response`` and return its records.

        Expects a body like ``{"count": 5, "next": ..., "prev": ...,
        "results": [...]}``.
        """
        self.update_state_from_response(response)
        body = response.body
        if isinstance(body, Mapping):
            return list(body.get("results") or [])
        return list(body or [])

    def update_state_from_response(self, response: TransportResponse) -> None:
        opts = self.options
        body = response.body if isinstance(response.body, Mapping) else {}
        updates: dict[str, Any] = {"clean": True}
        if body.get("count") is not None:
            updates["count"] = body["count"]

        if opts.response_link:
            updates.update(opts.parse_response_link(body))
        elif opts.header_link:
            header_name = opts.header_link if isinstance(opts.header_link, str) else None
            updates.update(opts.parse_header_link(header_name, response))
        self.update_state(**updates)

    # Merging

    def set(
        self,
        items: Item | Iterable[Item],
        *,
        reset: bool = False,
        bootstrap: bool = False,
    ) -> list[Model]:
        """Merge records into the collection.

        Records matching an existing model (by id, or by cid for model
        instances) update it in place; the rest become new models of type
        ``self.model``. Every touched model is stamped with the current page.

        Args:
            items: Attribute mappings and/or models.
            reset: Empty the collection first.
            bootstrap: Treat the records as the first page, loaded without
                a request.

        Returns:
            The touched models, in input order.
        """
        if isinstance(items, (Model, Mapping)):
            items = [items]
        if reset:
            self.reset()
        if bootstrap:
            start = self.options.page_start
            self.update_state(clean=True, current_page=start)
            if self.url is not None:
                self.update_state(next={"page": start + self.options.page_increment})

        touched: list[Model] = []
        for item in items:
            existing = find_existing(self.models, item, self.id_attribute)
            if existing is not None:
                if isinstance(item, Model):
                    if item.url:
                        existing.url = item.url
                    existing.set(item.attributes)
                else:
                    existing.set(item)
                existing.page = self.state.current_page
                touched.append(existing)
                continue

            attrs = item.attributes if isinstance(item, Model) else item
            new_model = self.model(
                attrs,
                collection=self,
                page=self.state.current_page,
                ids=self.ids,
            )
            self.models.append(new_model)
            touched.append(new_model)

        logger.debug("Collection {} merged {} records", self.cid, len(touched))
        self.events.emit("set", self)
        return touched

    def add(self, item: Item) -> Model:
        """Add one record, marking the page state dirty."""
        self.set_collection_unclean()
        return self.set([item])[0]

    async def create(self, attrs: Mapping[str, Any], *, sync: bool = True, **options: Any) -> Model:
        """Add a new model and, unless ``sync=False``, save it to the server."""
        model = self.add(attrs)
        if sync:
            await model.save(**options)
        return model

    async def save(self, **options: Any) -> None:
        """Save every model in the collection.

        Every save runs to completion; if any failed, the first error is raised
        afterwards. Models saved successfully have no pending changes.
        """
        models = list(self.models)
        await self._run_all("save", models, [m.save(**options) for m in models])

    async def destroy(self, **options: Any) -> None:
        """Destroy every model in the collection on the server.

        Like :meth:`save`, waits for every request before raising the first
        error.
        """
        models = list(self.models)
        await self._run_all("destroy", models, [m.destroy(**options) for m in models])

    async def _run_all(
        self, action: str, models: list[Model], coros: list[Coroutine[Any, Any, Any]]
    ) -> None:
        results = await asyncio.gather(*coros, return_exceptions=True)
        errors: list[BaseException] = []
        for model, result in zip(models, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Failed to {} model {}: {}", action, model.cid, result)
                errors.append(result)
        if errors:
            raise errors[0]

    def remove(self, models: Any) -> list[Model]:
        """Drop models from the collection without touching the server.

        ``models`` may be a model, an id or cid, or a list of those.

        Returns:
            The removed models.
        """
        if isinstance(models, (Model, str, int)) or not isinstance(models, Iterable):
            models = [models]

        ids: list[Any] = []
        instances: set[int] = set()
        for m in models:
            if isinstance(m, Model):
                instances.add(id(m))
            else:
                ids.append(m)

        kept: list[Model] = []
        removed: list[Model] = []
        for model in self.models:
            if (
                id(model) in instances
                or model.cid in ids
                or (model.id is not None and any(same_value(model.id, i) for i in ids))
            ):
                removed.append(model)
            else:
                kept.append(model)
        self.models = kept

        for model in removed:
            if model.collection is self:
                model.collection = None
            model.events.emit("remove", model)
        return removed

    def reset(self) -> "Collection":
        """Remove all models and forget the page links.

        ``count`` and ``total_pages`` are kept.
        """
        self.models = []
        self.update_state(next=None, prev=None, clean=False, current_page=0)
        self.events.emit("reset", self)
        return self

    # Lookup

    def get(self, id_or_cid: Any) -> Model | None:
        for m in self.models:
            if m.cid == id_or_cid or (m.id is not None and same_value(m.id, id_or_cid)):
                return m
        return None

    def at(self, index: int) -> Model | None:
        try:
            return self.models[index]
        except IndexError:
            return None

    def where(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any) -> list[Model]:
        """Return the models whose attributes equal all the given ones."""
        wanted = {**(attrs or {}), **kwargs}
        return [
            m for m in self.models if all(same_value(m.get(k), v) for k, v in wanted.items())
        ]

    def where_one(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any) -> Model | None:
        matches = self.where(attrs, **kwargs)
        return matches[0] if matches else None

    def get_page(self, page: int) -> list[Model]:
        return [m for m in self.models if m.page == page]

    def get_page_range(self) -> tuple[int, int] | None:
        if not self.state.total_pages:
            return None
        return self.options.page_start, self.state.total_pages

    # State

    def update_state(self, **updates: Any) -> "Collection":
        """Apply ``updates`` to the page state.

        ``next``/``prev`` accept a URL, None, or a dict such as
        ``{"page": 3}`` that is rebuilt into a URL. ``count`` also updates
        ``total_pages`` when a page size is sent.
        """
        state = self.state
        if "next" in updates:
            self.rebuild_next(updates["next"])
        if "prev" in updates:
            self.rebuild_prev(updates["prev"])
        if "clean" in updates:
            state.clean = updates["clean"]
        if "current_page" in updates:
            state.current_page = updates["current_page"]
        if "count" in updates:
            state.count = updates["count"]
            if self.options.page_size_param and self.options.page_size > 0:
                state.total_pages = total_pages(state.count, self.options.page_size)
        return self

    def rebuild_url(self, old_url: str | None, update: Mapping[str, Any] | None = None) -> str:
        return build_page_url(
            self.url,
            self.options,
            old_url=old_url,
            update=update,
            ordering=self.get_ordering(),
            filters=self.get_filters(),
        )

    def rebuild_next(self, update: str | Mapping[str, Any] | None) -> None:
        if update is None or isinstance(update, str):
            self.state.next = update
        else:
            self.state.next = self.rebuild_url(self.state.next, update)

    def rebuild_prev(self, update: str | Mapping[str, Any] | None) -> None:
        if update is None or isinstance(update, str):
            self.state.prev = update
        else:
            self.state.prev = self.rebuild_url(self.state.prev, update)

    def set_collection_unclean(
        self, *, reset: bool = True, fetch: bool = False
    ) -> "asyncio.Task[list[Model]] | None":
        """Invalidate the page links after a filter or ordering change.

        With ``fetch=True`` a fetch is scheduled on the running event loop and
        its task is returned.
        """
        if reset:
            self.update_state(clean=False, next=None, prev=None)
        if not fetch:
            return None
        task = asyncio.get_running_loop().create_task(self.fetch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # Filters and ordering

    def add_filter(
        self, filters: Mapping[str, Any], *, reset: bool = True, fetch: bool = False
    ) -> "asyncio.Task[list[Model]] | None":
        """Add or override filters; they apply to every fetch until removed."""
        self.filters.update(filters)
        return self.set_collection_unclean(reset=reset, fetch=fetch)

    def remove_filter(
        self, keys: str | Iterable[str], *, reset: bool = True, fetch: bool = False
    ) -> "asyncio.Task[list[Model]] | None":
        if isinstance(keys, str):
            keys = [keys]
        for key in keys:
            self.filters.pop(key, None)
        return self.set_collection_unclean(reset=reset, fetch=fetch)

    def get_filters(self) -> dict[str, Any]:
        return self.filters

    def add_order(
        self, order: str, pos: int | None = None, *, reset: bool = True, fetch: bool = False
    ) -> "asyncio.Task[list[Model]] | None":
        """Insert an ordering token (``"name"`` or ``"-name"``) at ``pos``, default last."""
        if pos is None:
            pos = len(self.ordering)
        self.ordering.insert(pos, order)
        return self.set_collection_unclean(reset=reset, fetch=fetch)

    def remove_order(
        self, order: str | int, *, reset: bool = True, fetch: bool = False
    ) -> "asyncio.Task[list[Model]] | None":
        """Remove an ordering token by index, or by name with or without ``-``."""
        if isinstance(order, int):
            del self.ordering[order]
        elif order in self.ordering:
            self.ordering.remove(order)
        elif f"-{order}" in self.ordering:
            self.ordering.remove(f"-{order}")
        return self.set_collection_unclean(reset=reset, fetch=fetch)

    def get_ordering(self) -> str:
        return ",".join(self.ordering)
