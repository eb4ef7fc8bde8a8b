"""Command-line interface for browsing a REST resource."""

import asyncio
import json
from typing import Annotated, Any

import typer
from loguru import logger

from restmodel.config import DEFAULT_BASE_URL, PaginationOptions
from restmodel.core.collection import Collection
from restmodel.core.model import Model
from restmodel.errors import RequestError
from restmodel.logging_config import configure_logging
from restmodel.transport import RequestsTransport

app = typer.Typer(help="restmodel: page through and read records of a REST resource.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _parse_filters(values: list[str]) -> dict[str, str]:
    filters: dict[str, str] = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key:
            msg = f"Expected KEY=VALUE, got {value!r}"
            raise typer.BadParameter(msg, param_hint="--filter")
        filters[key] = val
    return filters


async def _list_records(
    collection: Collection, *, page: int | None, fetch_all: bool
) -> list[dict[str, Any]]:
    url = collection.rebuild_url(None, {"page": page}) if page is not None else None
    await collection.fetch(url)
    while fetch_all and collection.state.next:
        await collection.fetch()
    return collection.to_json()


@app.command(name="list")
def list_cmd(
    url: str = typer.Argument(..., help="Collection URL, e.g. /api/items/"),
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", "-b", help="Prefix for relative URLs"),
    ] = DEFAULT_BASE_URL,
    filters: Annotated[
        list[str] | None,
        typer.Option("--filter", "-f", help="Filter as KEY=VALUE (repeatable)"),
    ] = None,
    order: Annotated[
        list[str] | None,
        typer.Option("--order", "-o", help="Ordering field, '-' prefix for descending"),
    ] = None,
    page: Annotated[int | None, typer.Option("--page", "-p", help="Page to fetch")] = None,
    page_size: int = typer.Option(20, "--page-size", "-n", help="Records per page"),
    header_link: Annotated[
        str | None,
        typer.Option("--header-link", help="Read next/prev links from this response header"),
    ] = None,
    fetch_all: bool = typer.Option(False, "--all", "-a", help="Follow next links to the end"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List the records of a collection."""
    pagination = PaginationOptions(page_size=page_size)
    if header_link:
        pagination.response_link = False
        pagination.header_link = header_link

    collection = Collection(
        url=url,
        transport=RequestsTransport(base_url=base_url),
        pagination=pagination,
    )
    for token in order or []:
        collection.add_order(token)
    collection.add_filter(_parse_filters(filters or []))

    try:
        records = asyncio.run(_list_records(collection, page=page, fetch_all=fetch_all))
    except RequestError as e:
        logger.error("Request failed ({}): {}", e.status, e.message)
        raise typer.Exit(1) from None

    if output_json:
        data = {"count": collection.state.count, "results": records}
        typer.echo(json.dumps(data, indent=2))
        return
    for record in records:
        typer.echo(json.dumps(record, sort_keys=True))
    typer.echo(f"{len(records)} records (total {collection.state.count})")


@app.command()
def get(
    url: str = typer.Argument(..., help="Collection URL, e.g. /api/items/"),
    record_id: str = typer.Argument(..., metavar="ID", help="Record id"),
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", "-b", help="Prefix for relative URLs"),
    ] = DEFAULT_BASE_URL,
) -> None:
    """Fetch one record and print it as JSON."""
    model = Model({"id": record_id}, url=url, transport=RequestsTransport(base_url=base_url))
    try:
        asyncio.run(model.fetch())
    except RequestError as e:
        logger.error("Request failed ({}): {}", e.status, e.message)
        raise typer.Exit(1) from None
    typer.echo(json.dumps(model.to_json(), indent=2, sort_keys=True))
