"""Shared test fixtures."""

import pytest

from restmodel.core.collection import Collection
from restmodel.ids import IdFactory
from tests.unit.fakes import FakeTransport


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def ids() -> IdFactory:
    return IdFactory()


@pytest.fixture
def collection(transport: FakeTransport, ids: IdFactory) -> Collection:
    """Return an empty collection at /items with two records per page."""
    return Collection(url="/items", transport=transport, ids=ids, page_size=2)
