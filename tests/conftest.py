"""Shared fixtures: an in-memory store with a seeded source collection."""

from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from nvisy_pages.providers.memory import MemoryCollection, MemoryProvider
from nvisy_pages.query import Query
from nvisy_pages.schema.datatypes import DocumentData, QuerySnapshot


class StoreUnavailable(Exception):
    """Failure raised by FlakyCollection."""


class FlakyCollection:
    """Wraps a collection, records every call and fails on a chosen one."""

    def __init__(
        self,
        inner: MemoryCollection,
        fail_get_at: int | None = None,
        fail_add_at: int | None = None,
        calls: list[str] | None = None,
    ) -> None:
        self.inner = inner
        self.fail_get_at = fail_get_at
        self.fail_add_at = fail_add_at
        self.calls = calls if calls is not None else []
        self.queries: list[Query] = []
        self.gets = 0
        self.adds = 0

    async def get(self, query: Query) -> QuerySnapshot:
        self.gets += 1
        self.calls.append("get")
        self.queries.append(query)
        if self.gets == self.fail_get_at:
            raise StoreUnavailable(f"get #{self.gets} failed")
        return await self.inner.get(query)

    async def add(self, data: DocumentData) -> str:
        self.adds += 1
        self.calls.append("add")
        if self.adds == self.fail_add_at:
            raise StoreUnavailable(f"add #{self.adds} failed")
        return await self.inner.add(data)


@pytest.fixture
def store() -> MemoryProvider:
    return MemoryProvider()


@pytest.fixture
def source(store: MemoryProvider) -> MemoryCollection:
    return store.collection("events")


@pytest.fixture
def destination(store: MemoryProvider) -> MemoryCollection:
    return store.collection("event_pages")


@pytest.fixture
def seed(source: MemoryCollection) -> Callable[..., Awaitable[list[dict[str, Any]]]]:
    """Insert `count` events, newest first, with ids sorting like their timestamps.

    Returns the events in ascending timestamp order.
    """

    async def _seed(count: int, **fields: Any) -> list[dict[str, Any]]:
        events = [
            {"timestamp": 1_700_000_000 + n * 60, "seq": n, **fields} for n in range(count)
        ]
        for n in reversed(range(count)):
            await source.set(f"event-{n:04d}", events[n])
        return events

    return _seed
