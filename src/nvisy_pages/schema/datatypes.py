"""Data types flowing through the paging layer.

- `Page` is one batch read from a source collection
- `MaterializedPage` is a stored page read back from a destination collection
- `DocumentSnapshot` and `QuerySnapshot` are what a collection returns for a query
"""

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, Field

# JSON-compatible value type for metadata.
type JsonValue = str | int | float | bool | None | list["JsonValue"] | dict[str, "JsonValue"]

# Metadata attached to a page, also used as an equality filter when reading back.
type Metadata = dict[str, JsonValue]

# Document content as returned by the store. Never inspected, only forwarded.
type DocumentData = dict[str, Any]


class Page(BaseModel, frozen=True):
    """A batch of documents read from a source collection.

    `model_dump()` of a page is exactly the persisted materialized entry.
    """

    cursor: str | None = None
    """Identifier of the last document in this page."""

    data: list[DocumentData] = Field(default_factory=list)
    """Document data in source query order."""

    metadata: Metadata | None = None
    """Caller metadata, plus `pageNumber` when produced by the page reader."""


class MaterializedPage(BaseModel, frozen=True):
    """A page read back from a materialized collection."""

    data: list[DocumentData] = Field(default_factory=list)
    metadata: Metadata | None = None


class DocumentSnapshot(BaseModel, frozen=True):
    """A single document returned by a query."""

    id: str
    data: DocumentData = Field(default_factory=dict)


class QuerySnapshot(BaseModel, frozen=True):
    """The documents matched by one query, in query order."""

    docs: list[DocumentSnapshot] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.docs

    def __len__(self) -> int:
        return len(self.docs)

    def __iter__(self) -> Iterator[DocumentSnapshot]:  # pyright: ignore[reportIncompatibleMethodOverride]
        return iter(self.docs)
