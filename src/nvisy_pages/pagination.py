"""Materialized pagination over document collections.

Running a fully ordered query against a large collection is expensive when
it has to be repeated. This module flattens the result of such a query into
pre-computed pages stored in a second collection, which can then be read back
cheaply in their original order:

- `read_pages` pages through a source collection with a fixed batch size,
  resuming each query strictly after the last document of the previous page
- `save_page_to_collection` stores one page as a `{cursor, data, metadata}` entry
- `materialize_pagination_results` reads every page and stores it, one at a time
- `read_materialized_pages` reads the stored entries back, ordered by cursor,
  optionally restricted to entries whose metadata matches a filter

No operation retries, buffers more than one page, or spans pages with a
transaction: a failure of the underlying store propagates unchanged, and pages
already stored by an interrupted materialization stay in place.
"""

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import ClassVar

from nvisy_pages.errors import validated
from nvisy_pages.protocols import DocumentCollection
from nvisy_pages.query import (
    Limit,
    OrderBy,
    Query,
    QueryConstraint,
    StartAfter,
    Where,
)
from nvisy_pages.schema.contexts import MaterializedContext, PageContext
from nvisy_pages.schema.datatypes import (
    DocumentData,
    JsonValue,
    MaterializedPage,
    Metadata,
    Page,
)
from nvisy_pages.schema.params import MaterializedParams, PaginationParams

logger = logging.getLogger(__name__)

PAGE_NUMBER_FIELD = "pageNumber"
"""Metadata field holding the 1-based sequence number of a page."""


def _constraints(constraints: Query | Sequence[QueryConstraint]) -> tuple[QueryConstraint, ...]:
    if isinstance(constraints, Query):
        return constraints.constraints
    return tuple(constraints)


class PageReader:
    """Reads a source collection in pages of at most `batch_size` documents.

    Implements DataInput[Page, PageContext].
    """

    __slots__: ClassVar[tuple[str, str, str]] = ("_collection", "_constraints", "_params")

    _collection: DocumentCollection
    _constraints: tuple[QueryConstraint, ...]
    _params: PaginationParams

    def __init__(
        self,
        collection: DocumentCollection,
        constraints: Query | Sequence[QueryConstraint],
        params: PaginationParams,
    ) -> None:
        self._collection = collection
        self._constraints = _constraints(constraints)
        self._params = params

    def _query(self, ctx: PageContext) -> Query:
        batch = Limit(count=self._params.batch_size)
        current = validated(Query, constraints=(*self._constraints, batch))
        if ctx.cursor is not None:
            current = current.extend(StartAfter(document_id=ctx.cursor))
        return current

    def _metadata(self, page_number: int) -> Metadata:
        return {**(self._params.metadata or {}), PAGE_NUMBER_FIELD: page_number}

    async def read(self, ctx: PageContext | None = None) -> AsyncIterator[tuple[Page, PageContext]]:
        """Yield pages until a query comes back empty.

        Yields tuples of (page, context) where context can be used to resume
        reading from the next page if the stream is interrupted.
        """
        ctx = ctx or PageContext()
        while True:
            snapshot = await self._collection.get(self._query(ctx))
            if snapshot.empty:
                logger.debug("Source exhausted after %d pages", ctx.page_number - 1)
                return

            cursor = snapshot.docs[-1].id
            page = validated(
                Page,
                cursor=cursor,
                data=[doc.data for doc in snapshot],
                metadata=self._metadata(ctx.page_number),
            )
            logger.debug(
                "Read page %d with %d documents (cursor=%s)",
                ctx.page_number,
                len(snapshot),
                cursor,
            )
            ctx = PageContext(cursor=cursor, page_number=ctx.page_number + 1)
            yield page, ctx


class PageWriter:
    """Stores pages as materialized entries, one document per page.

    Implements DataOutput[Page].
    """

    __slots__: ClassVar[tuple[str]] = ("_collection",)

    _collection: DocumentCollection

    def __init__(self, collection: DocumentCollection) -> None:
        self._collection = collection

    async def write(self, items: Sequence[Page]) -> None:
        """Write pages in order, one insert at a time."""
        for page in items:
            _ = await save_page_to_collection(
                self._collection,
                page.data,
                page.cursor,
                page.metadata,
            )


class MaterializedPageReader:
    """Reads materialized entries back in stored cursor order.

    Implements DataInput[MaterializedPage, MaterializedContext].
    """

    __slots__: ClassVar[tuple[str, str]] = ("_collection", "_params")

    _collection: DocumentCollection
    _params: MaterializedParams

    def __init__(self, collection: DocumentCollection, params: MaterializedParams) -> None:
        self._collection = collection
        self._params = params

    def _query(self, bound: StartAfter | None) -> Query:
        constraints: list[QueryConstraint] = [OrderBy(field=self._params.cursor_field)]
        constraints.extend(
            Where(field=f"metadata.{key}", value=value)
            for key, value in self._params.metadata_filter.items()
        )
        if self._params.batch_size is not None:
            constraints.append(Limit(count=self._params.batch_size))
        if bound is not None:
            constraints.append(bound)
        return Query(constraints=tuple(constraints))

    @staticmethod
    def _resume(ctx: MaterializedContext) -> StartAfter | None:
        """Lower bound for the first query of a read.

        A fresh context has none, so entries with a null cursor are read too.
        A context handed back by the caller resumes after the exact entry it
        was yielded with, so entries sharing its cursor value are not skipped.
        """
        if not ctx.started:
            return None
        if ctx.document_id is not None:
            return StartAfter(document_id=ctx.document_id)
        return StartAfter(values=(ctx.cursor,))

    def _continue(self, ctx: MaterializedContext) -> StartAfter:
        """Lower bound for the queries that follow within one read."""
        if self._params.batch_size is None:
            return StartAfter(values=(ctx.cursor,))
        # Entries sharing a cursor value can straddle a limited batch.
        return StartAfter(document_id=ctx.document_id)

    async def read(
        self, ctx: MaterializedContext | None = None
    ) -> AsyncIterator[tuple[MaterializedPage, MaterializedContext]]:
        """Yield one stored page per entry until a query comes back empty.

        Yields tuples of (page, context) where context can be used to resume
        reading from the next entry if the stream is interrupted.
        """
        ctx = ctx or MaterializedContext()
        bound = self._resume(ctx)
        while True:
            snapshot = await self._collection.get(self._query(bound))
            if snapshot.empty:
                return

            logger.debug("Read %d materialized entries", len(snapshot))
            for doc in snapshot:
                ctx = MaterializedContext(
                    started=True,
                    cursor=doc.data.get(self._params.cursor_field),
                    document_id=doc.id,
                )
                page = validated(
                    MaterializedPage,
                    data=doc.data.get("data") or [],
                    metadata=doc.data.get("metadata"),
                )
                yield page, ctx
            bound = self._continue(ctx)


async def save_page_to_collection(
    collection: DocumentCollection,
    data: Sequence[DocumentData],
    cursor: str | None,
    metadata: Metadata | None = None,
) -> str:
    """Store one page of data with its cursor and metadata.

    Returns the identifier the store assigned to the new entry.
    """
    entry = validated(Page, cursor=cursor, data=list(data), metadata=metadata)
    document_id = await collection.add(entry.model_dump())
    logger.debug("Saved page with %d documents as %s", len(entry.data), document_id)
    return document_id


async def read_pages(
    constraints: Query | Sequence[QueryConstraint],
    collection: DocumentCollection,
    batch_size: int,
    metadata: Metadata | None = None,
) -> AsyncIterator[Page]:
    """Yield pages of at most `batch_size` documents from a collection.

    Each page carries the id of its last document as cursor, and the given
    metadata merged with a 1-based `pageNumber`. Every call starts a new
    traversal from the beginning of the query.
    """
    params = validated(PaginationParams, batch_size=batch_size, metadata=metadata)
    reader = PageReader(collection, constraints, params)
    async for page, _ in reader.read(PageContext()):
        yield page


async def materialize_pagination_results(
    constraints: Query | Sequence[QueryConstraint],
    source: DocumentCollection,
    destination: DocumentCollection,
    batch_size: int,
    metadata: Metadata | None = None,
) -> int:
    """Store every page of a query over `source` into `destination`.

    Pages are read and written strictly one after the other. Returns the
    number of pages written.
    """
    count = 0
    async for page in read_pages(constraints, source, batch_size, metadata):
        _ = await save_page_to_collection(destination, page.data, page.cursor, page.metadata)
        count += 1
    logger.info("Materialized %d pages", count)
    return count


async def read_materialized_pages(
    collection: DocumentCollection,
    metadata_filter: Mapping[str, JsonValue] | None = None,
    batch_size: int | None = None,
) -> AsyncIterator[MaterializedPage]:
    """Yield pages previously stored by `materialize_pagination_results`.

    Entries are read in stored cursor order, one yield per entry. With a
    metadata filter, only entries whose metadata equals every given
    key/value pair are returned.
    """
    params = validated(
        MaterializedParams,
        metadata_filter=dict(metadata_filter or {}),
        batch_size=batch_size,
    )
    reader = MaterializedPageReader(collection, params)
    async for page, _ in reader.read(MaterializedContext()):
        yield page


async def read_materialized_items(
    collection: DocumentCollection,
    metadata_filter: Mapping[str, JsonValue] | None = None,
    batch_size: int | None = None,
) -> AsyncIterator[DocumentData]:
    """Yield each document of each materialized page, in stored order."""
    async for page in read_materialized_pages(collection, metadata_filter, batch_size):
        for item in page.data:
            yield item
