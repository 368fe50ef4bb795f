"""Materialized pagination over document collections."""

from nvisy_pages.errors import ErrorKind, PagesError
from nvisy_pages.pagination import (
    MaterializedPageReader,
    PageReader,
    PageWriter,
    materialize_pagination_results,
    read_materialized_items,
    read_materialized_pages,
    read_pages,
    save_page_to_collection,
)
from nvisy_pages.protocols import DataInput, DataOutput, DocumentCollection, Provider
from nvisy_pages.query import Query, limit, order_by, start_after, where
from nvisy_pages.schema import MaterializedPage, Metadata, Page

__all__ = [
    "DataInput",
    "DataOutput",
    "DocumentCollection",
    "ErrorKind",
    "MaterializedPage",
    "MaterializedPageReader",
    "Metadata",
    "Page",
    "PageReader",
    "PageWriter",
    "PagesError",
    "Provider",
    "Query",
    "limit",
    "materialize_pagination_results",
    "order_by",
    "read_materialized_items",
    "read_materialized_pages",
    "read_pages",
    "save_page_to_collection",
    "start_after",
    "where",
]
