"""Pydantic models shared by the paging operations and providers."""

from nvisy_pages.schema.contexts import MaterializedContext, PageContext
from nvisy_pages.schema.datatypes import (
    DocumentData,
    DocumentSnapshot,
    JsonValue,
    MaterializedPage,
    Metadata,
    Page,
    QuerySnapshot,
)
from nvisy_pages.schema.params import MaterializedParams, PaginationParams

__all__ = [
    # Contexts (runtime state)
    "MaterializedContext",
    "PageContext",
    # Params (configuration)
    "MaterializedParams",
    "PaginationParams",
    # Data types
    "DocumentData",
    "DocumentSnapshot",
    "JsonValue",
    "MaterializedPage",
    "Metadata",
    "Page",
    "QuerySnapshot",
]
