"""Parameter types for paged reads.

Params define how a traversal operates (batch sizes, metadata),
while contexts carry runtime state (cursors, page numbers).
"""

from pydantic import BaseModel, Field, PositiveInt

from nvisy_pages.schema.datatypes import Metadata


class PaginationParams(BaseModel, frozen=True):
    """Parameters for reading pages from a source collection."""

    batch_size: PositiveInt
    """Maximum number of documents per page."""

    metadata: Metadata | None = None
    """Base metadata merged into every page."""


class MaterializedParams(BaseModel, frozen=True):
    """Parameters for reading pages back from a materialized collection."""

    metadata_filter: Metadata = Field(default_factory=dict)
    """Exact-match filters on the stored metadata fields."""

    batch_size: PositiveInt | None = None
    """Maximum number of entries per query. None reads without a limit."""

    cursor_field: str = "cursor"
    """Stored field the entries are ordered by."""
