"""Context types for paged reads.

Contexts carry the state needed to resume reading from a specific position.
They only track *where* to resume, not *how much* to read (that's in Params).
"""

from pydantic import BaseModel, Field

from nvisy_pages.schema.datatypes import JsonValue


class PageContext(BaseModel, frozen=True):
    """Context for reading pages from a live source collection."""

    cursor: str | None = None
    """Identifier of the last document already read."""

    page_number: int = Field(default=1, ge=1)
    """Sequence number assigned to the next page."""


class MaterializedContext(BaseModel, frozen=True):
    """Context for reading pages back from a materialized collection."""

    started: bool = False
    """Whether any entry has been read yet. Until then there is no lower bound."""

    cursor: JsonValue = None
    """Stored cursor value of the last entry read."""

    document_id: str | None = None
    """Identifier of the last entry read."""
