"""Core protocols for document stores and paged traversals."""

from collections.abc import AsyncIterator, Sequence
from typing import Protocol, Self, TypeVar, runtime_checkable

from nvisy_pages.query import Query
from nvisy_pages.schema.datatypes import DocumentData, QuerySnapshot

T_co = TypeVar("T_co", covariant=True)
T_contra = TypeVar("T_contra", contravariant=True)
Ctx = TypeVar("Ctx")  # Invariant: used in both parameter and return positions
Cred_contra = TypeVar("Cred_contra", contravariant=True)
Params_contra = TypeVar("Params_contra", contravariant=True)


@runtime_checkable
class DocumentCollection(Protocol):
    """A queryable collection of documents in an external store."""

    async def get(self, query: Query) -> QuerySnapshot:
        """Execute the query and return the matched documents in query order."""
        ...

    async def add(self, data: DocumentData) -> str:
        """Insert one document and return the identifier the store assigned."""
        ...


@runtime_checkable
class DataInput(Protocol[T_co, Ctx]):
    """Protocol for reading data from external sources."""

    def read(self, ctx: Ctx) -> AsyncIterator[tuple[T_co, Ctx]]:
        """Yield (item, context) tuples from the source.

        Each yielded context can be used to resume reading from
        the next item if the stream is interrupted.
        """
        ...


@runtime_checkable
class DataOutput(Protocol[T_contra]):
    """Protocol for writing data to external sinks."""

    async def write(self, items: Sequence[T_contra]) -> None:
        """Write a batch of items to the sink."""
        ...


@runtime_checkable
class Provider(Protocol[Cred_contra, Params_contra]):
    """Protocol for provider lifecycle management."""

    @classmethod
    async def connect(cls, credentials: Cred_contra, params: Params_contra) -> Self:
        """Establish connection to the external service."""
        ...

    async def disconnect(self) -> None:
        """Release resources and close connections."""
        ...

    def collection(self, name: str) -> DocumentCollection:
        """Return a handle on the named collection."""
        ...
