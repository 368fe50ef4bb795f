"""Google Cloud Firestore provider."""

from typing import TYPE_CHECKING, ClassVar, Self

from pydantic import BaseModel

from nvisy_pages.errors import ErrorKind, PagesError
from nvisy_pages.query import Direction, Query
from nvisy_pages.schema.datatypes import DocumentData, DocumentSnapshot, QuerySnapshot

if TYPE_CHECKING:
    from google.cloud.firestore import AsyncClient, AsyncCollectionReference, AsyncQuery

try:
    from google.cloud import firestore
    from google.cloud.firestore_v1.base_query import FieldFilter
    from google.oauth2 import service_account
except ImportError as e:
    _msg = (
        "google-cloud-firestore is required for Firestore support. "
        "Install with: uv add 'nvisy-pages[firestore]'"
    )
    raise ImportError(_msg) from e


class FirestoreCredentials(BaseModel, frozen=True):
    """Credentials for Firestore connection."""

    project: str | None = None
    """Google Cloud project id. Defaults to the environment's project."""

    credentials_file: str | None = None
    """Service account key file. Defaults to application default credentials."""


class FirestoreParams(BaseModel, frozen=True):
    """Parameters for Firestore operations."""

    database: str = "(default)"
    """Firestore database id."""


_DIRECTIONS = {
    Direction.ASC: "ASCENDING",
    Direction.DESC: "DESCENDING",
}


class FirestoreCollection:
    """A Firestore collection.

    Implements DocumentCollection.
    """

    __slots__: ClassVar[tuple[str]] = ("_ref",)

    _ref: "AsyncCollectionReference"

    def __init__(self, ref: "AsyncCollectionReference") -> None:
        self._ref = ref

    async def _build(self, query: Query) -> "AsyncQuery":
        current: AsyncQuery = self._ref  # pyright: ignore[reportAssignmentType]
        for where in query.filters:
            current = current.where(filter=FieldFilter(where.field, where.op.value, where.value))
        for ordering in query.orderings:
            current = current.order_by(ordering.field, direction=_DIRECTIONS[ordering.direction])

        bound = query.start_after
        if bound is not None and bound.document_id is not None:
            snapshot = await self._ref.document(bound.document_id).get()
            if not snapshot.exists:
                msg = f"Document '{bound.document_id}' not found in collection '{self._ref.id}'"
                raise PagesError(msg, kind=ErrorKind.NOT_FOUND)
            current = current.start_after(snapshot)
        elif bound is not None and bound.values is not None:
            current = current.start_after(list(bound.values))

        if query.limit is not None:
            current = current.limit(query.limit)
        return current

    async def get(self, query: Query) -> QuerySnapshot:
        """Execute a query against this collection."""
        try:
            snapshots = await (await self._build(query)).get()
        except PagesError:
            raise
        except Exception as e:
            msg = f"Failed to query Firestore: {e}"
            raise PagesError(msg, source=e) from e

        return QuerySnapshot(
            docs=[DocumentSnapshot(id=doc.id, data=doc.to_dict() or {}) for doc in snapshots]
        )

    async def add(self, data: DocumentData) -> str:
        """Insert a document under a Firestore auto-id."""
        try:
            _, ref = await self._ref.add(data)
        except Exception as e:
            msg = f"Failed to write to Firestore: {e}"
            raise PagesError(msg, source=e) from e
        return ref.id


class FirestoreProvider:
    """Firestore provider for document collections."""

    __slots__: ClassVar[tuple[str, str]] = ("_client", "_params")

    _client: "AsyncClient"
    _params: FirestoreParams

    def __init__(self, client: "AsyncClient", params: FirestoreParams) -> None:
        self._client = client
        self._params = params

    @classmethod
    async def connect(cls, credentials: FirestoreCredentials, params: FirestoreParams) -> Self:
        """Create the Firestore client."""
        try:
            google_credentials = (
                service_account.Credentials.from_service_account_file(credentials.credentials_file)
                if credentials.credentials_file
                else None
            )
            client = firestore.AsyncClient(
                project=credentials.project,
                credentials=google_credentials,
                database=params.database,
            )
        except Exception as e:
            msg = f"Failed to connect to Firestore: {e}"
            raise PagesError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return cls(client, params)

    async def disconnect(self) -> None:
        """Close the Firestore client."""
        self._client.close()

    def collection(self, name: str) -> FirestoreCollection:
        """Return a handle on the named collection."""
        return FirestoreCollection(self._client.collection(name))


Provider = FirestoreProvider
