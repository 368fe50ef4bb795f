"""In-memory document store provider.

Keeps every collection in a process-local dict. Values are ordered the way
Firestore orders them across types: null < booleans < numbers < timestamps
< strings < bytes < arrays < maps. Range filters only match values of the
same type as the operand. Naive timestamps compare as UTC.
"""

from collections.abc import Callable, Sequence
from copy import deepcopy
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, ClassVar, Self

from nvisy_pages.errors import ErrorKind, PagesError
from nvisy_pages.ids import new_document_id
from nvisy_pages.query import MISSING, Direction, Operator, OrderBy, Query, Where, lookup
from nvisy_pages.schema.datatypes import DocumentData, DocumentSnapshot, QuerySnapshot

type _Entry = tuple[str, DocumentData]


def _rank(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, int | float):
        return 2
    if isinstance(value, datetime):
        return 3
    if isinstance(value, str):
        return 4
    if isinstance(value, bytes):
        return 5
    if isinstance(value, list | tuple):
        return 6
    if isinstance(value, dict):
        return 7
    msg = f"Unsupported value type: {type(value).__name__}"
    raise PagesError(msg, kind=ErrorKind.INVALID_INPUT)


def _aware(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison of two document values."""
    rank_a, rank_b = _rank(a), _rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 0:
        return 0
    if rank_a == 6:
        for x, y in zip(a, b, strict=False):
            if c := compare_values(x, y):
                return c
        return compare_values(len(a), len(b))
    if rank_a == 7:
        return compare_values(
            [[k, v] for k, v in sorted(a.items())],
            [[k, v] for k, v in sorted(b.items())],
        )
    if rank_a == 3:
        a, b = _aware(a), _aware(b)
    return (a > b) - (a < b)


def _matches(data: DocumentData, where: Where) -> bool:
    value = lookup(data, where.path)
    if value is MISSING:
        return False
    match where.op:
        case Operator.EQ:
            return _rank(value) == _rank(where.value) and compare_values(value, where.value) == 0
        case Operator.NE:
            return value is not None and (
                _rank(value) != _rank(where.value) or compare_values(value, where.value) != 0
            )
        case Operator.IN:
            return any(
                _rank(value) == _rank(v) and compare_values(value, v) == 0 for v in where.value
            )
        case _:
            if _rank(value) != _rank(where.value):
                return False
            c = compare_values(value, where.value)
            return {
                Operator.LT: c < 0,
                Operator.LE: c <= 0,
                Operator.GT: c > 0,
                Operator.GE: c >= 0,
            }[where.op]


def _signed(c: int, ordering: OrderBy) -> int:
    return -c if ordering.direction is Direction.DESC else c


def _entry_comparator(orderings: Sequence[OrderBy]) -> Callable[[_Entry, _Entry], int]:
    """Compare by the order-by fields, then by id in the last ordering's direction."""

    def compare(a: _Entry, b: _Entry) -> int:
        for ordering in orderings:
            c = compare_values(lookup(a[1], ordering.path), lookup(b[1], ordering.path))
            if c:
                return _signed(c, ordering)
        c = (a[0] > b[0]) - (a[0] < b[0])
        return _signed(c, orderings[-1]) if orderings else c

    return compare


def _compare_to_values(entry: _Entry, orderings: Sequence[OrderBy], values: Sequence[Any]) -> int:
    for ordering, value in zip(orderings, values, strict=False):
        c = compare_values(lookup(entry[1], ordering.path), value)
        if c:
            return _signed(c, ordering)
    return 0


class MemoryCollection:
    """A named collection of documents held in memory.

    Implements DocumentCollection.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_documents", "_name")

    _documents: dict[str, DocumentData]
    _name: str

    def __init__(self, name: str) -> None:
        self._name = name
        self._documents = {}

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._documents)

    async def add(self, data: DocumentData) -> str:
        """Insert a document under a generated id."""
        document_id = new_document_id()
        while document_id in self._documents:
            document_id = new_document_id()
        self._documents[document_id] = deepcopy(data)
        return document_id

    async def set(self, document_id: str, data: DocumentData) -> None:
        """Create or replace the document with the given id."""
        self._documents[document_id] = deepcopy(data)

    async def delete(self, document_id: str) -> None:
        """Remove a document. Missing documents are ignored."""
        _ = self._documents.pop(document_id, None)

    async def get(self, query: Query) -> QuerySnapshot:
        """Execute a query against the documents of this collection."""
        orderings = query.orderings
        entries: list[_Entry] = [
            (document_id, data)
            for document_id, data in self._documents.items()
            if all(_matches(data, where) for where in query.filters)
            and all(lookup(data, o.path) is not MISSING for o in orderings)
        ]
        compare = _entry_comparator(orderings)
        entries.sort(key=cmp_to_key(compare))

        bound = query.start_after
        if bound is not None and bound.document_id is not None:
            anchor = self._anchor(bound.document_id, orderings)
            entries = [e for e in entries if compare(e, anchor) > 0]
        elif bound is not None and bound.values is not None:
            entries = [e for e in entries if _compare_to_values(e, orderings, bound.values) > 0]

        if query.limit is not None:
            entries = entries[: query.limit]

        docs = [DocumentSnapshot(id=doc_id, data=deepcopy(data)) for doc_id, data in entries]
        return QuerySnapshot(docs=docs)

    def _anchor(self, document_id: str, orderings: Sequence[OrderBy]) -> _Entry:
        data = self._documents.get(document_id)
        if data is None:
            msg = f"Document '{document_id}' not found in collection '{self._name}'"
            raise PagesError(msg, kind=ErrorKind.NOT_FOUND)
        for ordering in orderings:
            if lookup(data, ordering.path) is MISSING:
                msg = f"Document '{document_id}' has no '{ordering.field}' field to start after"
                raise PagesError(msg, kind=ErrorKind.INVALID_INPUT)
        return (document_id, data)


class MemoryProvider:
    """Process-local document store, mainly for tests and local runs."""

    __slots__: ClassVar[tuple[str]] = ("_collections",)

    _collections: dict[str, MemoryCollection]

    def __init__(self) -> None:
        self._collections = {}

    @classmethod
    async def connect(cls, credentials: None = None, params: None = None) -> Self:
        """Create an empty store. Takes no credentials or params."""
        return cls()

    async def disconnect(self) -> None:
        """Drop every collection."""
        self._collections.clear()

    def collection(self, name: str) -> MemoryCollection:
        """Return the named collection, creating it on first use."""
        if name not in self._collections:
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]


Provider = MemoryProvider
