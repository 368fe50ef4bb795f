"""Tests for query constraints."""

import pytest

from nvisy_pages.errors import ErrorKind, PagesError
from nvisy_pages.query import (
    MISSING,
    Direction,
    Limit,
    Operator,
    Query,
    limit,
    lookup,
    order_by,
    query,
    start_after,
    where,
)


def test_where_parses_operator():
    constraint = where("metadata.id", "==", "a")
    assert constraint.op is Operator.EQ
    assert constraint.path == ["metadata", "id"]


@pytest.mark.parametrize(
    "build",
    [
        lambda: where("seq", "~=", 1),
        lambda: where("", "==", 1),
        lambda: where("seq", "in", 1),
        lambda: order_by("seq", "sideways"),
        lambda: limit(0),
        lambda: start_after(),
        lambda: start_after("a", document_id="doc"),
    ],
)
def test_invalid_constraints_raise_invalid_input(build):
    with pytest.raises(PagesError) as exc_info:
        build()
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT


def test_start_after_with_null_value():
    bound = start_after(None)
    assert bound.values == (None,)
    assert bound.document_id is None


def test_start_after_cannot_exceed_orderings():
    with pytest.raises(PagesError):
        query(order_by("a"), start_after(1, 2))


def test_query_flattens_sequences():
    q = query([where("a", "==", 1), order_by("b")], limit(5))
    assert [type(c).__name__ for c in q.constraints] == ["Where", "OrderBy", "Limit"]


def test_extend_returns_new_query():
    base = query(order_by("ts", Direction.DESC), limit(10))
    extended = base.extend(Limit(count=3), start_after(document_id="doc-1"))

    assert base.limit == 10
    assert base.start_after is None
    assert extended.limit == 3
    assert extended.start_after.document_id == "doc-1"
    assert [o.direction for o in extended.orderings] == [Direction.DESC]


def test_lookup_nested_fields():
    data = {"metadata": {"id": "a", "empty": None}}
    assert lookup(data, ["metadata", "id"]) == "a"
    assert lookup(data, ["metadata", "empty"]) is None
    assert lookup(data, ["metadata", "missing"]) is MISSING
    assert lookup(data, ["metadata", "id", "deeper"]) is MISSING
