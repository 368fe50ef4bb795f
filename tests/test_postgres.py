"""Tests for the PostgreSQL provider: query translation and execution."""

import json
from contextlib import asynccontextmanager

import pytest

pytest.importorskip("asyncpg")

from nvisy_pages.errors import ErrorKind, PagesError  # noqa: E402
from nvisy_pages.pagination import save_page_to_collection  # noqa: E402
from nvisy_pages.providers.postgres import (  # noqa: E402
    PostgresCollection,
    PostgresParams,
    PostgresProvider,
    build_select,
    encode,
)
from nvisy_pages.query import limit, order_by, query, start_after, where  # noqa: E402

TABLE = '"public"."documents"'


class FakeConnection:
    """Records statements and answers them from canned rows."""

    def __init__(self, rows=(), anchors=None, error=None):
        self.rows = list(rows)
        self.anchors = anchors or {}
        self.error = error
        self.calls = []

    async def fetch(self, sql, *params):
        self.calls.append(("fetch", sql, params))
        if self.error is not None:
            raise self.error
        return [{"id": id_, "data": json.dumps(data)} for id_, data in self.rows]

    async def fetchrow(self, sql, *params):
        self.calls.append(("fetchrow", sql, params))
        data = self.anchors.get(params[1])
        return None if data is None else {"data": json.dumps(data)}

    async def execute(self, sql, *params):
        self.calls.append(("execute", sql, params))
        if self.error is not None:
            raise self.error
        return "INSERT 0 1"


class FakePool:
    def __init__(self, conn):
        self.conn = conn
        self.acquired = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield self.conn


def test_filter_order_and_limit():
    sql, params = build_select(
        TABLE, "pages", query(where("metadata.id", "==", "a"), order_by("cursor"), limit(10))
    )

    assert sql == (
        'SELECT id, data FROM "public"."documents" '
        "WHERE collection = $1 "
        "AND (data #> $2::text[]) = $3::jsonb "
        "AND (data #> $4::text[]) IS NOT NULL "
        'ORDER BY (data #> $4::text[]) ASC, id COLLATE "C" ASC '
        "LIMIT $5"
    )
    assert params == ["pages", ["metadata", "id"], '"a"', ["cursor"], 10]


def test_range_filter_checks_json_type():
    sql, params = build_select(TABLE, "events", query(where("seq", ">=", 3)))

    assert "jsonb_typeof((data #> $2::text[])) = jsonb_typeof($3::jsonb)" in sql
    assert "(data #> $2::text[]) >= $3::jsonb" in sql
    assert params == ["events", ["seq"], "3"]


def test_in_filter_uses_jsonb_array():
    sql, params = build_select(TABLE, "events", query(where("tag", "in", ["a", None])))

    assert "(data #> $2::text[]) = ANY($3::jsonb[])" in sql
    assert params[2] == ['"a"', "null"]


def test_start_after_values_encodes_null():
    sql, params = build_select(TABLE, "pages", query(order_by("cursor"), start_after(None)))

    assert "(((data #> $3::text[]) > $4::jsonb))" in sql
    assert params[3] == "null"


def test_start_after_document_expands_keyset():
    sql, params = build_select(
        TABLE,
        "events",
        query(order_by("ts", "desc"), start_after(document_id="d1")),
        anchor=("d1", {"ts": 5}),
    )

    assert (
        "(((data #> $3::text[]) < $4::jsonb) OR "
        '((data #> $3::text[]) = $4::jsonb AND id COLLATE "C" < $5))'
    ) in sql
    assert sql.endswith('ORDER BY (data #> $2::text[]) DESC, id COLLATE "C" DESC')
    assert params[3:] == ["5", "d1"]


def test_start_after_document_requires_anchor():
    with pytest.raises(PagesError) as exc_info:
        build_select(TABLE, "events", query(start_after(document_id="d1")))
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT


def test_start_after_document_requires_ordered_field():
    with pytest.raises(PagesError):
        build_select(
            TABLE,
            "events",
            query(order_by("ts"), start_after(document_id="d1")),
            anchor=("d1", {}),
        )


def test_encode_handles_timestamps():
    from datetime import datetime, timezone

    assert encode({"at": datetime(2024, 1, 1, tzinfo=timezone.utc)}) == (
        '{"at": "2024-01-01T00:00:00+00:00"}'
    )


@pytest.mark.asyncio
async def test_get_runs_select_and_decodes_rows():
    conn = FakeConnection(rows=[("e1", {"ts": 1}), ("e2", {"ts": 2})])
    collection = PostgresCollection(FakePool(conn), TABLE, "events")
    constraints = query(order_by("ts"), limit(2))

    snapshot = await collection.get(constraints)

    assert [(doc.id, doc.data) for doc in snapshot] == [("e1", {"ts": 1}), ("e2", {"ts": 2})]
    sql, params = build_select(TABLE, "events", constraints)
    assert conn.calls == [("fetch", sql, tuple(params))]


@pytest.mark.asyncio
async def test_get_loads_anchor_before_selecting():
    conn = FakeConnection(anchors={"e1": {"ts": 1}})
    collection = PostgresCollection(FakePool(conn), TABLE, "events")

    snapshot = await collection.get(query(order_by("ts"), start_after(document_id="e1")))

    assert snapshot.empty
    (kind, sql, params), (fetch, _, fetch_params) = conn.calls
    assert kind == "fetchrow"
    assert sql == f"SELECT data FROM {TABLE} WHERE collection = $1 AND id = $2"
    assert params == ("events", "e1")
    assert fetch == "fetch"
    assert fetch_params[-2:] == ("1", "e1")


@pytest.mark.asyncio
async def test_get_unknown_anchor_is_not_found():
    conn = FakeConnection()
    collection = PostgresCollection(FakePool(conn), TABLE, "events")

    with pytest.raises(PagesError) as exc_info:
        await collection.get(query(order_by("ts"), start_after(document_id="gone")))

    assert exc_info.value.kind is ErrorKind.NOT_FOUND
    assert [call[0] for call in conn.calls] == ["fetchrow"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (ConnectionResetError("reset"), ErrorKind.PROVIDER),
        (TimeoutError(), ErrorKind.TIMEOUT),
    ],
)
async def test_get_wraps_driver_errors(error, kind):
    collection = PostgresCollection(FakePool(FakeConnection(error=error)), TABLE, "events")

    with pytest.raises(PagesError) as exc_info:
        await collection.get(query())

    assert exc_info.value.kind is kind
    assert exc_info.value.source is error


@pytest.mark.asyncio
async def test_add_inserts_encoded_document():
    conn = FakeConnection()
    collection = PostgresCollection(FakePool(conn), TABLE, "pages")

    document_id = await save_page_to_collection(collection, [{"n": 1}], "e9", {"id": "x"})

    assert len(document_id) == 20
    [(kind, sql, params)] = conn.calls
    assert kind == "execute"
    assert sql == f"INSERT INTO {TABLE} (collection, id, data) VALUES ($1, $2, $3::jsonb)"
    assert params[:2] == ("pages", document_id)
    assert json.loads(params[2]) == {"cursor": "e9", "data": [{"n": 1}], "metadata": {"id": "x"}}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (OSError("disk full"), ErrorKind.PROVIDER),
        (TimeoutError(), ErrorKind.TIMEOUT),
    ],
)
async def test_add_wraps_driver_errors(error, kind):
    collection = PostgresCollection(FakePool(FakeConnection(error=error)), TABLE, "pages")

    with pytest.raises(PagesError) as exc_info:
        await collection.add({"cursor": None, "data": [], "metadata": None})

    assert exc_info.value.kind is kind


@pytest.mark.asyncio
async def test_provider_collections_share_quoted_table():
    conn = FakeConnection(rows=[("e1", {"ts": 1})])
    pool = FakePool(conn)
    provider = PostgresProvider(pool, PostgresParams(table="docs", schema_name="app"))

    await provider.ensure_table()
    await provider.collection("events").get(query())

    assert provider.table == '"app"."docs"'
    (_, create, _), (_, select, params) = conn.calls
    assert create.startswith('CREATE TABLE IF NOT EXISTS "app"."docs" (')
    assert select.startswith('SELECT id, data FROM "app"."docs" WHERE collection = $1')
    assert params[0] == "events"
    assert pool.acquired == 2
