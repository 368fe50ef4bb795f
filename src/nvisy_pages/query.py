"""Query constraints understood by every document collection.

A query is an ordered list of constraints: equality and range filters,
orderings, a limit, and a strict "start after" bound. Providers translate
the constraints to their store's own query language and agree on these
semantics:

- a document lacking a `Where` or `OrderBy` field does not match
- results are ordered by the `OrderBy` fields, then by document id
- `StartAfter` is strict: the anchor position itself is never returned
"""

from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, Field, PositiveInt, model_validator

from nvisy_pages.errors import validated

MISSING = object()
"""Sentinel returned by `lookup` for a field the document does not have."""


class Operator(StrEnum):
    """Comparison operator of a `Where` constraint."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "in"


class Direction(StrEnum):
    """Sort direction of an `OrderBy` constraint."""

    ASC = "asc"
    DESC = "desc"


class Where(BaseModel, frozen=True):
    """Filter on a (dotted) document field."""

    kind: Literal["where"] = "where"
    field: str = Field(min_length=1)
    op: Operator = Operator.EQ
    value: Any = None

    @property
    def path(self) -> list[str]:
        return self.field.split(".")

    @model_validator(mode="after")
    def _check_in_value(self) -> Self:
        if self.op is Operator.IN and not isinstance(self.value, list):
            msg = "'in' requires a list value"
            raise ValueError(msg)
        return self


class OrderBy(BaseModel, frozen=True):
    """Ordering on a (dotted) document field."""

    kind: Literal["order_by"] = "order_by"
    field: str = Field(min_length=1)
    direction: Direction = Direction.ASC

    @property
    def path(self) -> list[str]:
        return self.field.split(".")


class Limit(BaseModel, frozen=True):
    """Maximum number of documents returned."""

    kind: Literal["limit"] = "limit"
    count: PositiveInt


class StartAfter(BaseModel, frozen=True):
    """Strict lower bound in query order.

    Either `values` (compared against the `OrderBy` fields, in order) or
    `document_id` (the position of an existing document of the collection).
    """

    kind: Literal["start_after"] = "start_after"
    values: tuple[Any, ...] | None = None
    document_id: str | None = None

    @model_validator(mode="after")
    def _check_anchor(self) -> Self:
        if (self.values is None) == (self.document_id is None):
            msg = "exactly one of 'values' or 'document_id' is required"
            raise ValueError(msg)
        if self.values is not None and not self.values:
            msg = "'values' must not be empty"
            raise ValueError(msg)
        return self


QueryConstraint = Annotated[Where | OrderBy | Limit | StartAfter, Field(discriminator="kind")]


class Query(BaseModel, frozen=True):
    """An immutable, ordered list of constraints."""

    constraints: tuple[QueryConstraint, ...] = ()

    def extend(self, *constraints: QueryConstraint) -> "Query":
        """Return a new query with the constraints appended."""
        return validated(Query, constraints=(*self.constraints, *constraints))

    @property
    def filters(self) -> list[Where]:
        return [c for c in self.constraints if isinstance(c, Where)]

    @property
    def orderings(self) -> list[OrderBy]:
        return [c for c in self.constraints if isinstance(c, OrderBy)]

    @property
    def limit(self) -> int | None:
        """The effective limit. The last `Limit` constraint wins."""
        limits = [c.count for c in self.constraints if isinstance(c, Limit)]
        return limits[-1] if limits else None

    @property
    def start_after(self) -> StartAfter | None:
        """The effective lower bound. The last `StartAfter` constraint wins."""
        bounds = [c for c in self.constraints if isinstance(c, StartAfter)]
        return bounds[-1] if bounds else None

    @model_validator(mode="after")
    def _check_bound(self) -> Self:
        bound = self.start_after
        if bound is not None and bound.values is not None:
            if len(bound.values) > len(self.orderings):
                msg = "'start_after' has more values than the query has orderings"
                raise ValueError(msg)
        return self


def where(field: str, op: str | Operator, value: Any) -> Where:
    """Filter documents whose `field` compares to `value` with `op`."""
    return validated(Where, field=field, op=op, value=value)


def order_by(field: str, direction: str | Direction = Direction.ASC) -> OrderBy:
    """Order documents by `field`."""
    return validated(OrderBy, field=field, direction=direction)


def limit(count: int) -> Limit:
    """Return at most `count` documents."""
    return validated(Limit, count=count)


def start_after(*values: Any, document_id: str | None = None) -> StartAfter:
    """Start strictly after the given order-by values or document."""
    return validated(StartAfter, values=values or None, document_id=document_id)


def query(*constraints: QueryConstraint | Sequence[QueryConstraint]) -> Query:
    """Build a query from constraints, flattening nested sequences."""
    flat: list[QueryConstraint] = []
    for constraint in constraints:
        if isinstance(constraint, Where | OrderBy | Limit | StartAfter):
            flat.append(constraint)
        else:
            flat.extend(constraint)
    return validated(Query, constraints=tuple(flat))


def lookup(data: Mapping[str, Any], path: Sequence[str]) -> Any:
    """Return the value at a field path of a document, or `MISSING`."""
    value: Any = data
    for part in path:
        if not isinstance(value, Mapping) or part not in value:
            return MISSING
        value = value[part]
    return value
