"""Error types raised by the paging layer and its providers."""

from enum import StrEnum
from typing import final

from pydantic import BaseModel, ValidationError


class ErrorKind(StrEnum):
    """Classification of paging errors."""

    CONNECTION = "connection"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    TIMEOUT = "timeout"
    PROVIDER = "provider"


@final
class PagesError(Exception):
    """Error raised for invalid arguments and wrapped document store failures."""

    __slots__ = ("kind", "message", "source")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PROVIDER,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __repr__(self) -> str:
        return f"PagesError({self.message!r}, kind={self.kind!r})"


def validated[T: BaseModel](model: type[T], /, **kwargs: object) -> T:
    """Construct a model, raising `PagesError` if the arguments are invalid."""
    try:
        return model(**kwargs)
    except ValidationError as e:
        msg = f"Invalid {model.__name__}: {e}"
        raise PagesError(msg, kind=ErrorKind.INVALID_INPUT, source=e) from e
