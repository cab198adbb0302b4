"""Shared value types: the use-case ``Result`` envelope and the query vector."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Outcome of a use case: ``value`` when ``ok``, otherwise ``error``.

    Use cases return failures instead of raising, so interfaces decide how a
    ValidationError or RetrievalError is shown (HTTP payload, CLI exit code).
    """

    ok: bool
    value: T | None = None
    error: E | None = None

    @staticmethod
    def success(v: T) -> "Result[T, E]":
        return Result(ok=True, value=v)

    @staticmethod
    def failure(e: E) -> "Result[T, E]":
        return Result(ok=False, error=e)


# Query embedding; its length must match the collection (checked by RetrievePassages).
Vector = tuple[float, ...]
