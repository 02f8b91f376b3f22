"""
Error taxonomy and the Result wrapper returned by fallible repository operations.

Entity constructors raise these errors. Repository operations catch them at the
boundary and hand them back inside a `Result`, so callers check `result.ok`
instead of wrapping calls in try/except.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class DomainError(Exception):
    """Base class for expected, user-facing failures."""

    kind = "domain"


class ValidationError(DomainError):
    """A required field is missing or has an unusable value."""

    kind = "validation"


class ConflictError(DomainError):
    """A unique key is already taken, or the entity is already in its final state."""

    kind = "conflict"


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    kind = "not_found"


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        return cls(error=error)
