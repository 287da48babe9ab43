from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from ..errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an engine operation: either a value or a typed business error.

    Expected rule violations (forbidden, invalid transition, missing notes,
    bad assignee) travel as values so callers decide how to surface them.
    """

    value: T | None = None
    error: AppError | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
