from dataclasses import dataclass
from typing import Generic, TypeVar

from docseal.core.errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Failure:
    """Error as seen by callers: a stable kind and a human-readable message."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an exposed operation, discriminated by ``failure``."""

    value: T | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(failure=Failure(kind=kind, message=message))

    def unwrap(self) -> T:
        """Return the value, or raise if the operation failed."""
        if self.failure is not None:
            raise RuntimeError(f"{self.failure.kind.value}: {self.failure.message}")
        return self.value  # type: ignore[return-value]
