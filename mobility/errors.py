"""Error taxonomy and the discriminated Outcome returned to callers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(eq=False)
class MobilityError(Exception):
    message: str
    context: dict[str, Any] | None = None
    code: str = field(default="UNKNOWN", init=False)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(eq=False)
class NotFound(MobilityError):
    code: str = field(default="NOT_FOUND", init=False)


@dataclass(eq=False)
class Forbidden(MobilityError):
    code: str = field(default="FORBIDDEN", init=False)


@dataclass(eq=False)
class ValidationFailed(MobilityError):
    code: str = field(default="VALIDATION_FAILED", init=False)


@dataclass(eq=False)
class StateConflict(MobilityError):
    code: str = field(default="STATE_CONFLICT", init=False)


@dataclass(eq=False)
class StorageFailure(MobilityError):
    """Persistence medium unwritable. Never retried."""

    code: str = field(default="STORAGE_FAILURE", init=False)


@dataclass(eq=False)
class Unauthenticated(MobilityError):
    code: str = field(default="UNAUTHENTICATED", init=False)


@dataclass(eq=False)
class RoleSelectionRequired(MobilityError):
    redirect: str = "/role-selection"
    code: str = field(default="ROLE_SELECTION_REQUIRED", init=False)


@dataclass(eq=False)
class ProfileIncomplete(MobilityError):
    redirect: str = "/profile/create"
    code: str = field(default="PROFILE_INCOMPLETE", init=False)


@dataclass(eq=False)
class Outcome(Generic[T]):
    """Success-with-data or failure-with-kind."""

    ok: bool
    data: T | None = None
    error: MobilityError | None = None

    @property
    def kind(self) -> str | None:
        return self.error.code if self.error else None

    @property
    def hard(self) -> bool:
        return isinstance(self.error, StorageFailure)

    @classmethod
    def success(cls, data: T) -> "Outcome[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: MobilityError) -> "Outcome[T]":
        return cls(ok=False, error=error)

    @classmethod
    def capture(cls, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Outcome[T]":
        """Run ``fn``; expected MobilityErrors become failures, anything else propagates."""
        try:
            return cls.success(fn(*args, **kwargs))
        except MobilityError as exc:
            return cls.failure(exc)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]
