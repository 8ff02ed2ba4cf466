"""Result<T> pattern — domain functions return this instead of raising exceptions for normal flow."""
from __future__ import annotations
from typing import Any, Dict, TypeVar, Generic, Optional

from app.domain.common.errors import ErrorKind

T = TypeVar("T")


class Result(Generic[T]):
    def __init__(
        self,
        is_success: bool,
        value: Optional[T] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.is_success = is_success
        self.value = value
        self.error = error
        self.kind = kind
        self.details = details or {}

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.VALIDATION,
        details: Optional[Dict[str, Any]] = None,
    ) -> "Result[T]":
        return cls(is_success=False, error=error, kind=kind, details=details)

    @classmethod
    def propagate(cls, other: "Result[Any]") -> "Result[T]":
        """Re-wrap a failed result of another type, keeping kind and details."""
        return cls(is_success=False, error=other.error, kind=other.kind, details=other.details)

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r}, kind={self.kind.value if self.kind else None})"
