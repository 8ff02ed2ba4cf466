"""Stable, machine-readable failure kinds surfaced to callers."""
from __future__ import annotations
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    PERMISSION = "PermissionError"
    INVALID_TRANSITION = "InvalidTransition"
    CONFLICT = "ConflictError"
    NOT_FOUND = "NotFoundError"


class StoreConflict(Exception):
    """Raised by a repository when a write loses to a concurrent one (unique index or row stamp)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
