"""Typed failures raised by the order, table and KOT operations."""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class carrying a machine readable ``code``."""

    code = "LIFECYCLE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def as_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(LifecycleError):
    """Caller supplied input violates a precondition."""

    code = "VALIDATION_ERROR"


class NotFoundError(ValidationError):
    """Referenced record does not exist for the tenant."""

    code = "NOT_FOUND"


class PersistenceError(LifecycleError):
    """The store rejected or failed a mutation; nothing was committed."""

    code = "PERSISTENCE_ERROR"
