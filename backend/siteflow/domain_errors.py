"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None
    errors: dict[str, str] | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Malformed or missing input, bad enum value, or a failed state precondition."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "VALIDATION_ERROR",
        errors: dict[str, str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(code=code, http_status=400, message=message, details=details, errors=errors)


class ForbiddenError(DomainError):
    def __init__(self, message: str, *, code: str = "FORBIDDEN", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=403, message=message, details=details)


class NotFoundError(DomainError):
    def __init__(self, message: str, *, code: str = "NOT_FOUND", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=404, message=message, details=details)


class ConflictError(DomainError):
    def __init__(self, message: str, *, code: str = "CONFLICT", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=409, message=message, details=details)


class GoneError(DomainError):
    def __init__(self, message: str, *, code: str = "GONE", details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=410, message=message, details=details)


class InternalError(DomainError):
    def __init__(
        self,
        message: str = "Internal server error",
        *,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(code=code, http_status=500, message=message, details=details)
