"""Error taxonomy for the visit rating domain.

A single exception type, ``RatingError``, carries a ``RatingErrorKind`` tag
plus a payload (bilingual messages, field errors, diagnostic context). The
HTTP layer translates the kind into a status code in one place.
"""

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from enum import StrEnum
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError

from .models import FieldError

logger = structlog.get_logger()


class RatingErrorKind(StrEnum):
    VALIDATION = "validation"
    CALCULATION = "calculation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"
    AUTHORIZATION = "authorization"


_STATUS_CODES: dict[RatingErrorKind, int] = {
    RatingErrorKind.VALIDATION: 400,
    RatingErrorKind.CALCULATION: 500,
    RatingErrorKind.NOT_FOUND: 404,
    RatingErrorKind.CONFLICT: 409,
    RatingErrorKind.PERSISTENCE: 500,
    RatingErrorKind.AUTHORIZATION: 403,
}

_CODES: dict[RatingErrorKind, str] = {
    RatingErrorKind.VALIDATION: "VALIDATION_ERROR",
    RatingErrorKind.CALCULATION: "CALCULATION_ERROR",
    RatingErrorKind.NOT_FOUND: "NOT_FOUND",
    RatingErrorKind.CONFLICT: "DUPLICATE_ERROR",
    RatingErrorKind.PERSISTENCE: "DATABASE_ERROR",
    RatingErrorKind.AUTHORIZATION: "UNAUTHORIZED",
}


class RatingError(Exception):
    """Raised by the rating engine for every expected failure mode."""

    def __init__(
        self,
        kind: RatingErrorKind,
        message: str,
        message_ro: str | None = None,
        field_errors: list[FieldError] | None = None,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.message_ro = message_ro
        self.field_errors = field_errors or []
        self.operation = operation
        self.context = context or {}

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    @property
    def code(self) -> str:
        return _CODES[self.kind]

    def __repr__(self) -> str:
        return f"RatingError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def validation(
        cls,
        message: str,
        field_errors: list[FieldError],
        message_ro: str = "Date de evaluare invalide",
    ) -> "RatingError":
        return cls(
            RatingErrorKind.VALIDATION,
            message,
            message_ro=message_ro,
            field_errors=field_errors,
        )

    @classmethod
    def calculation(
        cls, message: str, context: dict[str, Any] | None = None
    ) -> "RatingError":
        return cls(
            RatingErrorKind.CALCULATION,
            message,
            message_ro=f"Calculul evaluării a eșuat: {message}",
            context=context,
        )

    @classmethod
    def not_found(cls, resource: str, message_ro: str) -> "RatingError":
        return cls(RatingErrorKind.NOT_FOUND, f"{resource} not found", message_ro=message_ro)

    @classmethod
    def conflict(
        cls,
        message: str = "This visit has already been rated",
        message_ro: str = "Această vizită a fost deja evaluată",
        field_errors: list[FieldError] | None = None,
    ) -> "RatingError":
        return cls(
            RatingErrorKind.CONFLICT,
            message,
            message_ro=message_ro,
            field_errors=field_errors,
        )

    @classmethod
    def unauthorized(
        cls,
        message: str = "Access denied",
        message_ro: str = "Acces interzis",
        field_errors: list[FieldError] | None = None,
    ) -> "RatingError":
        return cls(
            RatingErrorKind.AUTHORIZATION,
            message,
            message_ro=message_ro,
            field_errors=field_errors,
        )

    @classmethod
    def persistence(
        cls, operation: str, cause: Exception, context: dict[str, Any] | None = None
    ) -> "RatingError":
        return cls(
            RatingErrorKind.PERSISTENCE,
            f"Failed to execute {operation}: {cause}",
            message_ro=f"Operațiunea {operation} a eșuat",
            operation=operation,
            context=context,
        )


@contextmanager
def calculation_guard(name: str, context: dict[str, Any] | None = None) -> Iterator[None]:
    """Re-raise unexpected failures inside a calculation as CALCULATION errors."""
    try:
        yield
    except RatingError:
        raise
    except Exception as exc:
        logger.error(
            "rating_calculation_failed",
            calculation=name,
            error_type=type(exc).__name__,
            error=str(exc),
            context=context,
        )
        raise RatingError.calculation(f"Rating calculation failed: {name}", context) from exc


@asynccontextmanager
async def persistence_guard(operation: str, **context: Any) -> AsyncIterator[None]:
    """Wrap a storage call so failures surface as PERSISTENCE (or CONFLICT) errors.

    The operation name and its inputs travel with the error for diagnostics;
    retrying is left to the caller.
    """
    try:
        yield
    except RatingError:
        raise
    except IntegrityError as exc:
        logger.warning("database_constraint_violation", operation=operation, context=context)
        raise RatingError.conflict(
            message="Duplicate record found",
            message_ro="Înregistrare duplicată",
        ) from exc
    except Exception as exc:
        logger.error(
            "database_operation_failed",
            operation=operation,
            error_type=type(exc).__name__,
            error=str(exc),
            context=context,
        )
        raise RatingError.persistence(operation, exc, context) from exc
