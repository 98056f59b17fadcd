"""Error Hierarchy — typed, categorized exceptions for every CRUD failure mode.

Invariants:
    - Every error carries a code (str), kind (ErrorKind), severity (ErrorSeverity)
    - ErrorKind is a closed set — error_mapping matches it exhaustively
    - to_response() always produces {"errors": [{"message", "field"?}]}
    - No internal details (SQL, driver traces) leak into user-facing messages

Design Decisions:
    - Single hierarchy with ModelRestError base: handlers catch one type and
      dispatch on .kind (ADR: uniform error shape, no name-string switching)
    - InvalidModelError is also a TypeError: it is a programming error raised at
      controller construction, never at request time
"""

from dataclasses import dataclass
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorKind(str, Enum):
    """Closed taxonomy of failures the route handlers know how to map."""
    NOT_FOUND = "not_found"
    INVALID_MODEL = "invalid_model"
    VALIDATION_FAILED = "validation_failed"
    UNIQUE_CONSTRAINT_VIOLATED = "unique_constraint_violated"
    FOREIGN_KEY_VIOLATED = "foreign_key_violated"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FieldViolation:
    """One failed constraint on one field."""
    message: str
    field: str | None = None

    def to_dict(self) -> dict:
        if self.field is None:
            return {"message": self.message}
        return {"message": self.message, "field": self.field}


class ModelRestError(Exception):
    """Base exception for all modelrest errors."""

    def __init__(
        self,
        message: str,
        code: str,
        kind: ErrorKind,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
        violations: list[FieldViolation] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.kind = kind
        self.severity = severity
        self.http_status = http_status
        self.violations = violations or []

    def to_response(self) -> dict:
        """Convert to the REST error envelope."""
        if self.violations:
            return {"errors": [v.to_dict() for v in self.violations]}
        return {"errors": [{"message": self.message}]}


# ─── Request-level errors (400-level) ───────────────────────────

class NotFoundError(ModelRestError):
    """No record matched the request."""
    def __init__(self, message: str = "record not found"):
        super().__init__(
            message, "RECORD_NOT_FOUND", ErrorKind.NOT_FOUND,
            ErrorSeverity.WARNING, 404,
        )


class ValidationFailedError(ModelRestError):
    """Input failed validation; one violation per offending field."""
    def __init__(self, violations: list[FieldViolation]):
        super().__init__(
            "; ".join(v.message for v in violations) or "validation failed",
            "VALIDATION_FAILED", ErrorKind.VALIDATION_FAILED,
            ErrorSeverity.WARNING, 422, violations,
        )


class PrimaryKeyChangeError(ValidationFailedError):
    """Body tried to change (or set) a primary key it may not touch."""
    def __init__(self, field: str, message: str = "cannot change record primary key"):
        super().__init__([FieldViolation(message, field)])
        self.code = "PRIMARY_KEY_CHANGE"


class UniqueConstraintError(ModelRestError):
    """A unique index rejected the write."""
    def __init__(self, violations: list[FieldViolation]):
        super().__init__(
            "; ".join(v.message for v in violations) or "unique constraint violated",
            "UNIQUE_CONSTRAINT", ErrorKind.UNIQUE_CONSTRAINT_VIOLATED,
            ErrorSeverity.WARNING, 422, violations,
        )


class ForeignKeyViolationError(ModelRestError):
    """A foreign key constraint rejected the write or delete."""
    def __init__(self):
        super().__init__(
            "foreign key constraint error",
            "FOREIGN_KEY_CONSTRAINT", ErrorKind.FOREIGN_KEY_VIOLATED,
            ErrorSeverity.WARNING, 400,
        )


# ─── Infrastructure errors (500-level) ──────────────────────────

class DatabaseError(ModelRestError):
    """Database operation failed for a reason other than a known constraint."""
    def __init__(self, message: str, operation: str):
        super().__init__(
            message, "DATABASE_ERROR", ErrorKind.DATABASE_ERROR,
            ErrorSeverity.CRITICAL, 500,
        )
        self.operation = operation


class UnknownError(ModelRestError):
    """Anything outside the taxonomy, wrapped so it can be mapped uniformly."""
    def __init__(self, message: str):
        super().__init__(
            message, "INTERNAL_ERROR", ErrorKind.UNKNOWN,
            ErrorSeverity.CRITICAL, 500,
        )


# ─── Construction-time errors ───────────────────────────────────

class InvalidModelError(ModelRestError, TypeError):
    """The object given to create_controller is not a usable mapped model."""
    def __init__(self, message: str = "'model' must be a valid SQLAlchemy model"):
        super().__init__(
            message, "INVALID_MODEL", ErrorKind.INVALID_MODEL,
            ErrorSeverity.CRITICAL, 500,
        )
