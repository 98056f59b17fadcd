"""Error Mapping — pure translation of (error, operation) into HTTP status + body.

Invariants:
    - Exhaustive over ErrorKind: adding a kind without a case is a bug caught by tests
    - Anything that is not a ModelRestError is treated as ErrorKind.UNKNOWN (500)
    - DATABASE_ERROR is 422 on the update path only, 500 elsewhere
    - Body is always {"errors": [...]} with at least one entry

Design Decisions:
    - Pure function, no logging: handlers log once at the boundary (ADR: impureim sandwich)
    - Operation passed explicitly instead of catching per-route: one table, one place
"""

from enum import Enum

from modelrest.core.errors import ErrorKind, ModelRestError, UnknownError


class Operation(str, Enum):
    """Route handler operations; each selects the operation-specific mapping rows."""
    LIST = "list"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def as_model_rest_error(exc: Exception) -> ModelRestError:
    """Wrap foreign exceptions so they flow through the same mapping."""
    if isinstance(exc, ModelRestError):
        return exc
    return UnknownError(str(exc) or exc.__class__.__name__)


def error_response(exc: Exception, operation: Operation) -> tuple[int, dict]:
    """Map an error raised during `operation` to (status_code, body)."""
    error = as_model_rest_error(exc)
    body = error.to_response()

    if operation is Operation.LIST:
        # An empty collection is a valid result, so list never reports 404/422
        return 500, {"errors": [{"message": error.message}]}

    match error.kind:
        case ErrorKind.NOT_FOUND:
            return 404, body
        case ErrorKind.VALIDATION_FAILED | ErrorKind.UNIQUE_CONSTRAINT_VIOLATED:
            return 422, body
        case ErrorKind.FOREIGN_KEY_VIOLATED:
            return 400, {"errors": [{"message": "foreign key constraint error"}]}
        case ErrorKind.DATABASE_ERROR:
            if operation is Operation.UPDATE:
                return 422, body
            return 500, body
        case ErrorKind.INVALID_MODEL | ErrorKind.UNKNOWN:
            return 500, body
