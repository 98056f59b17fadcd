"""Error Handlers — optional app-level exception handlers in the errors-envelope shape.

Invariants:
    - ModelRestError → its own http_status and to_response() body
    - RequestValidationError → 422 with one {message, field} entry per error
    - Exception (catch-all) → 500, never leaks internal details
    - Every body is {"errors": [...]}, matching what the route handlers return

Design Decisions:
    - Route handlers already map their own failures; these cover what happens
      outside them (pre middleware raising ModelRestError, host routes, bugs)
    - Opt-in via register_error_handlers(app): the library never mutates an app
      it was not handed
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from modelrest.core.errors import ModelRestError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_model_rest_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_model_rest_error_handler(app: FastAPI) -> None:

    @app.exception_handler(ModelRestError)
    async def model_rest_error_handler(request: Request, exc: ModelRestError):
        logger.error(
            f"ModelRestError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"errors": [{"message": "An unexpected error occurred"}]},
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """One {message, field} entry per pydantic error."""
    return {
        "errors": [
            {
                "message": e["msg"],
                "field": ".".join(str(loc) for loc in e["loc"]),
            }
            for e in exc.errors()
        ],
    }
