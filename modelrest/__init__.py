"""modelrest — generic CRUD routers for SQLAlchemy models on FastAPI.

    from modelrest import create_controller

    app.include_router(create_controller(Post, limit=50))

Invariants:
    - Importing the package has no side effects (no logging, no engine creation)
"""

from modelrest.api.controller import create_controller
from modelrest.api.error_handlers import register_error_handlers
from modelrest.core.errors import InvalidModelError, ModelRestError
from modelrest.core.options import ControllerOptions, HandlerToggles, Hooks, MiddlewareChain

__all__ = [
    "create_controller",
    "register_error_handlers",
    "ControllerOptions",
    "HandlerToggles",
    "Hooks",
    "MiddlewareChain",
    "InvalidModelError",
    "ModelRestError",
]

__version__ = "1.0.0"
