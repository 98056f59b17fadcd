"""Controller Options — immutable per-controller configuration merged onto defaults.

Invariants:
    - Built once per create_controller() call, frozen afterwards
    - Every option has a default; callers override only what they need
    - Hooks are plain synchronous callables, invoked at fixed lifecycle points
    - restricted_fields is accepted and stored but not consulted by any handler

Design Decisions:
    - Pydantic model over dict merging: unknown keys rejected, types coerced
      (ADR: explicit config struct, no ambient mutable defaults)
    - merge_options() accepts either an options object or keyword overrides so
      callers can write create_controller(Post, limit=20)
"""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


# before_query(query, request)
QueryHook = Callable[[Any, Any], None]
# before_update / after_update / after_create(model, record)
RecordHook = Callable[[type, Any], None]
# post middleware(request, response)
PostMiddleware = Callable[[Any, Any], Any]


class HandlerToggles(BaseModel):
    """Which route groups to register."""
    model_config = ConfigDict(frozen=True)

    get: bool = True
    put: bool = True
    post: bool = True
    delete: bool = True


class MiddlewareChain(BaseModel):
    """Caller-supplied middleware run around every route of the controller.

    pre entries are FastAPI dependencies (sync or async callables taking any
    injectable parameters, e.g. `request: Request`); raising HTTPException
    aborts the request. post entries are called as fn(request, response)
    after the handler built its response, and may mutate it.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pre: tuple[Callable[..., Any], ...] = ()
    post: tuple[PostMiddleware, ...] = ()


class Hooks(BaseModel):
    """Lifecycle callbacks. Exceptions raised inside them surface as 500s."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    before_query: QueryHook | None = None
    before_update: RecordHook | None = None
    after_update: RecordHook | None = None
    after_create: RecordHook | None = None


class ControllerOptions(BaseModel):
    """Configuration for one generated controller."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_changing_primary_key: bool = False
    # Eager-loading on the collection endpoint gets slow with many rows
    include_relations_in_get_all: bool = False
    disable_body_parser: bool = False
    override_output_name: str | None = None
    limit: int | None = Field(None, ge=1)
    restricted_fields: frozenset[str] = frozenset()
    relationships: tuple[str, ...] = ()
    handlers: HandlerToggles = HandlerToggles()
    middleware: MiddlewareChain = MiddlewareChain()
    use_like: bool = True
    create_children: bool = False
    hooks: Hooks = Hooks()


def merge_options(
    options: ControllerOptions | dict | None = None, **overrides: Any,
) -> ControllerOptions:
    """Merge caller options onto defaults.

    `options` may be a ControllerOptions, a plain dict of option values, or
    None; keyword overrides win over both.
    """
    if isinstance(options, ControllerOptions):
        # Explicitly-set fields only, kept as instances so callables survive
        values = {name: getattr(options, name) for name in options.model_fields_set}
    else:
        values = dict(options or {})
    values.update(overrides)

    return ControllerOptions.model_validate(values)
