"""Controller Factory — builds a mountable APIRouter of CRUD routes for one model.

Invariants:
    - Invalid models fail fast with InvalidModelError at construction, never per request
    - Options are merged once and frozen; handlers only read them
    - Route groups registered only when enabled in options.handlers
    - Child routes mounted only when options.create_children is set, one group
      per one-to-many relationship with a single-column foreign key

Design Decisions:
    - Routes registered explicitly per toggle, not by introspecting handler names
    - Pre middleware become router dependencies: they run before every route,
      in order, and can reject a request by raising HTTPException
    - Session provider injectable (get_session) so hosts can plug their own
      dependency; defaults to infrastructure.database.get_db
"""

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from modelrest.api.handlers import ResourceHandlers
from modelrest.config import get_settings
from modelrest.core.errors import InvalidModelError
from modelrest.core.naming import pluralize
from modelrest.core.options import ControllerOptions, Hooks, merge_options
from modelrest.db.introspection import ChildRelation, describe_model
from modelrest.infrastructure.database import get_db

logger = logging.getLogger(__name__)

_BODY_METHODS = {"POST", "PUT", "PATCH"}


async def parse_json_body(request: Request) -> None:
    """Router dependency: decode the JSON body once into request.state.body."""
    if request.method not in _BODY_METHODS:
        return
    try:
        request.state.body = await request.json()
    except ValueError as e:
        # Reported by the handler so the response keeps the errors envelope
        request.state.body_error = str(e)


def create_controller(
    model: Any,
    options: ControllerOptions | dict | None = None,
    *,
    prefix: str | None = None,
    tags: list[str] | None = None,
    get_session: Callable[..., Any] = get_db,
    **overrides: Any,
) -> APIRouter:
    """Build the CRUD router for `model`.

    Mount it with app.include_router(router). The prefix defaults to the plural
    model name (Post -> /posts).
    """
    info = describe_model(model)
    options = _resolve_options(options, overrides)

    unknown = [name for name in options.relationships if name not in info.relationships]
    if unknown:
        raise InvalidModelError(
            f"'{model.__name__}' has no relationship(s): {', '.join(unknown)}",
        )

    plural = pluralize(info.name)
    dependencies = [Depends(fn) for fn in options.middleware.pre]
    if not options.disable_body_parser:
        dependencies.insert(0, Depends(parse_json_body))

    router = APIRouter(
        prefix=f"/{plural}" if prefix is None else prefix,
        tags=tags or [plural],
        dependencies=dependencies,
    )

    _register_routes(router, ResourceHandlers(info, options), options, get_session)

    if options.create_children:
        child_options = options.model_copy(update={
            "override_output_name": None,
            "relationships": (),
            "hooks": Hooks(),
            "create_children": False,
        })
        for child in info.children():
            _register_child_routes(router, child, child_options, get_session)

    logger.info(
        f"Registered controller for {info.name} at {router.prefix or '/'}",
        extra={"model": info.name},
    )
    return router


def _resolve_options(
    options: ControllerOptions | dict | None, overrides: dict,
) -> ControllerOptions:
    merged = merge_options(options, **overrides)
    if merged.limit is None:
        default_limit = get_settings().default_limit
        if default_limit is not None:
            merged = merged.model_copy(update={"limit": default_limit})
    return merged


def _register_routes(
    router: APIRouter,
    handlers: ResourceHandlers,
    options: ControllerOptions,
    get_session: Callable[..., Any],
) -> None:
    name = handlers.info.name
    toggles = options.handlers

    if toggles.get:
        @router.get("", name=f"list_{pluralize(name)}")
        async def list_records(
            request: Request, session: AsyncSession = Depends(get_session),
        ):
            return await handlers.list_all(request, session)

        @router.get("/{record_id}", name=f"get_{name}")
        async def get_record(
            record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.get_one(request, session, record_id)

    if toggles.post:
        @router.post("", name=f"create_{name}")
        async def create_record(
            request: Request, session: AsyncSession = Depends(get_session),
        ):
            return await handlers.create(request, session)

    if toggles.put:
        @router.put("/{record_id}", name=f"update_{name}")
        async def update_record(
            record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.update(request, session, record_id)

    if toggles.delete:
        @router.delete("/{record_id}", name=f"delete_{name}")
        async def delete_record(
            record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.delete(request, session, record_id)


def _register_child_routes(
    router: APIRouter,
    child: ChildRelation,
    options: ControllerOptions,
    get_session: Callable[..., Any],
) -> None:
    handlers = ResourceHandlers(describe_model(child.model), options, child.foreign_key)
    name = handlers.info.name
    toggles = options.handlers
    collection = f"/{{parent_id}}/{child.key}"
    member = f"{collection}/{{record_id}}"

    if toggles.get:
        @router.get(collection, name=f"list_{child.key}_by_parent")
        async def list_children(
            parent_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.list_all(request, session, parent_id=parent_id)

        @router.get(member, name=f"get_{name}_by_parent")
        async def get_child(
            parent_id: str, record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.get_one(request, session, record_id, parent_id=parent_id)

    if toggles.post:
        @router.post(collection, name=f"create_{name}_by_parent")
        async def create_child(
            parent_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.create(request, session, parent_id=parent_id)

    if toggles.put:
        @router.put(member, name=f"update_{name}_by_parent")
        async def update_child(
            parent_id: str, record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.update(request, session, record_id, parent_id=parent_id)

    if toggles.delete:
        @router.delete(member, name=f"delete_{name}_by_parent")
        async def delete_child(
            parent_id: str, record_id: str, request: Request,
            session: AsyncSession = Depends(get_session),
        ):
            return await handlers.delete(request, session, record_id, parent_id=parent_id)
