"""Route Handlers — list / get-one / create / update / delete for one model.

Invariants:
    - Received → Query-Built → Storage-Invoked → Success | Failed, once per request
    - Every failure is caught here, logged once, and mapped by error_response();
      nothing propagates past the handler
    - The primary-key check on update runs before any storage call
    - Delete answers 200 {"status": "ok"} whatever the affected-row count;
      child-scoped delete looks the record up first so a wrong parent is a 404
    - Hooks run synchronously; an exception inside a hook is a 500

Design Decisions:
    - One ResourceHandlers instance per (model, parent scope): top-level and
      child routes share the same code path, only the scope differs
    - use_like resolved per request from the session's dialect: PostgreSQL has a
      native ILIKE, so case-insensitive search is used there regardless of options
"""

import inspect
import logging
from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from modelrest.core.error_mapping import Operation, error_response
from modelrest.core.errors import (
    FieldViolation,
    NotFoundError,
    PrimaryKeyChangeError,
    ValidationFailedError,
)
from modelrest.core.options import ControllerOptions
from modelrest.core.output_formatter import format_output
from modelrest.core.query_builder import (
    Method,
    QueryDescriptor,
    RequestParams,
    build_query,
    check_primary_key_unchanged,
)
from modelrest.db.introspection import ModelInfo
from modelrest.infrastructure.repository import ModelRepository
from modelrest.schemas.record import coerce_value, record_to_dict, validate_input

logger = logging.getLogger(__name__)

NATIVE_ILIKE_DIALECTS = {"postgresql"}


def resolve_use_like(options: ControllerOptions, dialect_name: str) -> bool:
    """Case-sensitive LIKE unless disabled or the dialect has a native ILIKE."""
    return options.use_like and dialect_name not in NATIVE_ILIKE_DIALECTS


class ResourceHandlers:
    """The five CRUD handlers for one model, optionally scoped under a parent."""

    def __init__(
        self,
        info: ModelInfo,
        options: ControllerOptions,
        parent_key: str | None = None,
    ):
        self.info = info
        self.options = options
        # Foreign key attribute on this model pointing at the parent (child routes)
        self.parent_key = parent_key

    # ─── Operations ─────────────────────────────────────────────

    async def list_all(
        self, request: Request, session: AsyncSession, parent_id: str | None = None,
    ) -> Response:
        try:
            repo = ModelRepository(session, self.info)
            query = self._query(Method.GET, request, repo, parent_id=parent_id)
            # Relations are not looked up on the collection by default: slow on big tables
            if not self.options.include_relations_in_get_all:
                query.include = []
            records = await repo.find_all(query)
            body = self._envelope(
                [record_to_dict(r, self.info, query.attributes) for r in records],
            )
            return await self._respond(request, status.HTTP_200_OK, body)
        except Exception as e:
            return await self._fail(request, e, Operation.LIST)

    async def get_one(
        self,
        request: Request,
        session: AsyncSession,
        record_id: str,
        parent_id: str | None = None,
    ) -> Response:
        try:
            repo = ModelRepository(session, self.info)
            query = self._query(
                Method.GET, request, repo, record_id=record_id, parent_id=parent_id,
            )
            record = await repo.find_one(query)
            if record is None:
                raise NotFoundError()
            body = self._envelope(record_to_dict(record, self.info, query.attributes))
            return await self._respond(request, status.HTTP_200_OK, body)
        except Exception as e:
            return await self._fail(request, e, Operation.GET)

    async def create(
        self, request: Request, session: AsyncSession, parent_id: str | None = None,
    ) -> Response:
        try:
            repo = ModelRepository(session, self.info)
            payload = self._payload(request)
            if parent_id is not None:
                if isinstance(payload, dict) and self.info.primary_key in payload:
                    raise PrimaryKeyChangeError(
                        self.info.primary_key, "cannot set record primary key",
                    )
                if isinstance(payload, dict):
                    payload = {**payload, self.parent_key: parent_id}
            values = validate_input(self.info, payload, partial=False)
            query = self._query(
                Method.POST, request, repo, parent_id=parent_id, body=values,
            )
            record = await repo.create(values, query)
            self._run_record_hook("after_create", record)
            body = self._envelope(record_to_dict(record, self.info))
            return await self._respond(request, status.HTTP_201_CREATED, body)
        except Exception as e:
            return await self._fail(request, e, Operation.CREATE)

    async def update(
        self,
        request: Request,
        session: AsyncSession,
        record_id: str,
        parent_id: str | None = None,
    ) -> Response:
        try:
            repo = ModelRepository(session, self.info)
            payload = self._payload(request)
            if isinstance(payload, dict):
                check_primary_key_unchanged(
                    self.info.primary_key, record_id, payload, self.options,
                    coerce=lambda v: coerce_value(self.info, self.info.primary_key, v),
                )
                if parent_id is not None:
                    self._check_parent_unchanged(payload, parent_id)
            values = validate_input(self.info, payload, partial=True)

            query = self._query(
                Method.PUT, request, repo,
                record_id=record_id, parent_id=parent_id, body=values,
            )
            record = await repo.find_one(query)
            if record is None:
                raise NotFoundError()

            repo.assign(record, values)
            self._run_record_hook("before_update", record)
            record = await repo.save(record)
            self._run_record_hook("after_update", record)

            body = self._envelope(record_to_dict(record, self.info))
            return await self._respond(request, status.HTTP_200_OK, body)
        except Exception as e:
            return await self._fail(request, e, Operation.UPDATE)

    async def delete(
        self,
        request: Request,
        session: AsyncSession,
        record_id: str,
        parent_id: str | None = None,
    ) -> Response:
        try:
            repo = ModelRepository(session, self.info)
            query = self._query(
                Method.DELETE, request, repo, record_id=record_id, parent_id=parent_id,
            )
            if parent_id is not None and await repo.find_one(query) is None:
                raise NotFoundError()
            affected = await repo.destroy(query)
            # TODO: decide whether affected == 0 should be a 404 like get-one
            logger.debug(
                f"Deleted {affected} {self.info.name} record(s)",
                extra={"model": self.info.name, "operation": "delete"},
            )
            return await self._respond(request, status.HTTP_200_OK, {"status": "ok"})
        except Exception as e:
            return await self._fail(request, e, Operation.DELETE)

    # ─── Helpers ────────────────────────────────────────────────

    def _query(
        self,
        method: Method,
        request: Request,
        repo: ModelRepository,
        record_id: str | None = None,
        parent_id: str | None = None,
        body: Any = None,
    ) -> QueryDescriptor:
        params = RequestParams(
            path_id=record_id,
            query=request.query_params,
            body=body,
            parent_scope=(self.parent_key, parent_id) if parent_id is not None else None,
            request=request,
        )
        use_like = resolve_use_like(self.options, repo.dialect_name)
        return build_query(method, params, self.options, self.info.primary_key, use_like)

    def _payload(self, request: Request) -> Any:
        """The `{model name: {...}}` part of the body parsed by parse_json_body.

        With disable_body_parser the host's own middleware is expected to have
        stored the decoded body on request.state.body.
        """
        error = getattr(request.state, "body_error", None)
        if error is not None:
            raise ValidationFailedError(
                [FieldViolation(f"request body is not valid JSON: {error}")],
            )
        body = getattr(request.state, "body", None)
        if not isinstance(body, dict):
            return None
        return body.get(self.info.name)

    def _check_parent_unchanged(self, payload: dict, parent_id: str) -> None:
        if self.parent_key in payload and str(payload[self.parent_key]) != str(parent_id):
            raise PrimaryKeyChangeError(self.parent_key, "cannot move record to another parent")

    def _run_record_hook(self, name: str, record: Any) -> None:
        hook = getattr(self.options.hooks, name)
        if hook is not None:
            hook(self.info.model, record)

    def _envelope(self, results: Any) -> dict:
        return format_output(results, self.info.name, self.options)

    async def _respond(self, request: Request, status_code: int, body: dict) -> Response:
        response: Response = JSONResponse(
            status_code=status_code, content=jsonable_encoder(body),
        )
        for middleware in self.options.middleware.post:
            result = middleware(request, response)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                response = result
        return response

    async def _fail(self, request: Request, exc: Exception, operation: Operation) -> Response:
        status_code, body = error_response(exc, operation)
        log = logger.error if status_code >= 500 else logger.info
        log(
            f"{operation.value} {self.info.name} failed: {exc}",
            exc_info=status_code >= 500,
            extra={
                "model": self.info.name,
                "operation": operation.value,
                "status_code": status_code,
                "path": request.url.path,
                "error_code": getattr(exc, "code", None),
            },
        )
        return await self._respond(request, status_code, body)
