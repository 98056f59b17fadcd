"""Model Repository — find/create/save/destroy for one mapped model over an AsyncSession.

Invariants:
    - Every SQLAlchemy failure leaves this module as a ModelRestError subclass
      (UniqueConstraintError, ForeignKeyViolationError, ValidationFailedError,
      DatabaseError); handlers never see driver exceptions
    - The session is rolled back before a translated error is raised
    - Only eager-loaded relationships (QueryDescriptor.include) are touched;
      nothing here relies on lazy loading
    - destroy() is a bulk DELETE by primary key: database-level FK rules decide
      what happens to dependants, ORM-side cascades are not emulated

Design Decisions:
    - Repository per request, bound to the request's session: no shared state
      across requests (ADR: request-local mutable state only)
    - Constraint kind taken from the SQLSTATE alone when the driver exposes one;
      message text is read only when it does not (SQLite exposes no SQLSTATE)
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload

from modelrest.core.errors import (
    DatabaseError,
    FieldViolation,
    ForeignKeyViolationError,
    ModelRestError,
    UniqueConstraintError,
    ValidationFailedError,
)
from modelrest.core.query_builder import Equals, Pattern, QueryDescriptor
from modelrest.db.introspection import ModelInfo
from modelrest.schemas.record import coerce_value

logger = logging.getLogger(__name__)

_UNIQUE_STATES = {"23505"}
_FOREIGN_KEY_STATES = {"23503"}
_NOT_NULL_STATES = {"23502"}

# "UNIQUE constraint failed: posts.title"   (sqlite)
# "Key (title)=(x) already exists."          (postgres)
_SQLITE_COLUMNS = re.compile(r"constraint failed: ([\w., ]+)", re.IGNORECASE)
_PG_KEY_COLUMNS = re.compile(r"Key \(([^)]+)\)")
_PG_NULL_COLUMN = re.compile(r'null value in column "([^"]+)"')


class ModelRepository:
    """Storage operations for one model, bound to one session."""

    def __init__(self, session: AsyncSession, info: ModelInfo):
        self.session = session
        self.info = info

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    async def find_one(self, query: QueryDescriptor) -> Any | None:
        async with self._translate("find"):
            statement = self._select(query).limit(1)
            result = await self.session.execute(statement)
            return result.scalars().first()

    async def find_all(self, query: QueryDescriptor) -> list[Any]:
        async with self._translate("find"):
            result = await self.session.execute(self._select(query))
            return list(result.scalars().all())

    async def create(self, values: dict, query: QueryDescriptor) -> Any:
        async with self._translate("create"):
            record = self.info.model(**values)
            self.session.add(record)
            await self.session.commit()
            if query.returning:
                await self.session.refresh(record)
            return record

    def assign(self, record: Any, values: dict) -> None:
        """Copy supplied fields onto the loaded record (no IO)."""
        for key, value in values.items():
            setattr(record, key, value)

    async def save(self, record: Any) -> Any:
        async with self._translate("update"):
            await self.session.commit()
            await self.session.refresh(record)
            return record

    async def destroy(self, query: QueryDescriptor) -> int:
        """Delete the records matching `query`; returns the affected count."""
        async with self._translate("delete"):
            primary_key = getattr(self.info.model, self.info.primary_key)
            ids_statement = select(primary_key).where(*self._conditions(query))
            if query.limit is not None:
                ids_statement = ids_statement.limit(query.limit)
            ids = list((await self.session.execute(ids_statement)).scalars().all())
            if not ids:
                return 0
            result = await self.session.execute(
                delete(self.info.model)
                .where(primary_key.in_(ids))
                .execution_options(synchronize_session=False),
            )
            await self.session.commit()
            return result.rowcount

    # ─── Statement building ─────────────────────────────────────

    def _conditions(self, query: QueryDescriptor) -> list:
        conditions = []
        for key, condition in query.where.items():
            column = self._column(key)
            match condition:
                case Equals(value=value):
                    conditions.append(column == coerce_value(self.info, key, value))
                case Pattern(value=pattern, case_sensitive=True):
                    conditions.append(column.like(pattern))
                case Pattern(value=pattern):
                    conditions.append(column.ilike(pattern))
        return conditions

    def _select(self, query: QueryDescriptor) -> Select:
        model = self.info.model
        statement = select(model).where(*self._conditions(query))

        for name in query.include:
            statement = statement.options(selectinload(getattr(model, name)))

        projected = [
            getattr(model, k) for k in (query.attributes or [])
            if k in self.info.columns
        ]
        if projected:
            statement = statement.options(load_only(*projected))

        primary_key = getattr(model, self.info.primary_key)
        statement = statement.order_by(primary_key)
        if query.limit is not None:
            statement = statement.limit(query.limit)
        if query.offset is not None:
            statement = statement.offset(query.offset)
        return statement

    def _column(self, key: str):
        if key not in self.info.columns:
            raise ValidationFailedError([FieldViolation(f"unknown field '{key}'", key)])
        return getattr(self.info.model, key)

    # ─── Error translation ──────────────────────────────────────

    @asynccontextmanager
    async def _translate(self, operation: str) -> AsyncGenerator[None, None]:
        """Roll back and re-raise SQLAlchemy errors as taxonomy errors."""
        try:
            yield
        except ModelRestError:
            raise
        except IntegrityError as e:
            await self.session.rollback()
            logger.info(
                f"Integrity error on {self.info.name} {operation}: {e.orig}",
                extra={"model": self.info.name, "operation": operation},
            )
            raise self._classify_integrity(e) from e
        except DBAPIError as e:
            await self.session.rollback()
            logger.error(
                f"DB driver error on {self.info.name} {operation}: {e.orig}",
                extra={"model": self.info.name, "operation": operation},
            )
            raise DatabaseError(str(e.orig), operation) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"SQLAlchemy error on {self.info.name} {operation}: {e}",
                extra={"model": self.info.name, "operation": operation},
            )
            raise DatabaseError("Database operation failed", operation) from e

    def _classify_integrity(self, exc: IntegrityError) -> ModelRestError:
        orig = exc.orig
        state = str(getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None) or "")
        message = str(orig)
        kind = _kind_from_state(state) if state else _kind_from_text(message.lower())

        if kind == "unique":
            return UniqueConstraintError([
                FieldViolation(f"{name} must be unique", name)
                for name in self._columns_in(message)
            ] or [FieldViolation("unique constraint violated")])

        if kind == "foreign_key":
            return ForeignKeyViolationError()

        if kind == "not_null":
            return ValidationFailedError([
                FieldViolation(f"{self.info.name}.{name} cannot be null", name)
                for name in self._columns_in(message)
            ] or [FieldViolation("a required field was null")])

        return DatabaseError(message, "write")

    def _columns_in(self, message: str) -> list[str]:
        """Attribute names mentioned in a constraint error message."""
        names: list[str] = []
        if match := _PG_NULL_COLUMN.search(message):
            names = [match.group(1)]
        elif match := _PG_KEY_COLUMNS.search(message):
            names = [n.strip() for n in match.group(1).split(",")]
        elif match := _SQLITE_COLUMNS.search(message):
            names = [n.strip().split(".")[-1] for n in match.group(1).split(",")]
        by_column = {column.name: key for key, column in self.info.columns.items()}
        return [by_column.get(n, n) for n in names]


def _kind_from_state(state: str) -> str | None:
    # Class 23 SQLSTATEs: integrity constraint violations
    if state in _UNIQUE_STATES:
        return "unique"
    if state in _FOREIGN_KEY_STATES:
        return "foreign_key"
    if state in _NOT_NULL_STATES:
        return "not_null"
    return None


def _kind_from_text(lowered: str) -> str | None:
    if "unique" in lowered or "duplicate" in lowered:
        return "unique"
    if "foreign key" in lowered:
        return "foreign_key"
    if "not null" in lowered or "null value" in lowered:
        return "not_null"
    return None
