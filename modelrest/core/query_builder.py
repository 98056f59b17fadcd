"""Query Builder — pure translation of request parameters into a QueryDescriptor.

Invariants:
    - Pure: no IO, no ORM imports; the only side effect is the before_query hook
    - A path id always constrains where[primary_key]; a parent scope always
      constrains where[foreign_key]; query parameters cannot widen either
    - Malformed limit/offset/attributes are ignored silently, never rejected
    - The descriptor is fresh per request and discarded after the storage call

Design Decisions:
    - Dialect-neutral descriptor (Equals/Pattern conditions) instead of building
      SQLAlchemy statements here: repository owns the ORM, this module stays testable
      without a database (ADR: functional core, imperative shell)
    - filter[...] / search[...] read from the flat query-string keys, the way
      Starlette exposes them ("filter[title]" -> "Hello")
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from modelrest.core.errors import PrimaryKeyChangeError
from modelrest.core.options import ControllerOptions


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Equals:
    """field == value"""
    value: Any


@dataclass(frozen=True)
class Pattern:
    """field LIKE value (case_sensitive) or ILIKE value."""
    value: str
    case_sensitive: bool


Condition = Equals | Pattern


@dataclass
class QueryDescriptor:
    """Storage-agnostic description of one query."""
    where: dict[str, Condition] = field(default_factory=dict)
    limit: int | None = None
    offset: int | None = None
    include: list[str] = field(default_factory=list)
    attributes: list[str] | None = None
    returning: bool = False


@dataclass
class RequestParams:
    """What the query builder and hooks see of an inbound request."""
    path_id: str | None = None
    query: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    # (foreign key attribute, parent id) on child routes
    parent_scope: tuple[str, str] | None = None
    # The framework request, for before_query hooks that need headers/state
    request: Any = None


_BRACKET_KEY = re.compile(r"^(filter|search)\[([^\[\]]+)\]$")


def build_query(
    method: Method,
    params: RequestParams,
    options: ControllerOptions,
    primary_key: str,
    use_like: bool | None = None,
) -> QueryDescriptor:
    """Build the query descriptor for one request.

    `use_like` is the dialect-resolved search mode; when None the configured
    options.use_like is used as-is.
    """
    query = QueryDescriptor(include=list(options.relationships))

    if params.path_id is not None:
        query.where[primary_key] = Equals(params.path_id)

    if params.parent_scope is not None:
        foreign_key, parent_id = params.parent_scope
        query.where[foreign_key] = Equals(parent_id)

    if method is Method.POST:
        query.returning = True

    if method is Method.DELETE:
        query.limit = 1

    if method is Method.GET:
        _apply_pagination(query, params.query, options)
        _apply_filters(
            query, params.query,
            options.use_like if use_like is None else use_like,
            protected={primary_key} if params.path_id is not None else set(),
            parent_scope=params.parent_scope,
        )
        query.attributes = parse_attributes(params.query.get("attributes"))

    if options.hooks.before_query is not None:
        options.hooks.before_query(query, params)

    return query


def parse_attributes(raw: Any) -> list[str] | None:
    """Comma-separated projection list; anything unusable means no projection."""
    if not isinstance(raw, str):
        return None
    names = [name.strip() for name in raw.split(",") if name.strip()]
    return names or None


def check_primary_key_unchanged(
    primary_key: str,
    path_id: str,
    values: Mapping[str, Any],
    options: ControllerOptions,
    coerce: Callable[[Any], Any] | None = None,
) -> None:
    """Raise if the body would move the record to a different primary key.

    The path id is always a string while the body value may be a JSON number,
    so both sides go through `coerce` (the column type) before comparing;
    without it the comparison is textual.
    """
    if options.allow_changing_primary_key or primary_key not in values:
        return
    convert = coerce or str
    if convert(values[primary_key]) != convert(path_id):
        raise PrimaryKeyChangeError(primary_key)


def _apply_pagination(
    query: QueryDescriptor, qs: Mapping[str, str], options: ControllerOptions,
) -> None:
    limit = _parse_non_negative(qs.get("limit"))
    if limit is not None:
        query.limit = limit
    elif options.limit:
        query.limit = options.limit

    offset = _parse_non_negative(qs.get("offset"))
    if offset is not None:
        query.offset = offset


def _apply_filters(
    query: QueryDescriptor,
    qs: Mapping[str, str],
    use_like: bool,
    protected: set[str],
    parent_scope: tuple[str, str] | None,
) -> None:
    if parent_scope is not None:
        protected = protected | {parent_scope[0]}

    for key in qs.keys():
        match = _BRACKET_KEY.match(key)
        if not match:
            continue
        kind, field_name = match.groups()
        if field_name in protected:
            continue
        value = qs[key]
        if kind == "filter":
            query.where[field_name] = Equals(value)
        else:
            query.where[field_name] = Pattern(f"%{value}%", case_sensitive=use_like)


def _parse_non_negative(raw: Any) -> int | None:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None
