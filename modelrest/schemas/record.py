"""Record Schemas — pydantic input models generated from mapped columns.

Invariants:
    - Unknown body fields are rejected (extra="forbid"), one violation per field
    - On create, non-nullable columns without any default are required;
      on update every field is optional (partial update)
    - Query-string values are coerced to the column's Python type before they
      reach SQL; a value that cannot be coerced is a validation failure
    - record_to_dict() only touches columns and relationships that are already
      loaded; it never triggers lazy loads (async sessions forbid them)

Design Decisions:
    - pydantic.create_model over hand-written per-model schemas: the controller is
      generic, the mapper already knows the types (ADR: schemas at the boundary)
    - Schemas cached per (model, partial): built on first use, reused afterwards
"""

from functools import lru_cache
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, create_model
from sqlalchemy import Column, inspect

from modelrest.core.errors import FieldViolation, ValidationFailedError
from modelrest.db.introspection import ModelInfo, describe_model


def column_python_type(column: Column) -> Any:
    """Python type of a column, or Any when the type does not declare one."""
    try:
        return column.type.python_type
    except NotImplementedError:
        return Any


def _is_required(column: Column) -> bool:
    if column.nullable or column.default is not None or column.server_default is not None:
        return False
    # Integer primary keys are generated by the database
    if column.primary_key and column.autoincrement in (True, "auto"):
        return column_python_type(column) is not int
    return True


@lru_cache(maxsize=None)
def input_schema(info: ModelInfo, partial: bool) -> type[BaseModel]:
    """Pydantic model validating a request body for `info.model`."""
    fields: dict[str, Any] = {}
    for key, column in info.columns.items():
        py_type = column_python_type(column)
        if not partial and _is_required(column):
            fields[key] = (py_type, ...)
        else:
            fields[key] = (Optional[py_type], None)
    suffix = "Update" if partial else "Create"
    return create_model(
        f"{info.model.__name__}{suffix}",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )


def validate_input(info: ModelInfo, values: Any, partial: bool) -> dict:
    """Validate and coerce a request body; returns only the fields supplied."""
    if not isinstance(values, dict):
        raise ValidationFailedError([
            FieldViolation(f"request body must contain a '{info.name}' object", info.name),
        ])
    try:
        parsed = input_schema(info, partial).model_validate(values)
    except ValidationError as e:
        raise ValidationFailedError(_violations(e)) from e
    return parsed.model_dump(exclude_unset=True)


@lru_cache(maxsize=None)
def _adapter(py_type: Any) -> TypeAdapter:
    return TypeAdapter(py_type)


def coerce_value(info: ModelInfo, key: str, value: Any) -> Any:
    """Coerce a path/query-string value to the type of column `key`."""
    column = info.columns.get(key)
    if column is None:
        raise ValidationFailedError([FieldViolation(f"unknown field '{key}'", key)])
    py_type = column_python_type(column)
    if py_type is Any:
        return value
    try:
        return _adapter(py_type).validate_python(value)
    except ValidationError as e:
        raise ValidationFailedError([
            FieldViolation(f"{key}: {err['msg']}", key) for err in e.errors()
        ]) from e


def record_to_dict(
    record: Any, info: ModelInfo, attributes: list[str] | None = None,
) -> dict:
    """Serialize loaded columns (optionally projected) and loaded relationships."""
    state = inspect(record)
    keys = [k for k in info.columns if attributes is None or k in attributes]
    data = {k: getattr(record, k) for k in keys if k not in state.unloaded}

    for key, rel in info.relationships.items():
        if key in state.unloaded:
            continue
        related = getattr(record, key)
        related_info = _related_info(rel.mapper.class_)
        if related is None:
            data[key] = None
        elif isinstance(related, (list, tuple, set)):
            data[key] = [_columns_only(r, related_info) for r in related]
        else:
            data[key] = _columns_only(related, related_info)
    return data


def _columns_only(record: Any, info: ModelInfo) -> dict:
    state = inspect(record)
    return {k: getattr(record, k) for k in info.columns if k not in state.unloaded}


@lru_cache(maxsize=None)
def _related_info(model: type) -> ModelInfo:
    return describe_model(model)


def _violations(exc: ValidationError) -> list[FieldViolation]:
    violations = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        field_name = str(loc[0]) if loc else None
        violations.append(FieldViolation(err["msg"], field_name))
    return violations
