"""Error Taxonomy & Mapping — status/body for every error kind and operation.

Tests cover:
    - Each ErrorKind maps to its documented status
    - DATABASE_ERROR is 422 only on update
    - LIST maps everything to 500
    - Foreign exceptions become UNKNOWN
    - Bodies always carry a non-empty errors array
"""

import pytest

from modelrest.core.error_mapping import Operation, as_model_rest_error, error_response
from modelrest.core.errors import (
    DatabaseError,
    ErrorKind,
    FieldViolation,
    ForeignKeyViolationError,
    InvalidModelError,
    NotFoundError,
    UniqueConstraintError,
    UnknownError,
    ValidationFailedError,
)


def test_not_found_is_404():
    status, body = error_response(NotFoundError(), Operation.GET)
    assert status == 404
    assert body == {"errors": [{"message": "record not found"}]}


@pytest.mark.parametrize("error", [
    ValidationFailedError([FieldViolation("title cannot be null", "title")]),
    UniqueConstraintError([FieldViolation("slug must be unique", "slug")]),
])
def test_validation_and_unique_are_422_with_fields(error):
    status, body = error_response(error, Operation.CREATE)
    assert status == 422
    assert len(body["errors"]) == 1
    assert set(body["errors"][0]) == {"message", "field"}


def test_multiple_violations_all_reported():
    error = ValidationFailedError([
        FieldViolation("Field required", "title"),
        FieldViolation("Input should be a valid integer", "author_id"),
    ])
    _, body = error_response(error, Operation.CREATE)
    assert [e["field"] for e in body["errors"]] == ["title", "author_id"]


def test_foreign_key_is_400_with_fixed_message():
    status, body = error_response(ForeignKeyViolationError(), Operation.DELETE)
    assert status == 400
    assert body == {"errors": [{"message": "foreign key constraint error"}]}


def test_database_error_on_update_is_422():
    status, body = error_response(DatabaseError("value too long", "update"), Operation.UPDATE)
    assert status == 422
    assert body == {"errors": [{"message": "value too long"}]}


@pytest.mark.parametrize("operation", [Operation.GET, Operation.CREATE, Operation.DELETE])
def test_database_error_elsewhere_is_500(operation):
    status, _ = error_response(DatabaseError("boom", "x"), operation)
    assert status == 500


def test_unknown_exception_is_500_with_message():
    status, body = error_response(RuntimeError("hook exploded"), Operation.CREATE)
    assert status == 500
    assert body == {"errors": [{"message": "hook exploded"}]}


def test_exception_without_message_uses_class_name():
    _, body = error_response(KeyError(), Operation.GET)
    assert body["errors"][0]["message"]


@pytest.mark.parametrize("error", [
    NotFoundError(),
    ValidationFailedError([FieldViolation("bad", "x")]),
    ForeignKeyViolationError(),
    RuntimeError("x"),
])
def test_list_maps_everything_to_500(error):
    status, body = error_response(error, Operation.LIST)
    assert status == 500
    assert len(body["errors"]) == 1


def test_every_kind_is_mapped():
    samples = {
        ErrorKind.NOT_FOUND: NotFoundError(),
        ErrorKind.INVALID_MODEL: InvalidModelError(),
        ErrorKind.VALIDATION_FAILED: ValidationFailedError([FieldViolation("x")]),
        ErrorKind.UNIQUE_CONSTRAINT_VIOLATED: UniqueConstraintError([FieldViolation("x")]),
        ErrorKind.FOREIGN_KEY_VIOLATED: ForeignKeyViolationError(),
        ErrorKind.DATABASE_ERROR: DatabaseError("x", "find"),
        ErrorKind.UNKNOWN: UnknownError("x"),
    }
    assert set(samples) == set(ErrorKind)
    for operation in Operation:
        for error in samples.values():
            result = error_response(error, operation)
            assert result is not None
            assert result[1]["errors"]


def test_as_model_rest_error_passes_taxonomy_errors_through():
    error = NotFoundError()
    assert as_model_rest_error(error) is error
    assert as_model_rest_error(ValueError("x")).kind is ErrorKind.UNKNOWN


def test_invalid_model_error_is_a_type_error():
    assert isinstance(InvalidModelError(), TypeError)
