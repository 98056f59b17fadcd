"""Model Introspection — reads what the controller needs from a mapped class.

Invariants:
    - describe_model() raises InvalidModelError for anything that is not a
      mapped class with exactly one primary-key column
    - Attribute names (mapper keys), never raw column names, are exposed:
      they are what request bodies and query strings use
    - Child relations are one-to-many relationships with a single-column
      foreign key back to the parent

Design Decisions:
    - Computed once at controller construction; handlers never call inspect()
    - Relationships resolved lazily by SQLAlchemy (configure_mappers) so models
      using string references work as long as they are imported first
"""

from dataclasses import dataclass, field

from sqlalchemy import Column, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper, RelationshipProperty, configure_mappers
from sqlalchemy.orm.exc import UnmappedColumnError
from sqlalchemy.orm.interfaces import ONETOMANY

from modelrest.core.errors import InvalidModelError
from modelrest.core.naming import model_name


@dataclass(frozen=True)
class ChildRelation:
    """A one-to-many relationship exposed as nested routes."""
    key: str
    model: type
    foreign_key: str


@dataclass(frozen=True, eq=False)
class ModelInfo:
    model: type
    name: str
    primary_key: str
    columns: dict[str, Column] = field(default_factory=dict)
    relationships: dict[str, RelationshipProperty] = field(default_factory=dict)

    def children(self) -> list[ChildRelation]:
        """One-to-many relationships that can be mounted as child routes."""
        result = []
        for key, rel in self.relationships.items():
            if rel.direction is not ONETOMANY:
                continue
            pairs = rel.local_remote_pairs or []
            if len(pairs) != 1:
                continue
            child_mapper = rel.mapper
            remote_column = pairs[0][1]
            try:
                fk_prop = child_mapper.get_property_by_column(remote_column)
            except UnmappedColumnError:
                continue
            result.append(ChildRelation(key, child_mapper.class_, fk_prop.key))
        return result


def describe_model(model: object) -> ModelInfo:
    """Introspect a mapped class, failing fast if it cannot back a controller."""
    if not isinstance(model, type):
        raise InvalidModelError()
    try:
        mapper = inspect(model)
    except NoInspectionAvailable:
        raise InvalidModelError() from None
    if not isinstance(mapper, Mapper):
        raise InvalidModelError()

    configure_mappers()

    if len(mapper.primary_key) != 1:
        raise InvalidModelError(
            f"'{model.__name__}' must have exactly one primary key column",
        )
    primary_key = mapper.get_property_by_column(mapper.primary_key[0]).key

    columns = {prop.key: prop.columns[0] for prop in mapper.column_attrs}
    relationships = {rel.key: rel for rel in mapper.relationships}

    return ModelInfo(
        model=model,
        name=model_name(model),
        primary_key=primary_key,
        columns=columns,
        relationships=relationships,
    )
