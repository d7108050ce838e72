"""Typed AST for parsed schema-definition text."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from schema.errors import DuplicateTableNameError

DEFAULT_SCHEMA = "public"

# Relation symbols, left endpoint first: "posts.user_id > users.id" is many-to-one
type Relation = Literal[">", "<", "-", "<>"]
RELATIONS: tuple[Relation, ...] = (">", "<", "-", "<>")


@dataclass(frozen=True)
class Endpoint:
    """One side of a relation."""

    table_name: str | None
    field_names: tuple[str, ...] = ()
    schema_name: str | None = None


@dataclass(frozen=True)
class Reference:
    """Relation in which a field is on the referencing (first) side."""

    relation: Relation
    source: Endpoint
    target: Endpoint  # Second endpoint of the relation
    name: str | None = None


@dataclass(frozen=True)
class Field:
    """A column declared inside a table block."""

    name: str
    type: str
    is_primary_key: bool = False
    note: str | None = None
    references: tuple[Reference, ...] = ()


@dataclass(frozen=True)
class Table:
    """A table and its fields in declaration order."""

    name: str
    fields: tuple[Field, ...] = ()
    note: str | None = None


@dataclass(frozen=True)
class Schema:
    """A named group of tables.

    Table names are the identity of diagram nodes, so two tables sharing a
    name within one schema are rejected at construction time.
    """

    name: str
    tables: tuple[Table, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for table in self.tables:
            if table.name in seen:
                raise DuplicateTableNameError(table.name, self.name)
            seen.add(table.name)


@dataclass(frozen=True)
class SchemaAST:
    """Result of one parse call: schemas, default schema first."""

    schemas: tuple[Schema, ...] = field(default_factory=tuple)

    @property
    def tables(self) -> tuple[Table, ...]:
        """Tables of the first schema, the only ones a diagram shows."""
        return self.schemas[0].tables if self.schemas else ()
