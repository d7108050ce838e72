"""Parse schema-definition text into the typed SchemaAST."""

from __future__ import annotations

import json
import re
from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydbml import PyDBML
from pydbml.exceptions import (
    AttributeMissingError,
    ColumnNotFoundError,
    DatabaseValidationError,
    DBMLError,
    DuplicateReferenceError,
    IndexNotFoundError,
    TableNotFoundError,
    UnknownDatabaseError,
    ValidationError,
)
from pyparsing import ParseBaseException

from schema.conversion import ast_from_dict
from schema.errors import DuplicateTableNameError, ParseError
from schema.types import (
    DEFAULT_SCHEMA,
    Endpoint,
    Field,
    Reference,
    Schema,
    SchemaAST,
    Table,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = getLogger(__name__)

DEFAULT_DIALECT = "dbml"
DIALECTS = ("dbml", "json")

# pydbml reports semantic problems (unknown tables in refs, bad settings,
# duplicates) with its own exception types
DBML_ERRORS = (
    AttributeMissingError,
    ColumnNotFoundError,
    DatabaseValidationError,
    DBMLError,
    DuplicateReferenceError,
    IndexNotFoundError,
    TableNotFoundError,
    UnknownDatabaseError,
    ValidationError,
)

_DUPLICATE_TABLE = re.compile(
    r"^Table (?P<schema>[^.]+)\.(?P<table>.+) is already in the database",
)

type ColumnKey = tuple[str, str, str]  # (schema, table, column)


def _note_text(note: Any) -> str | None:  # noqa: ANN401
    """Flatten a pydbml Note (or plain string) to text, empty notes to None."""
    text = getattr(note, "text", note)
    return str(text) if text else None


def _columns(value: Any) -> list[Any]:  # noqa: ANN401
    """Normalize a reference side to a list of pydbml columns."""
    if isinstance(value, list | tuple):
        return list(value)
    return [value]


def _column_key(column: Any) -> ColumnKey:  # noqa: ANN401
    table = column.table
    return (table.schema or DEFAULT_SCHEMA, table.name, column.name)


def _endpoint(columns: list[Any]) -> Endpoint:
    """Build an endpoint from the columns on one side of a pydbml reference."""
    if not columns:
        return Endpoint(table_name=None)
    table = columns[0].table
    return Endpoint(
        table_name=table.name,
        field_names=tuple(column.name for column in columns),
        schema_name=table.schema or DEFAULT_SCHEMA,
    )


def _index_references(refs: Iterable[Any]) -> dict[ColumnKey, list[Reference]]:
    """Map every referencing column to the relations it starts."""
    index: dict[ColumnKey, list[Reference]] = defaultdict(list)
    for ref in refs:
        sources = _columns(ref.col1)
        reference = Reference(
            relation=ref.type,
            source=_endpoint(sources),
            target=_endpoint(_columns(ref.col2)),
            name=ref.name or None,
        )
        for column in sources:
            index[_column_key(column)].append(reference)
    return index


def _type_name(column_type: Any) -> str:  # noqa: ANN401
    """Column types are strings, except enum-typed columns which carry the Enum."""
    if isinstance(column_type, str):
        return column_type
    return str(getattr(column_type, "name", column_type))


def _table_from_dbml(
    table: Any,  # noqa: ANN401
    references: dict[ColumnKey, list[Reference]],
) -> Table:
    schema_name = table.schema or DEFAULT_SCHEMA
    return Table(
        name=table.name,
        note=_note_text(table.note),
        fields=tuple(
            Field(
                name=column.name,
                type=_type_name(column.type),
                is_primary_key=bool(column.pk),
                note=_note_text(column.note),
                references=tuple(
                    references.get((schema_name, table.name, column.name), ()),
                ),
            )
            for column in table.columns
        ),
    )


def _group_by_schema(tables: list[Table], schema_names: list[str]) -> SchemaAST:
    """Group tables by schema, default schema first, others by first appearance."""
    grouped: dict[str, list[Table]] = {DEFAULT_SCHEMA: []}
    for table, schema_name in zip(tables, schema_names, strict=True):
        grouped.setdefault(schema_name, []).append(table)
    return SchemaAST(
        schemas=tuple(
            Schema(name=name, tables=tuple(members))
            for name, members in grouped.items()
            if members
        ),
    )


def _semantic_error(error: Exception) -> ParseError:
    """Convert a pydbml error, keeping duplicate tables distinguishable."""
    message = str(error) or type(error).__name__
    if isinstance(error, DatabaseValidationError) and (
        match := _DUPLICATE_TABLE.match(message)
    ):
        return DuplicateTableNameError(match["table"], match["schema"])
    return ParseError(message)


def _parse_dbml(text: str) -> SchemaAST:
    try:
        database = PyDBML(text)
    except ParseBaseException as e:
        raise ParseError(e.msg, e.lineno, e.col) from e
    except (*DBML_ERRORS, RecursionError) as e:
        raise _semantic_error(e) from e

    references = _index_references(database.refs)
    tables = [_table_from_dbml(table, references) for table in database.tables]
    schema_names = [table.schema or DEFAULT_SCHEMA for table in database.tables]
    return _group_by_schema(tables, schema_names)


def _parse_json(text: str) -> SchemaAST:
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        # Integer digit limits and nesting depth fail outside JSONDecodeError,
        # which alone knows the location
        message = getattr(e, "msg", None) or str(e) or type(e).__name__
        raise ParseError(
            message,
            getattr(e, "lineno", None),
            getattr(e, "colno", None),
        ) from e
    return ast_from_dict(data)


def parse_schema(text: str, dialect: str = DEFAULT_DIALECT) -> SchemaAST:
    """Parse schema-definition text in the given dialect.

    Args:
        text: Full source text.
        dialect: ``"dbml"`` for DBML source, ``"json"`` for a JSON-encoded AST.

    Returns:
        The typed AST.

    Raises:
        DuplicateTableNameError: A schema declares the same table twice.
        ParseError: The text does not conform to the dialect, or describes
            an invalid schema.
    """
    if dialect == "dbml":
        ast = _parse_dbml(text)
    elif dialect == "json":
        ast = _parse_json(text)
    else:
        msg = f"Unsupported dialect '{dialect}', expected one of: {', '.join(DIALECTS)}"
        raise ParseError(msg)

    logger.debug(
        "Parsed %d schema(s), %d table(s) in the first schema",
        len(ast.schemas),
        len(ast.tables),
    )
    return ast
