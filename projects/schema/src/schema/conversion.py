"""Validate untyped, JSON-shaped ASTs on ingress and emit them on egress."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from schema.errors import ParseError
from schema.types import (
    DEFAULT_SCHEMA,
    RELATIONS,
    Endpoint,
    Field,
    Reference,
    Relation,
    Schema,
    SchemaAST,
    Table,
)


def _fail(path: str, expected: str, value: object) -> ParseError:
    return ParseError(f"{path}: expected {expected}, got {type(value).__name__}")


def _mapping(value: object, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise _fail(path, "an object", value)
    return value


def _list(value: object, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise _fail(path, "a list", value)
    return value


def _string(value: object, path: str) -> str:
    if not isinstance(value, str) or not value:
        raise _fail(path, "a non-empty string", value)
    return value


def _optional_string(value: object, path: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise _fail(path, "a string", value)
    return value


def _endpoint(data: object, path: str) -> Endpoint:
    endpoint = _mapping(data, path)
    fields = _list(endpoint.get("fields", []), f"{path}.fields")
    return Endpoint(
        table_name=_optional_string(endpoint.get("table"), f"{path}.table"),
        field_names=tuple(
            _string(name, f"{path}.fields[{i}]") for i, name in enumerate(fields)
        ),
        schema_name=_optional_string(endpoint.get("schema"), f"{path}.schema"),
    )


def _relation(value: object, path: str) -> Relation:
    if value not in RELATIONS:
        msg = f"{path}: expected one of {', '.join(RELATIONS)}, got {value!r}"
        raise ParseError(msg)
    return value  # type: ignore[return-value]


def _reference(data: object, path: str) -> Reference:
    reference = _mapping(data, path)
    return Reference(
        relation=_relation(reference.get("relation", ">"), f"{path}.relation"),
        source=_endpoint(reference.get("source", {}), f"{path}.source"),
        target=_endpoint(reference.get("target"), f"{path}.target"),
        name=_optional_string(reference.get("name"), f"{path}.name"),
    )


def _field(data: object, path: str) -> Field:
    field = _mapping(data, path)
    pk = field.get("pk", False)
    if not isinstance(pk, bool):
        raise _fail(f"{path}.pk", "a boolean", pk)
    references = _list(field.get("references", []), f"{path}.references")
    return Field(
        name=_string(field.get("name"), f"{path}.name"),
        type=_string(field.get("type"), f"{path}.type"),
        is_primary_key=pk,
        note=_optional_string(field.get("note"), f"{path}.note"),
        references=tuple(
            _reference(ref, f"{path}.references[{i}]")
            for i, ref in enumerate(references)
        ),
    )


def _table(data: object, path: str) -> Table:
    table = _mapping(data, path)
    fields = _list(table.get("fields", []), f"{path}.fields")
    return Table(
        name=_string(table.get("name"), f"{path}.name"),
        note=_optional_string(table.get("note"), f"{path}.note"),
        fields=tuple(
            _field(field, f"{path}.fields[{i}]") for i, field in enumerate(fields)
        ),
    )


def _schema(data: object, path: str) -> Schema:
    schema = _mapping(data, path)
    tables = _list(schema.get("tables", []), f"{path}.tables")
    return Schema(
        name=_optional_string(schema.get("name"), f"{path}.name") or DEFAULT_SCHEMA,
        tables=tuple(
            _table(table, f"{path}.tables[{i}]") for i, table in enumerate(tables)
        ),
    )


def ast_from_dict(data: object) -> SchemaAST:
    """Convert a JSON-shaped AST into a SchemaAST, validating every value.

    Raises:
        ParseError: Naming the path of the first value with the wrong shape.
    """
    root = _mapping(data, "$")
    schemas = _list(root.get("schemas"), "schemas")
    return SchemaAST(
        schemas=tuple(
            _schema(schema, f"schemas[{i}]") for i, schema in enumerate(schemas)
        ),
    )


def _endpoint_to_dict(endpoint: Endpoint) -> dict[str, Any]:
    return {
        "table": endpoint.table_name,
        "fields": list(endpoint.field_names),
        "schema": endpoint.schema_name,
    }


def ast_to_dict(ast: SchemaAST) -> dict[str, Any]:
    """Emit a SchemaAST in the shape ``ast_from_dict`` accepts."""
    return {
        "schemas": [
            {
                "name": schema.name,
                "tables": [
                    {
                        "name": table.name,
                        "note": table.note,
                        "fields": [
                            {
                                "name": field.name,
                                "type": field.type,
                                "pk": field.is_primary_key,
                                "note": field.note,
                                "references": [
                                    {
                                        "relation": ref.relation,
                                        "name": ref.name,
                                        "source": _endpoint_to_dict(ref.source),
                                        "target": _endpoint_to_dict(ref.target),
                                    }
                                    for ref in field.references
                                ],
                            }
                            for field in table.fields
                        ],
                    }
                    for table in schema.tables
                ],
            }
            for schema in ast.schemas
        ],
    }
