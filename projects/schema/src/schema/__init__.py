"""Schema parsing module for DBML Toolkit."""

from schema.conversion import ast_from_dict, ast_to_dict
from schema.errors import DuplicateTableNameError, ParseError
from schema.main import DEFAULT_DIALECT, DIALECTS, parse_schema
from schema.types import (
    DEFAULT_SCHEMA,
    Endpoint,
    Field,
    Reference,
    Schema,
    SchemaAST,
    Table,
)

__all__ = [
    "DEFAULT_DIALECT",
    "DEFAULT_SCHEMA",
    "DIALECTS",
    "DuplicateTableNameError",
    "Endpoint",
    "Field",
    "ParseError",
    "Reference",
    "Schema",
    "SchemaAST",
    "Table",
    "ast_from_dict",
    "ast_to_dict",
    "parse_schema",
]
