"""Errors raised while turning schema text into an AST."""

from __future__ import annotations


class ParseError(ValueError):
    """Schema text (or an untyped AST) that cannot be turned into a SchemaAST."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


class DuplicateTableNameError(ParseError):
    """Two tables in one schema share a name."""

    def __init__(self, table_name: str, schema_name: str) -> None:
        self.table_name = table_name
        self.schema_name = schema_name
        super().__init__(
            f'Table "{table_name}" is declared more than once '
            f'in schema "{schema_name}"',
        )
