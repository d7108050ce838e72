"""Main module for deriving ER diagrams from a parsed schema."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from diagram.schema_types import Diagram, DiagramEdge, DiagramNode, FieldData

if TYPE_CHECKING:
    from schema import Field, Reference, SchemaAST, Table

logger = getLogger(__name__)

# Single-row layout: nodes left to right in declaration order
NODE_SPACING = 250
ROW_Y = 50

RELATIONSHIP_LABELS = {
    "-": "1:1",
    "<": "1:N",
    ">": "N:1",
    "<>": "N:N",
}


class UnresolvedReference(NamedTuple):
    """A field reference whose target table is not a node of the diagram."""

    source_table: str
    source_field: str
    target_table: str

    def __str__(self) -> str:
        return (
            f"{self.source_table}.{self.source_field} references unknown "
            f"table '{self.target_table}'"
        )


def relationship_label(relation: str) -> str:
    """Cardinality shorthand for a relation symbol, empty if unknown."""
    return RELATIONSHIP_LABELS.get(relation, "")


def make_edge_id(source_table: str, source_field: str, target_table: str) -> str:
    """Edge identity: referencing table and field plus the target table."""
    return f"{source_table}.{source_field}-{target_table}"


def edge_relations(ast: SchemaAST) -> dict[str, str]:
    """Relation symbol of each field's edge, keyed by edge id."""
    return {
        make_edge_id(table.name, field.name, target): field.references[0].relation
        for table in ast.tables
        for field in table.fields
        if (target := _target_table(ast, field))
    }


def _build_field(field: Field) -> FieldData:
    data: FieldData = {
        "name": field.name,
        "type": field.type,
        "pk": field.is_primary_key,
    }
    if field.note:
        data["note"] = field.note
    return data


def _build_node(table: Table, index: int, spacing: int, row_y: int) -> DiagramNode:
    return {
        "id": table.name,
        "type": "tableNode",
        "position": {"x": index * spacing, "y": row_y},
        "data": {
            "tableName": table.name,
            "fields": [_build_field(field) for field in table.fields],
        },
    }


def _primary_reference(field: Field) -> Reference | None:
    """Only the first relation of a field contributes an edge."""
    return field.references[0] if field.references else None


def _target_table(ast: SchemaAST, field: Field) -> str | None:
    reference = _primary_reference(field)
    if reference is None or not reference.target.table_name:
        return None
    target = reference.target
    if target.schema_name and ast.schemas and target.schema_name != ast.schemas[0].name:
        # Other schemas are not drawn, use a qualified name so it cannot
        # resolve against a same-named table of the first schema
        return f"{target.schema_name}.{target.table_name}"
    return target.table_name


def unresolved_references(ast: SchemaAST) -> list[UnresolvedReference]:
    """List references whose target table is not drawn, in field order."""
    table_names = {table.name for table in ast.tables}
    return [
        UnresolvedReference(table.name, field.name, target)
        for table in ast.tables
        for field in table.fields
        if (target := _target_table(ast, field)) and target not in table_names
    ]


def _build_edges(ast: SchemaAST) -> list[DiagramEdge]:
    table_names = {table.name for table in ast.tables}
    edges: dict[str, DiagramEdge] = {}

    for table in ast.tables:
        for field in table.fields:
            target = _target_table(ast, field)
            if target is None:
                continue
            if target not in table_names:
                logger.warning(
                    "Dropping edge: %s",
                    UnresolvedReference(table.name, field.name, target),
                )
                continue

            edge_id = make_edge_id(table.name, field.name, target)
            if edge_id in edges:
                logger.debug("Duplicate edge %s ignored", edge_id)
                continue
            edges[edge_id] = {
                "id": edge_id,
                "source": table.name,
                "target": target,
                "type": "smoothstep",
                "label": f"{table.name} to {target}",
            }

    return list(edges.values())


def build_diagram(
    ast: SchemaAST,
    *,
    spacing: int = NODE_SPACING,
    row_y: int = ROW_Y,
) -> Diagram:
    """Build the node and edge set for the first schema of a parsed AST.

    Every edge's source and target are ids of nodes in the returned set;
    references to tables outside it are dropped (see ``unresolved_references``).
    """
    if len(ast.schemas) > 1:
        logger.debug(
            "Ignoring %d table(s) outside schema '%s'",
            sum(len(schema.tables) for schema in ast.schemas[1:]),
            ast.schemas[0].name,
        )

    return {
        "nodes": [
            _build_node(table, index, spacing, row_y)
            for index, table in enumerate(ast.tables)
        ],
        "edges": _build_edges(ast),
    }
