"""ER diagram generation and live editing package."""

from diagram.editor import (
    DEFAULT_DBML,
    EditorState,
    EditSession,
    Phase,
    TextChanged,
    initial_state,
    reduce,
)
from diagram.html_export import diagram_to_html
from diagram.main import (
    NODE_SPACING,
    ROW_Y,
    UnresolvedReference,
    build_diagram,
    edge_relations,
    make_edge_id,
    relationship_label,
    unresolved_references,
)

__all__ = [
    "DEFAULT_DBML",
    "NODE_SPACING",
    "ROW_Y",
    "EditSession",
    "EditorState",
    "Phase",
    "TextChanged",
    "UnresolvedReference",
    "build_diagram",
    "diagram_to_html",
    "edge_relations",
    "make_edge_id",
    "initial_state",
    "reduce",
    "relationship_label",
    "unresolved_references",
]
