"""TypedDict schemas for the renderer-facing diagram structure."""

from typing import Literal, NotRequired, TypedDict


class Position(TypedDict):
    """Top-left corner of a node on the canvas."""

    x: int
    y: int


class FieldData(TypedDict):
    """A field as displayed inside a table node."""

    name: str
    type: str
    pk: bool
    note: NotRequired[str]  # Omitted when the field has no note


class NodeData(TypedDict):
    """Payload rendered by the table node component."""

    tableName: str  # noqa: N815
    fields: list[FieldData]


class DiagramNode(TypedDict):
    """One table of the diagram, identified by its table name."""

    id: str
    type: Literal["tableNode"]
    position: Position
    data: NodeData


class DiagramEdge(TypedDict):
    """Reference from a field of the source table to the target table."""

    id: str  # "{source}.{field}-{target}"
    source: str
    target: str
    type: Literal["smoothstep"]
    label: str


class Diagram(TypedDict):
    """Complete node and edge set produced by one build."""

    nodes: list[DiagramNode]
    edges: list[DiagramEdge]
