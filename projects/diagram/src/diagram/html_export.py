"""HTML export functionality for ER diagrams."""

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from diagram.schema_types import Diagram, DiagramEdge, DiagramNode

# Card geometry used to place the canvas and connector lines
NODE_WIDTH = 200
NODE_HEIGHT = 160
MARGIN = 20


def _edge_origin(edge: DiagramEdge) -> str:
    """Recover "table.field" from an edge id of the form "table.field-target"."""
    return edge["id"].removesuffix(f"-{edge['target']}")


def _connector(
    edge: DiagramEdge,
    positions: dict[str, tuple[int, int]],
) -> dict[str, int] | None:
    """Line from the bottom of the source card to the top of the target card."""
    if edge["source"] not in positions or edge["target"] not in positions:
        return None
    sx, sy = positions[edge["source"]]
    tx, ty = positions[edge["target"]]
    return {
        "x1": sx + MARGIN + NODE_WIDTH // 2,
        "y1": sy + MARGIN + NODE_HEIGHT,
        "x2": tx + MARGIN + NODE_WIDTH // 2,
        "y2": ty + MARGIN,
    }


def _canvas_size(nodes: list[DiagramNode]) -> tuple[int, int]:
    if not nodes:
        return (NODE_WIDTH + 2 * MARGIN, NODE_HEIGHT + 2 * MARGIN)
    width = max(node["position"]["x"] for node in nodes) + NODE_WIDTH + 2 * MARGIN
    height = max(node["position"]["y"] for node in nodes) + NODE_HEIGHT + 2 * MARGIN
    return (width, height)


def diagram_to_html(diagram: Diagram, title: str = "ER Diagram") -> str:
    """Render a standalone HTML page for a built diagram."""
    template_dir = Path(__file__).parent / "templates"
    env = Environment(loader=FileSystemLoader(template_dir), autoescape=True)
    template = env.get_template("diagram.html")

    nodes = diagram["nodes"]
    positions = {
        node["id"]: (node["position"]["x"], node["position"]["y"]) for node in nodes
    }
    lines = [
        line
        for edge in diagram["edges"]
        if (line := _connector(edge, positions)) is not None
    ]
    relationships: list[dict[str, Any]] = [
        {"label": edge["label"], "origin": _edge_origin(edge), "target": edge["target"]}
        for edge in diagram["edges"]
    ]
    width, height = _canvas_size(nodes)

    return template.render(
        title=title,
        nodes=nodes,
        lines=lines,
        relationships=relationships,
        width=width,
        height=height,
        node_width=NODE_WIDTH,
        margin=MARGIN,
        # Keep "</script>" inside string values from closing the script block
        diagram_json=json.dumps(diagram, indent=2).replace("</", "<\\/"),
    )
