"""Tests for the standalone HTML export."""

import json

import pytest

from diagram import build_diagram, diagram_to_html
from diagram.schema_types import Diagram
from schema import parse_schema


@pytest.fixture(name="blog_diagram")
def create_blog_diagram() -> Diagram:
    """Diagram of the users/posts schema."""
    return build_diagram(
        parse_schema(
            """
            Table users {
              id int [pk]
            }

            Table posts {
              id int [pk]
              user_id int [ref: > users.id]
              body text [note: 'Content of the post']
            }
            """,
        ),
    )


def test_html_contains_tables_and_relationships(blog_diagram: Diagram) -> None:
    """Test that every node and edge is rendered."""
    html = diagram_to_html(blog_diagram, title="Blog")

    assert "<title>Blog</title>" in html
    assert 'id="users"' in html
    assert 'id="posts"' in html
    assert "Content of the post" in html
    assert "<td>posts to users</td><td>posts.user_id</td><td>users</td>" in html
    assert html.count("<line ") == 1


def test_html_embeds_diagram_json(blog_diagram: Diagram) -> None:
    """Test that the diagram data is embedded as JSON."""
    html = diagram_to_html(blog_diagram)
    payload = html.split("const diagramData = ", 1)[1].split(";\n", 1)[0]
    assert json.loads(payload) == blog_diagram


def test_html_escapes_values() -> None:
    """Test that names and notes cannot inject markup."""
    diagram: Diagram = {
        "nodes": [
            {
                "id": "t",
                "type": "tableNode",
                "position": {"x": 0, "y": 50},
                "data": {
                    "tableName": "<b>t</b>",
                    "fields": [
                        {"name": "x", "type": "int", "pk": False, "note": "</script>"},
                    ],
                },
            },
        ],
        "edges": [],
    }
    html = diagram_to_html(diagram)

    assert "<b>t</b>" not in html
    assert "&lt;b&gt;t&lt;/b&gt;" in html
    assert html.count("</script>") == 1


def test_empty_diagram() -> None:
    """Test that an empty diagram still renders a page."""
    html = diagram_to_html({"nodes": [], "edges": []})
    assert "<h2>Relationships</h2>" in html
    assert "<line " not in html
