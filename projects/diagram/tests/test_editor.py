"""Tests for the live edit controller."""

import pytest

from diagram import (
    DEFAULT_DBML,
    EditorState,
    EditSession,
    Phase,
    TextChanged,
    initial_state,
    reduce,
)
from schema import ParseError, SchemaAST, parse_schema

VALID_DBML = """
Table users {
  id int [pk]
}

Table posts {
  id int [pk]
  user_id int [ref: > users.id]
}
"""

SINGLE_TABLE_DBML = """
Table tags {
  id int [pk]
}
"""

BROKEN_DBML = """
Table users {
  id int [pk]
"""


@pytest.fixture(name="built_state")
def create_built_state() -> EditorState:
    """State after one successful cycle."""
    return reduce(EditorState.empty(), TextChanged(VALID_DBML))


def test_initial_state_is_not_empty() -> None:
    """Test that the default document yields a diagram on first load."""
    state = initial_state()

    assert state.text == DEFAULT_DBML
    assert state.error is None
    assert [node["id"] for node in state.diagram["nodes"]] == ["users", "posts"]
    assert [edge["id"] for edge in state.diagram["edges"]] == ["posts.user_id-users"]
    assert not state.is_stale


def test_successful_cycle_replaces_diagram(built_state: EditorState) -> None:
    """Test that a valid edit replaces the whole node and edge set."""
    state = reduce(built_state, TextChanged(SINGLE_TABLE_DBML))

    assert [node["id"] for node in state.diagram["nodes"]] == ["tags"]
    assert state.diagram["edges"] == []
    assert state.diagram_text == SINGLE_TABLE_DBML
    assert state.revision == built_state.revision + 1


def test_failed_cycle_keeps_previous_diagram(built_state: EditorState) -> None:
    """Test that a parse failure leaves the held diagram untouched."""
    state = reduce(built_state, TextChanged(BROKEN_DBML))

    assert state.diagram == built_state.diagram
    assert state.diagram_text == VALID_DBML
    assert state.text == BROKEN_DBML
    assert isinstance(state.error, ParseError)
    assert state.is_stale


def test_failure_on_first_build_leaves_empty_diagram() -> None:
    """Test that an invalid first document produces no nodes or edges."""
    state = reduce(EditorState.empty(), TextChanged(BROKEN_DBML))

    assert state.diagram == {"nodes": [], "edges": []}
    assert state.error is not None


def test_oversized_json_number_keeps_previous_diagram(
    built_state: EditorState,
) -> None:
    """Test that JSON the decoder rejects outright still fails softly."""
    state = reduce(built_state, TextChanged("1" * 5000), dialect="json")

    assert state.diagram == built_state.diagram
    assert isinstance(state.error, ParseError)


def test_failure_is_logged(
    built_state: EditorState,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that parse errors are reported through logging."""
    reduce(built_state, TextChanged(BROKEN_DBML))
    assert "Parse error" in caplog.text


def test_recovery_clears_error(built_state: EditorState) -> None:
    """Test that fixing the text clears the error and staleness."""
    failed = reduce(built_state, TextChanged(BROKEN_DBML))
    recovered = reduce(failed, TextChanged(VALID_DBML))

    assert recovered.error is None
    assert not recovered.is_stale
    assert recovered.diagram == built_state.diagram


def test_same_text_twice_gives_equal_diagrams(built_state: EditorState) -> None:
    """Test idempotent re-parse."""
    again = reduce(built_state, TextChanged(VALID_DBML))
    assert again.diagram == built_state.diagram


def test_unknown_reference_never_crashes() -> None:
    """Test that a reference to an undeclared table is an error or a warning."""
    state = reduce(
        initial_state(),
        TextChanged("Table orders {\n  customer_id int [ref: > customers.id]\n}\n"),
    )

    node_ids = {node["id"] for node in state.diagram["nodes"]}
    assert all(edge["target"] in node_ids for edge in state.diagram["edges"])
    assert state.error is not None or state.warnings


def test_unknown_reference_in_json_dialect_is_warned() -> None:
    """Test the drop-and-warn policy through the JSON dialect."""
    text = """
    {"schemas": [{"name": "public", "tables": [
        {"name": "orders", "fields": [
            {"name": "customer_id", "type": "int",
             "references": [{"relation": ">", "target": {"table": "customers"}}]}
        ]}
    ]}]}
    """
    state = reduce(EditorState.empty(), TextChanged(text), dialect="json")

    assert state.error is None
    assert state.diagram["edges"] == []
    assert [str(warning) for warning in state.warnings] == [
        "orders.customer_id references unknown table 'customers'",
    ]


def test_custom_parser() -> None:
    """Test that the parser collaborator can be replaced."""
    calls: list[tuple[str, str]] = []

    def parser(text: str, dialect: str) -> SchemaAST:
        calls.append((text, dialect))
        return SchemaAST()

    state = reduce(
        EditorState.empty(),
        TextChanged("anything"),
        dialect="x",
        parser=parser,
    )

    assert calls == [("anything", "x")]
    assert state.diagram == {"nodes": [], "edges": []}


def test_session_applies_changes_in_order() -> None:
    """Test that every queued change gets its own cycle, in arrival order."""
    session = EditSession()
    seen: list[EditorState] = []
    session.subscribe(seen.append)

    session.submit(VALID_DBML)
    session.submit(BROKEN_DBML)
    session.submit(SINGLE_TABLE_DBML)
    final = session.drain()

    assert [state.revision for state in seen] == [1, 2, 3]
    texts = [state.text for state in seen]
    assert texts == [VALID_DBML, BROKEN_DBML, SINGLE_TABLE_DBML]
    assert seen[1].error is not None
    assert seen[1].diagram == seen[0].diagram
    assert final is session.state
    assert [node["id"] for node in final.diagram["nodes"]] == ["tags"]


def test_session_phase() -> None:
    """Test that the session reports PARSING only while a cycle runs."""
    phases: list[Phase] = []

    def parser(text: str, dialect: str) -> SchemaAST:
        phases.append(session.phase)
        return parse_schema(text, dialect)

    session = EditSession(parser=parser)
    assert session.phase == Phase.IDLE

    session.update(VALID_DBML)

    assert phases == [Phase.PARSING]
    assert session.phase == Phase.IDLE


def test_session_starts_from_given_state() -> None:
    """Test seeding a session with an existing state."""
    session = EditSession(initial_state())
    state = session.update(BROKEN_DBML)

    assert state.revision == 2
    assert [node["id"] for node in state.diagram["nodes"]] == ["users", "posts"]


def test_drain_without_changes() -> None:
    """Test that draining an empty inbox returns the current state."""
    session = EditSession()
    assert session.drain() == EditorState.empty()
