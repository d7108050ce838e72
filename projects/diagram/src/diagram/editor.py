"""Live edit controller keeping a diagram in sync with schema text edits."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum, auto
from logging import getLogger
from queue import Empty, SimpleQueue

from schema import DEFAULT_DIALECT, ParseError, SchemaAST, parse_schema

from diagram.main import UnresolvedReference, build_diagram, unresolved_references
from diagram.schema_types import Diagram

logger = getLogger(__name__)

DEFAULT_DBML = """
Table users {
  id int [pk]
  name varchar
  created_at timestamp
}

Table posts {
  id int [pk]
  user_id int [ref: > users.id]
  title varchar
  body text [note: 'Content of the post']
}
"""

type Parser = Callable[[str, str], SchemaAST]
type Listener = Callable[["EditorState"], None]


def _empty_diagram() -> Diagram:
    return {"nodes": [], "edges": []}


class Phase(StrEnum):
    """Whether the controller is between cycles or running one."""

    IDLE = auto()
    PARSING = auto()


@dataclass(frozen=True)
class TextChanged:
    """The editing surface reports the full updated text."""

    text: str


@dataclass(frozen=True)
class EditorState:
    """Text and the last diagram successfully built from it.

    After a failed cycle ``text`` holds the edit while ``diagram`` and
    ``diagram_text`` still describe the last successful build.
    """

    text: str = ""
    diagram: Diagram = field(default_factory=_empty_diagram)
    diagram_text: str = ""
    error: ParseError | None = None
    warnings: tuple[UnresolvedReference, ...] = ()
    revision: int = 0

    @classmethod
    def empty(cls) -> EditorState:
        """State before any text has been built."""
        return cls()

    @property
    def is_stale(self) -> bool:
        """True when the held diagram does not reflect the current text."""
        return self.error is not None or self.text != self.diagram_text


def reduce(
    state: EditorState,
    event: TextChanged,
    *,
    dialect: str = DEFAULT_DIALECT,
    parser: Parser = parse_schema,
) -> EditorState:
    """Apply one text change: a complete parse-and-build cycle.

    On success the diagram is replaced entirely. On a parse failure the
    previous diagram is kept, the failure is logged and recorded in the
    returned state; it is never raised.
    """
    revision = state.revision + 1
    try:
        ast = parser(event.text, dialect)
    except ParseError as e:
        logger.warning("Parse error: %s", e)
        return replace(state, text=event.text, error=e, revision=revision)

    return EditorState(
        text=event.text,
        diagram=build_diagram(ast),
        diagram_text=event.text,
        error=None,
        warnings=tuple(unresolved_references(ast)),
        revision=revision,
    )


def initial_state(
    text: str = DEFAULT_DBML,
    *,
    dialect: str = DEFAULT_DIALECT,
) -> EditorState:
    """Build the first state from the default document."""
    return reduce(EditorState.empty(), TextChanged(text), dialect=dialect)


class EditSession:
    """Single-consumer loop applying text changes in arrival order.

    Every submitted change is applied with its own complete cycle; changes
    are neither coalesced nor reordered.
    """

    def __init__(
        self,
        state: EditorState | None = None,
        *,
        dialect: str = DEFAULT_DIALECT,
        parser: Parser = parse_schema,
    ) -> None:
        self._dialect = dialect
        self._parser = parser
        self._state = state if state is not None else EditorState.empty()
        self._phase = Phase.IDLE
        self._inbox: SimpleQueue[TextChanged] = SimpleQueue()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> EditorState:
        """State after the last applied change."""
        return self._state

    @property
    def phase(self) -> Phase:
        """Whether a cycle is running."""
        return self._phase

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` with every state produced by a cycle."""
        self._listeners.append(listener)

    def submit(self, text: str) -> None:
        """Queue a text change."""
        self._inbox.put(TextChanged(text))

    def drain(self) -> EditorState:
        """Apply all queued changes one at a time and return the final state."""
        while True:
            try:
                event = self._inbox.get_nowait()
            except Empty:
                return self._state

            self._phase = Phase.PARSING
            try:
                self._state = reduce(
                    self._state,
                    event,
                    dialect=self._dialect,
                    parser=self._parser,
                )
            finally:
                self._phase = Phase.IDLE

            for listener in self._listeners:
                listener(self._state)

    def update(self, text: str) -> EditorState:
        """Submit one change and apply it before returning."""
        self.submit(text)
        return self.drain()
