"""Command line interface for DBML Toolkit."""

import logging
import sys
import time
from collections.abc import Callable
from json import dumps
from pathlib import Path
from sys import stdout
from typing import Literal

from cyclopts import App
from diagram import (
    EditorState,
    EditSession,
    build_diagram,
    diagram_to_html,
    edge_relations,
    relationship_label,
)
from diagram.schema_types import Diagram
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from schema import ParseError, SchemaAST, ast_to_dict, parse_schema

app = App(help="DBML Toolkit CLI tool")


type Format = Literal["json", "html", "table"]
type Dialect = Literal["dbml", "json"]


console = Console()
err_console = Console(stderr=True)

# Constants
SOURCE_EXTENSIONS = {".dbml": "dbml", ".json": "json"}
DEFAULT_POLL_INTERVAL = 1.0


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def configure_logging(*, verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def validate_source_location(source_location: Path) -> None:
    """Validate that the source exists and has a supported extension."""
    if not source_location.is_file():
        print_error(f"Source file does not exist: {source_location}")
        sys.exit(1)
    if source_location.suffix.lower() not in SOURCE_EXTENSIONS:
        print_error(
            f"Source file has invalid extension: {', '.join(SOURCE_EXTENSIONS)}",
        )
        sys.exit(1)


def resolve_dialect(source_location: Path, dialect: Dialect | None) -> str:
    """Use the explicit dialect, or infer it from the file extension."""
    return dialect or SOURCE_EXTENSIONS[source_location.suffix.lower()]


def load_schema(source_location: Path, dialect: Dialect | None) -> SchemaAST:
    """Read and parse a source file, exiting on failure."""
    validate_source_location(source_location)
    try:
        text = source_location.read_text(encoding="utf-8")
    except (PermissionError, OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read source file: {source_location} ({e})")
        sys.exit(1)

    try:
        return parse_schema(text, resolve_dialect(source_location, dialect))
    except ParseError as e:
        print_error(f"Failed to parse {source_location}: {e}")
        sys.exit(1)


def format_diagram_table(diagram: Diagram, relations: dict[str, str]) -> None:
    """Format nodes and edges as rich tables."""
    nodes = Table(title="Tables")
    nodes.add_column("Table", style="bold cyan")
    nodes.add_column("Fields")
    nodes.add_column("Primary Key", style="bold yellow")
    nodes.add_column("Position")
    for node in diagram["nodes"]:
        fields = node["data"]["fields"]
        nodes.add_row(
            node["id"],
            str(len(fields)),
            ", ".join(field["name"] for field in fields if field["pk"]),
            f"({node['position']['x']}, {node['position']['y']})",
        )
    console.print(nodes)

    if not diagram["edges"]:
        console.print("No relationships found.")
        return

    edges = Table(title="Relationships")
    edges.add_column("Edge", style="bold cyan")
    edges.add_column("From")
    edges.add_column("To")
    edges.add_column("Cardinality", style="bold yellow")
    for edge in diagram["edges"]:
        edges.add_row(
            edge["id"],
            edge["source"],
            edge["target"],
            relationship_label(relations.get(edge["id"], "")),
        )
    console.print(edges)


@app.command
def diagram(
    source_location: Path,
    fmt: Format = "json",
    *,
    dialect: Dialect | None = None,
    verbose: bool = False,
) -> None:
    """Build the ER diagram of a schema file."""
    configure_logging(verbose=verbose)
    print_info(f"Source: {source_location}")
    print_info(f"Output format: {fmt}")

    schema_ast = load_schema(source_location, dialect)
    diagram_data = build_diagram(schema_ast)

    if fmt == "json":
        stdout.write(dumps(diagram_data))
    elif fmt == "html":
        stdout.write(diagram_to_html(diagram_data, title=source_location.stem))
    elif fmt == "table":
        format_diagram_table(diagram_data, edge_relations(schema_ast))

    print_success(
        f"Diagram built: {len(diagram_data['nodes'])} tables, "
        f"{len(diagram_data['edges'])} relationships",
    )


@app.command
def ast(
    source_location: Path,
    *,
    dialect: Dialect | None = None,
    verbose: bool = False,
) -> None:
    """Print the parsed schema AST as JSON."""
    configure_logging(verbose=verbose)
    schema_ast = load_schema(source_location, dialect)
    stdout.write(dumps(ast_to_dict(schema_ast)))


def _status_reporter(
    source_location: Path,
    output: Path | None,
) -> Callable[[EditorState], None]:
    """Build the listener that reports each edit cycle."""

    def report(state: EditorState) -> None:
        if state.error is not None:
            # The parse error itself is logged by the controller
            print_info(
                f"Revision {state.revision}: diagram kept from the last valid text",
            )
            return

        diagram_data = state.diagram
        if output:
            try:
                output.write_text(
                    diagram_to_html(diagram_data, title=source_location.stem),
                    encoding="utf-8",
                )
            except (PermissionError, OSError) as e:
                print_error(f"Failed to write output file: {e}")
        print_success(
            f"Revision {state.revision}: {len(diagram_data['nodes'])} tables, "
            f"{len(diagram_data['edges'])} relationships",
        )

    return report


@app.command
def watch(
    source_location: Path,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    output: Path | None = None,
    dialect: Dialect | None = None,
    verbose: bool = False,
) -> None:
    """Rebuild the diagram every time the schema file changes."""
    configure_logging(verbose=verbose)
    validate_source_location(source_location)
    if interval <= 0:
        print_error(f"Interval must be positive, got {interval}")
        sys.exit(1)

    session = EditSession(dialect=resolve_dialect(source_location, dialect))
    session.subscribe(_status_reporter(source_location, output))
    print_info(f"Watching {source_location} (Ctrl-C to stop)")

    last_text: str | None = None
    try:
        while True:
            try:
                text = source_location.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                print_error(f"Cannot read source file: {e}")
            else:
                if text != last_text:
                    last_text = text
                    session.update(text)
            time.sleep(interval)
    except KeyboardInterrupt:
        print_info("Stopped watching")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
