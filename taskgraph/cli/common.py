"""Shared utilities for taskgraph CLI commands.

- Tasks file option and load/save helpers
- Error reporting for TaskGraphError
- Small formatting helpers for refs and items
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from taskgraph.core.config import get_settings
from taskgraph.core.errors import TaskGraphError
from taskgraph.dependencies.identifiers import TaskRef
from taskgraph.dependencies.models import TaskCollection, WorkItem
from taskgraph.storage.json_store import load_collection, save_collection

console = Console()

STATUS_COLORS = {
    "pending": "yellow",
    "in-progress": "blue",
    "review": "magenta",
    "done": "green",
    "deferred": "dim",
    "cancelled": "dim",
}

# Reusable tasks file option
# Usage: def my_command(file: Path | None = file_option) -> None:
file_option = typer.Option(
    None,
    "--file",
    "-f",
    help="Path to the tasks file (defaults to TASKGRAPH_TASKS_FILE)",
)


def tasks_path(file: Path | None) -> Path:
    """Get the tasks file to use, falling back to settings."""
    return file if file is not None else get_settings().tasks_file


def load(file: Path | None) -> tuple[Path, TaskCollection]:
    """Load the collection behind the file option."""
    path = tasks_path(file)
    return path, load_collection(path)


def save(collection: TaskCollection, path: Path) -> None:
    """Persist an edited collection."""
    save_collection(collection, path)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print TaskGraphError as a red message and exit with status 1."""
    try:
        yield
    except TaskGraphError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def format_refs(refs: list[TaskRef]) -> str:
    """Format refs as a comma-separated list, or '-' when empty."""
    return ", ".join(str(ref) for ref in refs) or "-"


def format_status(item: WorkItem) -> str:
    """Format an item's status with its colour markup."""
    color = STATUS_COLORS.get(item.status.value, "white")
    return f"[{color}]{item.status.value}[/{color}]"
