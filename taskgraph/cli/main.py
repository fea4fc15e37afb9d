"""Main CLI entry point using Typer."""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from taskgraph import __version__
from taskgraph.cli.common import (
    console,
    file_option,
    format_refs,
    format_status,
    handle_errors,
    load,
    save,
)
from taskgraph.core.config import get_settings
from taskgraph.core.logging import configure_logging
from taskgraph.dependencies import (
    SelectionOutcome,
    Task,
    add_dependency,
    fix,
    next_task,
    parse_task_ref,
    remove_dependency,
    resolve_entity,
    validate,
)

app = typer.Typer(
    name="taskgraph",
    help="taskgraph - keep task dependencies consistent and pick the next task",
    add_completion=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]taskgraph[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug logging",
    ),
) -> None:
    """
    taskgraph - dependency validation, repair and next-task selection.

    Operates on a JSON task document (see --file on each command).
    """
    settings = get_settings()
    if debug:
        settings = settings.model_copy(update={"debug": True})
    configure_logging(settings)


@app.command("validate-dependencies")
def validate_dependencies(
    file: Path | None = file_option,
) -> None:
    """
    Identify invalid dependencies without fixing them.

    Exits with status 1 when any violation is found.
    """
    with handle_errors():
        path, collection = load(file)

    console.print(f"[blue]Validating dependencies in {escape(str(path))}[/blue]")
    violations = validate(collection)

    if not violations:
        console.print("[green]All dependencies are valid[/green]")
        return

    table = Table(title=f"{len(violations)} Dependency Issues")
    table.add_column("Kind", style="cyan")
    table.add_column("Task", style="bold")
    table.add_column("Details")
    for violation in violations:
        table.add_row(
            violation.kind.value,
            str(violation.entity) if violation.entity else "-",
            violation.message,
        )
    console.print(table)
    console.print("[yellow]Run fix-dependencies to repair them[/yellow]")
    raise typer.Exit(1)


@app.command("fix-dependencies")
def fix_dependencies(
    file: Path | None = file_option,
) -> None:
    """
    Fix invalid dependencies automatically.
    """
    with handle_errors():
        path, collection = load(file)
        fixed, actions = fix(collection)

        if not actions:
            console.print("[green]No dependency issues found, nothing to fix[/green]")
            return

        save(fixed, path)

    table = Table(title=f"Removed {len(actions)} Dependencies")
    table.add_column("Task", style="bold")
    table.add_column("Removed", style="cyan")
    table.add_column("Reason")
    for action in actions:
        table.add_row(str(action.entity), str(action.removed_ref), action.reason.value)
    console.print(table)
    console.print(f"[green]Saved repaired tasks to {escape(str(path))}[/green]")


@app.command("add-dependency")
def add_dependency_command(
    task_id: str = typer.Option(..., "--id", "-i", help="Task ID to add dependency to"),
    depends_on: str = typer.Option(
        ...,
        "--depends-on",
        "-d",
        help="Task ID that will become a dependency",
    ),
    file: Path | None = file_option,
) -> None:
    """
    Add a dependency to a task or subtask.
    """
    with handle_errors():
        path, collection = load(file)
        updated = add_dependency(collection, task_id, depends_on)
        save(updated, path)

    console.print(f"[green]Task {task_id} now depends on {depends_on}[/green]")


@app.command("remove-dependency")
def remove_dependency_command(
    task_id: str = typer.Option(..., "--id", "-i", help="Task ID to remove dependency from"),
    depends_on: str = typer.Option(
        ...,
        "--depends-on",
        "-d",
        help="Task ID to remove as a dependency",
    ),
    file: Path | None = file_option,
) -> None:
    """
    Remove a dependency from a task or subtask.
    """
    with handle_errors():
        path, collection = load(file)
        updated = remove_dependency(collection, task_id, depends_on)
        save(updated, path)

    console.print(f"[green]Task {task_id} no longer depends on {depends_on}[/green]")


@app.command("next")
def next_command(
    subtasks: bool = typer.Option(
        False,
        "--subtasks",
        "-s",
        help="Offer subtasks instead of their parent task",
    ),
    file: Path | None = file_option,
) -> None:
    """
    Show the next task to work on based on dependencies and status.
    """
    with handle_errors():
        _, collection = load(file)

    result = next_task(collection, include_subtasks=subtasks)

    if result.outcome == SelectionOutcome.ALL_COMPLETE:
        console.print("[green]All tasks are complete[/green]")
        return
    if result.outcome == SelectionOutcome.ALL_BLOCKED:
        console.print("[yellow]No eligible tasks: every open task has unmet dependencies[/yellow]")
        return

    item = result.item
    console.print(f"[bold]Next task: {result.ref}[/bold] {escape(item.title)}")
    console.print(f"Priority: {item.priority.value}  Status: {format_status(item)}")
    console.print(f"Dependencies: {format_refs(item.dependencies)}")
    if item.description:
        console.print(f"\n{escape(item.description)}")


@app.command()
def show(
    task_id: str = typer.Argument(..., help="Task ID to show (N or N.M)"),
    file: Path | None = file_option,
) -> None:
    """
    Display detailed information about a specific task.
    """
    with handle_errors():
        _, collection = load(file)
        ref = parse_task_ref(task_id.strip())
        item = resolve_entity(collection, ref)

    console.print(f"[bold]Task {ref}:[/bold] {escape(item.title)}")
    console.print(f"Status: {format_status(item)}")
    console.print(f"Priority: {item.priority.value}")
    console.print(f"Dependencies: {format_refs(item.dependencies)}")
    if item.description:
        console.print(f"\n[bold]Description:[/bold]\n{escape(item.description)}")
    if item.details:
        console.print(f"\n[bold]Details:[/bold]\n{escape(item.details)}")
    if item.test_strategy:
        console.print(f"\n[bold]Test Strategy:[/bold]\n{escape(item.test_strategy)}")

    if isinstance(item, Task) and item.subtasks:
        table = Table(title="Subtasks")
        table.add_column("ID", style="cyan")
        table.add_column("Title", style="bold")
        table.add_column("Status")
        table.add_column("Dependencies")
        for subtask in item.subtasks:
            table.add_row(
                str(item.subtask_ref(subtask)),
                escape(subtask.title),
                format_status(subtask),
                format_refs(subtask.dependencies),
            )
        console.print(table)
