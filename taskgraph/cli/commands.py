"""Task structure commands: creation, removal, subtasks and status."""

from pathlib import Path

import typer
from rich.markup import escape

from taskgraph.cli.common import (
    console,
    file_option,
    format_refs,
    handle_errors,
    load,
    save,
)
from taskgraph.cli.main import app
from taskgraph.core.config import get_settings
from taskgraph.core.errors import TaskGraphError
from taskgraph.dependencies import (
    Task,
    add_subtask,
    add_task,
    clear_subtasks,
    convert_subtask_to_task,
    convert_task_to_subtask,
    find_entity,
    parse_task_ref,
    parse_task_refs,
    remove_subtask,
    remove_task,
    set_status,
)


@app.command("remove-task")
def remove_task_command(
    task_ids: str = typer.Option(
        ...,
        "--id",
        "-i",
        help='ID(s) of the task(s) or subtask(s) to remove (e.g. "5", "5.2" or "5,6,7")',
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    file: Path | None = file_option,
) -> None:
    """
    Remove one or more tasks or subtasks permanently.

    Dependencies on removed items are stripped from every other task.
    """
    with handle_errors():
        path, collection = load(file)
        refs = parse_task_refs(task_ids)

    missing = [ref for ref in refs if find_entity(collection, ref) is None]
    if missing:
        console.print(f"[red]Error: The following tasks were not found: {format_refs(missing)}[/red]")
        raise typer.Exit(1)

    if not yes:
        for ref in refs:
            item = find_entity(collection, ref)
            console.print(f"[bold]Task {ref}:[/bold] {escape(item.title)}")
            if isinstance(item, Task) and item.subtasks:
                console.print(
                    f"[yellow]This task has {len(item.subtasks)} subtasks that will also be deleted[/yellow]"
                )
        if not typer.confirm("Permanently delete these tasks?", default=False):
            console.print("[blue]Task deletion cancelled.[/blue]")
            raise typer.Exit()

    removed = []
    failed = []
    for ref in refs:
        try:
            collection, summary = remove_task(collection, ref)
        except TaskGraphError as e:
            # An earlier removal in this batch may already have taken it out.
            failed.append((ref, escape(str(e))))
            continue
        removed.append(ref)
        if summary.touched:
            console.print(
                f"[dim]Removed references to {ref} from: {format_refs(summary.touched_refs)}[/dim]"
            )

    if removed:
        with handle_errors():
            save(collection, path)
        console.print(f"[green]Successfully removed {format_refs(removed)}[/green]")
    for ref, error in failed:
        console.print(f"[red]Failed to remove {ref}: {error}[/red]")
    if not removed:
        raise typer.Exit(1)


@app.command("remove-subtask")
def remove_subtask_command(
    subtask_ids: str = typer.Option(
        ...,
        "--id",
        "-i",
        help='Subtask ID(s) in format "parentId.subtaskId" (comma-separated for several)',
    ),
    convert: bool = typer.Option(
        False,
        "--convert",
        "-c",
        help="Convert the subtask to a standalone task instead of deleting it",
    ),
    file: Path | None = file_option,
) -> None:
    """
    Remove a subtask from its parent task, or promote it to a task.
    """
    with handle_errors():
        path, collection = load(file)
        for ref in parse_task_refs(subtask_ids):
            if convert:
                collection, new_task = convert_subtask_to_task(collection, ref)
                console.print(
                    f"[green]Subtask {ref} converted to task {new_task.id}[/green] "
                    f"(dependencies: {format_refs(new_task.dependencies)})"
                )
            else:
                collection, _ = remove_subtask(collection, ref)
                console.print(f"[green]Subtask {ref} removed[/green]")
        save(collection, path)


@app.command("add-task")
def add_task_command(
    title: str = typer.Option(..., "--title", "-t", help="Task title"),
    description: str = typer.Option(..., "--description", "-d", help="Task description"),
    details: str = typer.Option("", "--details", help="Implementation details"),
    test_strategy: str = typer.Option("", "--test-strategy", help="Test strategy"),
    dependencies: str | None = typer.Option(
        None,
        "--dependencies",
        help="Comma-separated list of task IDs this task depends on",
    ),
    priority: str | None = typer.Option(
        None,
        "--priority",
        help="Task priority (high, medium, low)",
    ),
    file: Path | None = file_option,
) -> None:
    """
    Add a new top-level task.
    """
    with handle_errors():
        path, collection = load(file)
        deps = parse_task_refs(dependencies) if dependencies else []
        collection, task = add_task(
            collection,
            title=title,
            description=description,
            details=details,
            test_strategy=test_strategy,
            priority=priority or get_settings().default_priority,
            dependencies=deps,
        )
        save(collection, path)

    console.print(f"[green]Added new task #{task.id}[/green]")
    if task.dependencies:
        console.print(f"Dependencies: {format_refs(task.dependencies)}")


@app.command("add-subtask")
def add_subtask_command(
    parent: str = typer.Option(..., "--parent", "-p", help="Parent task ID"),
    task_id: str | None = typer.Option(
        None,
        "--task-id",
        "-i",
        help="Existing task ID to convert to a subtask",
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Title for the new subtask"),
    description: str = typer.Option("", "--description", help="Description for the new subtask"),
    details: str = typer.Option("", "--details", help="Implementation details"),
    dependencies: str | None = typer.Option(
        None,
        "--dependencies",
        help="Comma-separated list of dependency IDs",
    ),
    status: str = typer.Option("pending", "--status", "-s", help="Status for the new subtask"),
    priority: str | None = typer.Option(None, "--priority", help="Priority for the new subtask"),
    file: Path | None = file_option,
) -> None:
    """
    Add a subtask to an existing task.

    Either converts an existing task (--task-id) or creates a new one (--title).
    """
    if task_id is None and title is None:
        console.print("[red]Error: Either --task-id or --title must be provided.[/red]")
        raise typer.Exit(1)

    with handle_errors():
        path, collection = load(file)
        if task_id is not None:
            collection, subtask = convert_task_to_subtask(collection, parent, task_id)
            message = f"Task {task_id} converted to subtask {parse_task_ref(parent)}.{subtask.id}"
        else:
            deps = parse_task_refs(dependencies) if dependencies else []
            collection, subtask = add_subtask(
                collection,
                parent,
                title=title,
                description=description,
                details=details,
                status=status,
                priority=priority or get_settings().default_priority,
                dependencies=deps,
            )
            message = f"New subtask {parse_task_ref(parent)}.{subtask.id} created"
        save(collection, path)

    console.print(f"[green]{message}[/green]")


@app.command("clear-subtasks")
def clear_subtasks_command(
    task_ids: str | None = typer.Option(
        None,
        "--id",
        "-i",
        help="Task IDs (comma-separated) to clear subtasks from",
    ),
    all_tasks: bool = typer.Option(False, "--all", help="Clear subtasks from all tasks"),
    file: Path | None = file_option,
) -> None:
    """
    Clear subtasks from specified tasks.
    """
    if task_ids is None and not all_tasks:
        console.print("[red]Error: Please specify task IDs with --id or use --all[/red]")
        raise typer.Exit(1)

    with handle_errors():
        path, collection = load(file)
        refs = [t.ref for t in collection.tasks] if all_tasks else parse_task_refs(task_ids)
        collection, summary = clear_subtasks(collection, refs)
        save(collection, path)

    console.print(f"[green]Cleared {len(summary.removed_refs)} subtasks[/green]")
    if summary.touched:
        console.print(f"[dim]Updated dependencies of: {format_refs(summary.touched_refs)}[/dim]")


@app.command("set-status")
def set_status_command(
    task_ids: str = typer.Option(
        ...,
        "--id",
        "-i",
        help="Task ID (comma-separated for multiple tasks)",
    ),
    status: str = typer.Option(..., "--status", "-s", help="New status"),
    file: Path | None = file_option,
) -> None:
    """
    Set the status of one or more tasks or subtasks.
    """
    with handle_errors():
        path, collection = load(file)
        collection, changed = set_status(collection, parse_task_refs(task_ids), status)
        save(collection, path)

    console.print(f"[green]Set status of {format_refs(changed)} to {status}[/green]")
