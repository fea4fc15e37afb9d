"""Integration tests for the taskgraph command line."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from taskgraph import __version__
from taskgraph.cli import app
from taskgraph.dependencies.identifiers import find_entity
from taskgraph.storage.json_store import load_collection

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, mock_settings) -> None:
    """Keep CLI log sinks at WARNING so output only holds command text."""
    monkeypatch.setenv("TASKGRAPH_LOG_LEVEL", "WARNING")


@pytest.fixture
def tasks_file(tmp_path: Path, sample_document) -> Path:
    """Write the sample document to a temporary tasks file."""
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(sample_document, indent=2))
    return path


@pytest.fixture
def broken_file(tmp_path: Path) -> Path:
    """Write a document with a duplicate, a dangling ref and a cycle."""
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps(
            {
                "tasks": [
                    {"id": 1, "dependencies": [2]},
                    {"id": 2, "dependencies": [1, 1, 99]},
                ]
            }
        )
    )
    return path


def _deps(path: Path, token: str) -> list[str]:
    return [str(d) for d in find_entity(load_collection(path), token).dependencies]


@pytest.mark.integration
class TestGeneralCommands:
    """Tests for global options and read-only commands."""

    def test_version(self) -> None:
        """Test --version prints the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing tasks file is reported."""
        result = runner.invoke(
            app, ["validate-dependencies", "--file", str(tmp_path / "nope.json")]
        )

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_default_file_from_settings(self, monkeypatch, tasks_file: Path) -> None:
        """Test TASKGRAPH_TASKS_FILE is used when --file is omitted."""
        monkeypatch.setenv("TASKGRAPH_TASKS_FILE", str(tasks_file))

        result = runner.invoke(app, ["validate-dependencies"])

        assert result.exit_code == 0
        assert "All dependencies are valid" in result.output

    def test_show_subtask(self, tasks_file: Path) -> None:
        """Test show prints a subtask with its dependencies."""
        result = runner.invoke(app, ["show", "2.2", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "Todo model" in result.output
        assert "Dependencies: 2.1" in result.output

    def test_show_task_lists_subtasks(self, tasks_file: Path) -> None:
        """Test show prints a task's subtasks."""
        result = runner.invoke(app, ["show", "2", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "User model" in result.output

    def test_bracketed_text_printed_literally(self, tmp_path: Path) -> None:
        """Test titles and descriptions with square brackets are not read as markup."""
        path = tmp_path / "tasks.json"
        path.write_text(
            json.dumps(
                {
                    "tasks": [
                        {
                            "id": 1,
                            "title": "Parse [/b] tags",
                            "description": "Handle [bold] and [red]",
                            "details": "See [/]",
                            "subtasks": [{"id": 1, "title": "Strip [/i]"}],
                        }
                    ]
                }
            )
        )

        show = runner.invoke(app, ["show", "1", "--file", str(path)])
        nxt = runner.invoke(app, ["next", "--file", str(path)])
        confirm = runner.invoke(app, ["remove-task", "--id", "1", "--file", str(path)], input="n\n")

        assert show.exit_code == 0
        assert "Parse [/b] tags" in show.output
        assert "Handle [bold] and [red]" in show.output
        assert "See [/]" in show.output
        assert nxt.exit_code == 0
        assert "Parse [/b] tags" in nxt.output
        assert confirm.exit_code == 0
        assert "Parse [/b] tags" in confirm.output

    def test_show_bad_id(self, tasks_file: Path) -> None:
        """Test malformed ids are rejected."""
        result = runner.invoke(app, ["show", "two", "--file", str(tasks_file)])

        assert result.exit_code == 1
        assert "Invalid task ID format" in result.output


@pytest.mark.integration
class TestValidateAndFix:
    """Tests for validate-dependencies and fix-dependencies."""

    def test_validate_clean(self, tasks_file: Path) -> None:
        """Test a valid document exits 0."""
        result = runner.invoke(app, ["validate-dependencies", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "All dependencies are valid" in result.output

    def test_validate_broken(self, broken_file: Path) -> None:
        """Test violations are listed and exit 1, leaving the file alone."""
        before = broken_file.read_text()

        result = runner.invoke(app, ["validate-dependencies", "--file", str(broken_file)])

        assert result.exit_code == 1
        assert "Dependency Issues" in result.output
        assert broken_file.read_text() == before

    def test_fix_broken(self, broken_file: Path) -> None:
        """Test fix repairs and saves the document."""
        result = runner.invoke(app, ["fix-dependencies", "--file", str(broken_file)])

        assert result.exit_code == 0
        assert "Saved repaired tasks" in result.output
        assert _deps(broken_file, "1") == ["2"]
        assert _deps(broken_file, "2") == []

        again = runner.invoke(app, ["validate-dependencies", "--file", str(broken_file)])
        assert again.exit_code == 0

    def test_fix_clean(self, tasks_file: Path) -> None:
        """Test fix on a valid document does not rewrite it."""
        before = tasks_file.read_text()

        result = runner.invoke(app, ["fix-dependencies", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "nothing to fix" in result.output
        assert tasks_file.read_text() == before


@pytest.mark.integration
class TestDependencyCommands:
    """Tests for add-dependency and remove-dependency."""

    def test_add_dependency(self, tasks_file: Path) -> None:
        """Test adding an edge persists it."""
        result = runner.invoke(
            app, ["add-dependency", "--id", "3", "--depends-on", "2.1", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "now depends on 2.1" in result.output
        assert _deps(tasks_file, "3") == ["2", "2.2", "2.1"]

    def test_add_dependency_cycle(self, tasks_file: Path) -> None:
        """Test a cycle is refused and the file is unchanged."""
        before = tasks_file.read_text()

        result = runner.invoke(
            app, ["add-dependency", "-i", "1", "-d", "3", "--file", str(tasks_file)]
        )

        assert result.exit_code == 1
        assert "Circular dependency detected" in result.output
        assert tasks_file.read_text() == before

    def test_add_dependency_missing(self, tasks_file: Path) -> None:
        """Test unknown targets are refused."""
        result = runner.invoke(
            app, ["add-dependency", "-i", "3", "-d", "42", "--file", str(tasks_file)]
        )

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_remove_dependency(self, tasks_file: Path) -> None:
        """Test removing an edge persists it."""
        result = runner.invoke(
            app, ["remove-dependency", "-i", "3", "-d", "2.2", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert _deps(tasks_file, "3") == ["2"]


@pytest.mark.integration
class TestStructureCommands:
    """Tests for removal, subtask and status commands."""

    def test_remove_task(self, tasks_file: Path) -> None:
        """Test removal cascades to dependents."""
        result = runner.invoke(
            app, ["remove-task", "--id", "2", "--yes", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "Successfully removed 2" in result.output
        collection = load_collection(tasks_file)
        assert [t.id for t in collection.tasks] == [1, 3]
        assert _deps(tasks_file, "3") == []

    def test_remove_task_cancelled(self, tasks_file: Path) -> None:
        """Test declining the prompt keeps the file."""
        before = tasks_file.read_text()

        result = runner.invoke(
            app, ["remove-task", "--id", "2", "--file", str(tasks_file)], input="n\n"
        )

        assert result.exit_code == 0
        assert "cancelled" in result.output
        assert tasks_file.read_text() == before

    def test_remove_task_not_found(self, tasks_file: Path) -> None:
        """Test unknown ids abort before any change."""
        result = runner.invoke(
            app, ["remove-task", "--id", "3,9", "--yes", "--file", str(tasks_file)]
        )

        assert result.exit_code == 1
        assert "were not found: 9" in result.output
        assert len(load_collection(tasks_file).tasks) == 3

    def test_remove_subtask(self, tasks_file: Path) -> None:
        """Test a subtask is deleted and references dropped."""
        result = runner.invoke(
            app, ["remove-subtask", "--id", "2.2", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "Subtask 2.2 removed" in result.output
        assert _deps(tasks_file, "3") == ["2"]

    def test_remove_subtask_convert(self, tasks_file: Path) -> None:
        """Test --convert promotes the subtask."""
        result = runner.invoke(
            app, ["remove-subtask", "--id", "2.2", "--convert", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "converted to task 4" in result.output
        assert _deps(tasks_file, "3") == ["2", "4"]

    def test_add_task(self, tasks_file: Path) -> None:
        """Test creating a top-level task with dependencies."""
        result = runner.invoke(
            app,
            [
                "add-task",
                "--title", "Docs",
                "--description", "Write the API guide",
                "--dependencies", "3,2.1",
                "--file", str(tasks_file),
            ],
        )

        assert result.exit_code == 0
        assert "Added new task #4" in result.output
        assert _deps(tasks_file, "4") == ["3", "2.1"]
        task = load_collection(tasks_file).get_task(4)
        assert task.priority.value == "medium"
        assert task.description == "Write the API guide"

    def test_add_task_missing_dependency(self, tasks_file: Path) -> None:
        """Test an unknown dependency leaves the file untouched."""
        before = tasks_file.read_text()

        result = runner.invoke(
            app,
            ["add-task", "-t", "Docs", "-d", "Guide", "--dependencies", "9", "--file", str(tasks_file)],
        )

        assert result.exit_code == 1
        assert tasks_file.read_text() == before

    def test_add_task_requires_title(self, tasks_file: Path) -> None:
        """Test --title is required."""
        result = runner.invoke(app, ["add-task", "-d", "Guide", "--file", str(tasks_file)])

        assert result.exit_code != 0

    def test_add_subtask(self, tasks_file: Path) -> None:
        """Test creating a subtask with dependencies."""
        result = runner.invoke(
            app,
            [
                "add-subtask",
                "--parent", "2",
                "--title", "Migrations",
                "--dependencies", "2.2,1",
                "--file", str(tasks_file),
            ],
        )

        assert result.exit_code == 0
        assert "New subtask 2.3 created" in result.output
        assert _deps(tasks_file, "2.3") == ["2.2", "1"]

    def test_add_subtask_from_task(self, tasks_file: Path) -> None:
        """Test converting a task to a subtask."""
        result = runner.invoke(
            app, ["add-subtask", "-p", "1", "-i", "3", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "converted to subtask 1.1" in result.output
        assert _deps(tasks_file, "1.1") == ["2", "2.2"]

    def test_add_subtask_requires_title_or_task(self, tasks_file: Path) -> None:
        """Test one of --task-id or --title is required."""
        result = runner.invoke(app, ["add-subtask", "-p", "2", "--file", str(tasks_file)])

        assert result.exit_code == 1

    def test_clear_subtasks(self, tasks_file: Path) -> None:
        """Test clearing subtasks strips references to them."""
        result = runner.invoke(
            app, ["clear-subtasks", "--id", "2", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        assert "Cleared 2 subtasks" in result.output
        assert _deps(tasks_file, "3") == ["2"]

    def test_clear_all_subtasks(self, tasks_file: Path) -> None:
        """Test --all clears every task."""
        result = runner.invoke(app, ["clear-subtasks", "--all", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert all(not t.subtasks for t in load_collection(tasks_file).tasks)

    def test_set_status(self, tasks_file: Path) -> None:
        """Test done cascades to subtasks."""
        result = runner.invoke(
            app, ["set-status", "--id", "2", "--status", "done", "--file", str(tasks_file)]
        )

        assert result.exit_code == 0
        collection = load_collection(tasks_file)
        assert find_entity(collection, "2.2").status.value == "done"

    def test_set_status_invalid(self, tasks_file: Path) -> None:
        """Test unknown statuses are refused."""
        result = runner.invoke(
            app, ["set-status", "-i", "2", "-s", "todo", "--file", str(tasks_file)]
        )

        assert result.exit_code == 1
        assert "Invalid status" in result.output


@pytest.mark.integration
class TestNextCommand:
    """Tests for next."""

    def test_next(self, tasks_file: Path) -> None:
        """Test the next top-level task is shown."""
        result = runner.invoke(app, ["next", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "Next task: 2" in result.output

    def test_next_subtask(self, tasks_file: Path) -> None:
        """Test --subtasks offers the open subtask."""
        result = runner.invoke(app, ["next", "--subtasks", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "Next task: 2.2" in result.output

    def test_next_after_completion(self, tasks_file: Path) -> None:
        """Test finishing everything reports completion."""
        runner.invoke(app, ["set-status", "-i", "2,3", "-s", "done", "--file", str(tasks_file)])

        result = runner.invoke(app, ["next", "--file", str(tasks_file)])

        assert result.exit_code == 0
        assert "All tasks are complete" in result.output

    def test_next_blocked(self, broken_file: Path) -> None:
        """Test a fully blocked document."""
        result = runner.invoke(app, ["next", "--file", str(broken_file)])

        assert result.exit_code == 0
        assert "No eligible tasks" in result.output
