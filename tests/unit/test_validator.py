"""Unit tests for dependency validation."""

from taskgraph.dependencies.identifiers import parse_task_ref
from taskgraph.dependencies.models import ViolationKind
from taskgraph.dependencies.validator import validate, validate_report


class TestValidate:
    """Tests for validate."""

    def test_valid_collection(self, sample_collection) -> None:
        """Test a consistent collection has no violations."""
        assert validate(sample_collection) == []

    def test_empty_collection(self, make_collection) -> None:
        """Test an empty collection is valid."""
        assert validate(make_collection()) == []

    def test_duplicate_and_missing(self, make_collection) -> None:
        """Test task 5 with [2, 2, 99] reports one duplicate and one missing ref."""
        collection = make_collection({"id": 2}, {"id": 5, "dependencies": [2, 2, 99]})

        violations = validate(collection)

        assert [v.kind for v in violations] == [
            ViolationKind.DUPLICATE_DEPENDENCY,
            ViolationKind.MISSING_DEPENDENCY,
        ]
        assert violations[0].entity == parse_task_ref("5")
        assert violations[0].ref == parse_task_ref("2")
        assert violations[1].ref == parse_task_ref("99")

    def test_subtask_self_dependency(self, make_collection) -> None:
        """Test subtask 4.1 depending on itself."""
        collection = make_collection(
            {"id": 4, "subtasks": [{"id": 1, "dependencies": ["4.1"]}]}
        )

        violations = validate(collection)

        assert len(violations) == 1
        assert violations[0].kind == ViolationKind.SELF_DEPENDENCY
        assert violations[0].entity == parse_task_ref("4.1")

    def test_subtask_depending_on_parent_task_is_allowed(self, make_collection) -> None:
        """Test plain parent id in a subtask list is not a self-dependency."""
        collection = make_collection(
            {"id": 4, "subtasks": [{"id": 1, "dependencies": [4]}]}
        )

        assert validate(collection) == []

    def test_missing_subtask_reference(self, make_collection) -> None:
        """Test dangling composite refs, including a missing parent."""
        collection = make_collection(
            {"id": 1, "dependencies": ["1.5", "8.1"], "subtasks": [{"id": 1}]}
        )

        violations = validate(collection)

        assert [str(v.ref) for v in violations] == ["1.5", "8.1"]
        assert all(v.kind == ViolationKind.MISSING_DEPENDENCY for v in violations)

    def test_node_checks_run_in_order(self, make_collection) -> None:
        """Test self, then duplicates, then missing for a single item."""
        collection = make_collection({"id": 1, "dependencies": [99, 1, 2, 2]}, {"id": 2})

        kinds = [v.kind for v in validate(collection)]

        assert kinds == [
            ViolationKind.SELF_DEPENDENCY,
            ViolationKind.DUPLICATE_DEPENDENCY,
            ViolationKind.MISSING_DEPENDENCY,
        ]

    def test_cycle_reported_after_node_checks(self, make_collection) -> None:
        """Test cycles follow node-local violations."""
        collection = make_collection(
            {"id": 1, "dependencies": [2]},
            {"id": 2, "dependencies": [1, 42]},
        )

        violations = validate(collection)

        assert [v.kind for v in violations] == [
            ViolationKind.MISSING_DEPENDENCY,
            ViolationKind.CYCLE,
        ]
        assert [str(r) for r in violations[1].cycle] == ["1", "2", "1"]

    def test_validate_does_not_mutate(self, make_collection) -> None:
        """Test validation is read-only."""
        collection = make_collection({"id": 1, "dependencies": [1, 1, 9]})
        before = collection.to_document()

        validate(collection)
        validate(collection)

        assert collection.to_document() == before


class TestValidationReport:
    """Tests for ValidationReport."""

    def test_report_summary(self, make_collection) -> None:
        """Test counts and dictionary output."""
        collection = make_collection({"id": 2}, {"id": 5, "dependencies": [2, 2, 99]})

        report = validate_report(collection)

        assert not report.is_valid
        assert report.counts == {
            ViolationKind.DUPLICATE_DEPENDENCY: 1,
            ViolationKind.MISSING_DEPENDENCY: 1,
        }
        assert len(report.of_kind(ViolationKind.MISSING_DEPENDENCY)) == 1
        assert report.to_dict()["counts"] == {
            "duplicate_dependency": 1,
            "missing_dependency": 1,
        }

    def test_valid_report(self, sample_collection) -> None:
        """Test an empty report."""
        report = validate_report(sample_collection)

        assert report.is_valid
        assert report.to_dict()["violations"] == []
