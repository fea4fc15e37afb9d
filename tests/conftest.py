"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest
from loguru import logger

# Set test environment
os.environ.setdefault("TASKGRAPH_LOG_LEVEL", "DEBUG")


@pytest.fixture
def mock_settings() -> Generator:
    """Clear cached settings around a test."""
    from taskgraph.core.config import clear_settings_cache

    # Clear any cached settings
    clear_settings_cache()

    yield

    # Clear again after test
    clear_settings_cache()


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator:
    """Drop any sinks a test (e.g. a CLI run) installed."""
    yield
    logger.remove()
    logger.disable("taskgraph")


@pytest.fixture
def make_collection() -> Callable[..., Any]:
    """Provide a factory building a TaskCollection from plain task dicts."""
    from taskgraph.dependencies.models import TaskCollection

    def _make(*tasks: dict[str, Any]) -> TaskCollection:
        return TaskCollection.model_validate({"tasks": list(tasks)})

    return _make


@pytest.fixture
def chain_collection(make_collection: Callable[..., Any]) -> Any:
    """Tasks 1 (done) <- 2 (pending) <- 3 (pending)."""
    return make_collection(
        {"id": 1, "title": "Initialize project", "status": "done"},
        {"id": 2, "title": "Create User model", "dependencies": [1]},
        {"id": 3, "title": "Implement auth service", "dependencies": [2]},
    )


@pytest.fixture
def sample_document() -> dict[str, Any]:
    """Provide a task document with subtasks and cross references."""
    return {
        "metadata": {"projectName": "todo-api"},
        "tasks": [
            {
                "id": 1,
                "title": "Initialize project",
                "description": "Set up project structure",
                "status": "done",
                "priority": "high",
                "dependencies": [],
            },
            {
                "id": 2,
                "title": "Create data models",
                "description": "Define User and Todo models",
                "status": "in-progress",
                "priority": "high",
                "dependencies": [1],
                "subtasks": [
                    {"id": 1, "title": "User model", "status": "done", "dependencies": [1]},
                    {
                        "id": 2,
                        "title": "Todo model",
                        "status": "pending",
                        "dependencies": [{"parentId": 2, "subtaskId": 1}],
                    },
                ],
            },
            {
                "id": 3,
                "title": "Create API endpoints",
                "description": "Implement REST API endpoints",
                "status": "pending",
                "priority": "medium",
                "testStrategy": "Integration tests against a test database",
                "dependencies": [2, "2.2"],
            },
        ],
    }


@pytest.fixture
def sample_collection(sample_document: dict[str, Any]) -> Any:
    """Provide the sample document as a TaskCollection."""
    from taskgraph.dependencies.models import TaskCollection

    return TaskCollection.model_validate(sample_document)


# Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
