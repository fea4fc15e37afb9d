"""JSON file storage for task documents.

Loads and saves a :class:`TaskCollection`. Saving writes a temp file next
to the target and renames it over the original, so readers never see a
half-written document. Two processes saving the same file concurrently can
still lose an update; callers own the load -> edit -> save cycle.
"""

import json
import os
import tempfile
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from taskgraph.core.errors import StorageError
from taskgraph.dependencies.models import TaskCollection


def load_collection(path: str | Path) -> TaskCollection:
    """
    Load a task document.

    Args:
        path: Path to the JSON document.

    Returns:
        The parsed collection.

    Raises:
        StorageError: If the file is missing, unreadable, not JSON, or does
            not match the task document schema.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise StorageError(f"Tasks file not found: {path}") from e
    except OSError as e:
        raise StorageError(f"Error reading {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
        raise StorageError(f"No valid tasks found in {path}")

    try:
        collection = TaskCollection.model_validate(data)
    except ValidationError as e:
        raise StorageError(f"Invalid task document {path}: {e}") from e

    logger.debug(f"Loaded {len(collection.tasks)} tasks from {path}")
    return collection


def save_collection(collection: TaskCollection, path: str | Path) -> None:
    """
    Save a task document atomically.

    Args:
        collection: Collection to write.
        path: Destination path; parent directories are created.

    Raises:
        StorageError: If the document cannot be written.
    """
    path = Path(path)
    content = json.dumps(collection.to_document(), indent=2, ensure_ascii=False) + "\n"

    tmp_path: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise StorageError(f"Error writing {path}: {e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.debug(f"Saved {len(collection.tasks)} tasks to {path}")
