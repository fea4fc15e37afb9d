"""Storage module - task document persistence."""

from taskgraph.storage.json_store import load_collection, save_collection

__all__ = ["load_collection", "save_collection"]
