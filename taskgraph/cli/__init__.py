"""CLI module - Typer application over the dependency engine."""

from taskgraph.cli.main import app
from taskgraph.cli import commands  # noqa: F401  (registers commands on app)

__all__ = ["app"]
