"""Command group: inspect the declared resource graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stackctl.commands._base import StackGroup
from stackctl.services.graph import GraphService

if TYPE_CHECKING:
    from stackctl.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  stackctl graph show
  stackctl -v graph show
  stackctl graph validate"""


@click.group(cls=StackGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Inspect the declared resource graph."""


@graph.command(
    examples="""\
  stackctl graph show
  stackctl --json graph show"""
)
@click.pass_obj
def show(app: AppContext) -> None:
    """Show resources in dependency order."""
    app.emit(GraphService(app.workspace).show())


@graph.command(
    examples="""\
  stackctl graph validate
  stackctl -c other.toml graph validate"""
)
@click.pass_obj
def validate(app: AppContext) -> None:
    """Check the description for duplicates, cycles, and unknown types."""
    app.emit(GraphService(app.workspace).validate())
