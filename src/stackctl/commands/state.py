"""Command group: inspect and repair stored state."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stackctl.commands._base import StackGroup
from stackctl.services.state import StateService

if TYPE_CHECKING:
    from stackctl.commands._context import AppContext

_STATE_EXAMPLES = """\
  stackctl state show
  stackctl state show web_server
  stackctl state list
  stackctl state history --limit 20
  stackctl state unlock"""


@click.group(cls=StackGroup, examples=_STATE_EXAMPLES)
@click.pass_obj
def state(app: AppContext) -> None:
    """Inspect recorded deployment state."""


@state.command(
    examples="""\
  stackctl state show
  stackctl state show deploy_bucket
  stackctl --json state show"""
)
@click.argument("resource_id", required=False)
@click.pass_obj
def show(app: AppContext, resource_id: str | None) -> None:
    """Show the snapshot, or one recorded resource."""
    app.emit(StateService(app.workspace).show(resource_id))


@state.command(
    "list",
    examples="""\
  stackctl state list
  stackctl -q state list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every deployment with recorded state."""
    app.emit(StateService(app.workspace).list_deployments())


@state.command(
    examples="""\
  stackctl state history
  stackctl -d staging state history --limit 10"""
)
@click.option("--limit", default=50, type=int, help="Max entries.")
@click.pass_obj
def history(app: AppContext, limit: int) -> None:
    """Show recent apply-log entries."""
    app.emit(StateService(app.workspace).history(limit=limit))


@state.command(
    examples="""\
  stackctl state unlock
  stackctl -d staging state unlock"""
)
@click.pass_obj
def unlock(app: AppContext) -> None:
    """Remove a lock left behind by a crashed apply."""
    app.emit(StateService(app.workspace).unlock())
