"""Command: compute and print the change plan."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from stackctl.commands._base import StackCommand
from stackctl.services.plan import PlanService

if TYPE_CHECKING:
    from stackctl.commands._context import AppContext

_PLAN_EXAMPLES = """\
  stackctl plan
  stackctl plan --out plan.json
  stackctl plan --destroy
  stackctl -d staging plan
  stackctl --json plan
  stackctl -q plan"""


@click.command("plan", cls=StackCommand, examples=_PLAN_EXAMPLES)
@click.option("--destroy", is_flag=True, help="Plan deletion of every recorded resource.")
@click.option(
    "--out",
    "out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Save the plan to FILE for a later 'apply --plan'.",
)
@click.pass_obj
def plan(app: AppContext, destroy: bool, out: Path | None) -> None:
    """Show the changes needed to reconcile the deployment."""
    app.emit(PlanService(app.workspace).plan(destroy=destroy, out=out))
