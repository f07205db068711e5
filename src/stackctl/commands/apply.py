"""Command: execute a change plan."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from stackctl.commands._base import StackCommand
from stackctl.services.apply import ApplyService

if TYPE_CHECKING:
    from stackctl.commands._context import AppContext

_APPLY_EXAMPLES = """\
  stackctl apply
  stackctl plan --out plan.json && stackctl apply --plan plan.json
  stackctl apply --destroy
  stackctl --json apply"""


@click.command("apply", cls=StackCommand, examples=_APPLY_EXAMPLES)
@click.option("--destroy", is_flag=True, help="Delete every recorded resource.")
@click.option(
    "--plan",
    "plan_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Apply a plan saved with 'plan --out'.",
)
@click.pass_obj
def apply(app: AppContext, destroy: bool, plan_path: Path | None) -> None:
    """Apply changes and record the new state.

    Exits 2 if planning fails (nothing changed) and 3 if the apply stopped
    part-way (state records what was changed).
    """
    if destroy and plan_path is not None:
        raise click.UsageError("--destroy cannot be combined with --plan")
    app.emit(ApplyService(app.workspace).apply(destroy=destroy, plan_path=plan_path))
