"""Command: project initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from stackctl.commands._base import StackCommand

if TYPE_CHECKING:
    from stackctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  stackctl init
  stackctl init infra/ --deployment production --domain-name example.org
  stackctl init . --topology mypkg.stacks:build --force"""


@click.command("init", cls=StackCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--deployment", "deployment_id", default="default", help="Deployment id.")
@click.option("--topology", default="webapp", help="Builtin name or module:function.")
@click.option("--domain-name", default=None, help="Hosted zone for the webapp topology.")
@click.option("--parallelism", default=1, type=click.IntRange(min=1), help="Apply workers.")
@click.option("--force", is_flag=True, help="Overwrite an existing stackctl.toml.")
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str,
    deployment_id: str,
    topology: str,
    domain_name: str | None,
    parallelism: int,
    force: bool,
) -> None:
    """Write a starter stackctl.toml."""
    from stackctl.services.init import InitService

    app.emit(
        InitService.init_project(
            Path(path).resolve(),
            deployment_id=deployment_id,
            topology=topology,
            domain_name=domain_name,
            parallelism=parallelism,
            force=force,
        )
    )
