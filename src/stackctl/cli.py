"""stackctl entry point: global flags, settings, and the command tree."""

from __future__ import annotations

import click

from stackctl import __version__
from stackctl.commands import register_commands
from stackctl.commands._base import StackGroup
from stackctl.commands._context import AppContext
from stackctl.config.settings import StackSettings

_EXIT_CODES = """\b
Exit codes:
  0  success
  1  any other failure
  2  invalid command line
  3  apply stopped part-way; state records what was changed
  4  invalid description or plan; nothing was changed"""

_EXAMPLES = """\
  stackctl init
  stackctl plan
  stackctl apply
  stackctl -d staging plan --out plan.json
  stackctl --json state show"""


@click.group(
    cls=StackGroup,
    invoke_without_command=True,
    epilog=_EXIT_CODES,
    examples=_EXAMPLES,
)
@click.version_option(__version__, prog_name="stackctl")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only ids and change kinds.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logs, details, and timings.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option("-c", "--config", "config_path", metavar="FILE", help="Use this stackctl.toml.")
@click.option(
    "-d",
    "--deployment",
    "deployment_override",
    metavar="ID",
    help="Deployment to operate on (default: [deployment] id).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    deployment_override: str | None,
) -> None:
    """Plan and apply infrastructure deployments."""
    settings = StackSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        deployment_override=deployment_override,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
