"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Workspace initialization and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stackctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from stackctl.config.settings import StackSettings
    from stackctl.infrastructure.workspace import Workspace
    from stackctl.services.result import ServiceResult

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PLANNING = 4
EXIT_PARTIAL_APPLY = 3

# Declaration and planning failures: nothing was changed.
_PLANNING_CODES = frozenset(
    {
        "DECLARATION_ERROR",
        "DUPLICATE_ID",
        "CYCLE",
        "TOPOLOGY_ERROR",
        "PLANNING_ERROR",
        "UNRESOLVED_REFERENCE",
        "UNKNOWN_TYPE",
        "STALE_PLAN",
    }
)


def exit_code_for(result: ServiceResult) -> int:
    """Process exit code for a failed result."""
    if result.error is None:
        return EXIT_FAILURE
    if result.error.code in _PLANNING_CODES:
        return EXIT_PLANNING
    if result.error.code == "PARTIAL_APPLY":
        return EXIT_PARTIAL_APPLY
    return EXIT_FAILURE


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The workspace is created on first use so ``--help`` and ``--version``
    never touch the state database.
    """

    def __init__(self, settings: StackSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from stackctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from stackctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def workspace(self) -> Workspace:
        """The workspace instance (created lazily on first access)."""
        if self._workspace is None:
            from stackctl.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
        return self._workspace

    def close(self) -> None:
        if self._workspace is not None:
            self._workspace.close()
            self._workspace = None
        if self.settings.verbose:
            from stackctl.services.telemetry import disable_telemetry

            disable_telemetry()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout and returns. Warnings go to stderr so
          they don't pollute piped output.
        * Failure: writes to stderr and exits with 4 (declaration or
          planning error, nothing changed), 3 (partial apply), or 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
            raise SystemExit(exit_code_for(result))
