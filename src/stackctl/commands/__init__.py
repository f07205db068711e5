"""stackctl subcommands.

Each entry names the module and the Click object to attach to the root
group; modules are imported at registration, not at package import.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click

COMMANDS: tuple[tuple[str, str], ...] = (
    ("stackctl.commands.init_cmd", "init_cmd"),
    ("stackctl.commands.plan", "plan"),
    ("stackctl.commands.apply", "apply"),
    ("stackctl.commands.state", "state"),
    ("stackctl.commands.graph", "graph"),
)


def register_commands(cli: click.Group) -> None:
    for module_name, attr in COMMANDS:
        cli.add_command(getattr(importlib.import_module(module_name), attr))
