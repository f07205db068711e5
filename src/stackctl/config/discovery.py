"""Locate the project's ``stackctl.toml``.

``STACKCTL_CONFIG`` pins the file explicitly. Otherwise the search starts
in the given directory (default: CWD) and climbs toward the filesystem
root, the way git looks for ``.git``.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "stackctl.toml"
CONFIG_ENV_VAR = "STACKCTL_CONFIG"


def config_from_env() -> Path | None:
    """The file named by ``STACKCTL_CONFIG``, if it is set and exists."""
    value = os.environ.get(CONFIG_ENV_VAR)
    if not value:
        return None
    path = Path(value)
    return path if path.is_file() else None


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``stackctl.toml`` at or above *start*.

    When ``STACKCTL_CONFIG`` is set it wins outright, even if it names a
    missing file (then nothing is found).
    """
    if os.environ.get(CONFIG_ENV_VAR):
        return config_from_env()
    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
