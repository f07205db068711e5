"""Jinja2 templates shipped with stackctl, overridable per project.

A project may drop its own copy of a template into
``.stackctl/templates/<group>/`` (or ``.stackctl/templates/``); it is
picked up ahead of the packaged one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
)

OVERRIDE_DIR = Path(".stackctl") / "templates"


def build_template_environment(group: str, *, project_root: Path | None = None) -> Environment:
    loaders: list[BaseLoader] = []
    if project_root is not None:
        base = project_root / OVERRIDE_DIR
        loaders.append(FileSystemLoader([str(base / group), str(base)]))
    loaders.append(PackageLoader("stackctl", f"templates/{group}"))
    return Environment(
        loader=ChoiceLoader(loaders),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_template(
    group: str, name: str, *, project_root: Path | None = None, **context: Any
) -> str:
    """Render template *name* from *group* with *context*.

    Raises:
        jinja2.UndefinedError: the template uses a variable not in *context*.
    """
    env = build_template_environment(group, project_root=project_root)
    return env.get_template(name).render(**context)
