"""Pluggy hook specifications for stackctl providers and lifecycle events.

One setup-time hook lets plugins contribute providers for resource types.
Three lifecycle hooks are called synchronously after plan, after apply, and
after each individual resource change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from stackctl.providers.base import ResourceProvider

PROJECT_NAME = "stackctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class StackctlHookSpec:
    """Hook specifications for the stackctl plugin system."""

    @hookspec
    def register_providers(self) -> dict[str, ResourceProvider] | None:
        """Return resource type -> provider mappings."""

    @hookspec
    def post_plan(self, deployment_id: str, summary: dict[str, int]) -> None:
        """Called after a plan is computed."""

    @hookspec
    def post_apply(
        self,
        deployment_id: str,
        serial: int,
        summary: dict[str, int],
        ok: bool,
    ) -> None:
        """Called after an apply finishes (successfully or partially)."""

    @hookspec
    def post_change(
        self,
        deployment_id: str,
        resource_id: str,
        kind: str,
        outputs: dict[str, Any],
    ) -> None:
        """Called after a single resource change is applied."""
