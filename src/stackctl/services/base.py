"""Shared plumbing for the service layer.

A service wraps one :class:`~stackctl.infrastructure.workspace.Workspace`
and returns :class:`~stackctl.services.result.ServiceResult` from every
public method; domain exceptions are converted there, not in commands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from stackctl.domain.graph import ResourceGraph
from stackctl.topology import load_topology

if TYPE_CHECKING:
    from stackctl.infrastructure.workspace import Workspace


class BaseService:
    def __init__(self, workspace: Workspace) -> None:
        self._ws = workspace

    def _graph(self, graph: ResourceGraph | None = None) -> ResourceGraph:
        """Finalize *graph*, or build the configured topology when None."""
        if graph is not None:
            return graph.finalize()
        return load_topology(self._ws.settings)

    def _dispatch_event(self, hook_name: str, warnings: list[str], **kwargs: Any) -> None:
        # A failing hook adds a warning; the operation's outcome is unchanged.
        warnings.extend(self._ws.plugins.dispatch(hook_name, **kwargs))
