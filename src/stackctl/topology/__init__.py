"""Topologies — functions that declare resources on a ResourceGraph.

``[deployment] topology`` names either a builtin (``webapp``) or a
``package.module:function`` import path. The function receives the graph
and the settings and declares resources; it returns nothing.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import TYPE_CHECKING

from stackctl.domain.errors import StackError, TopologyError
from stackctl.domain.graph import ResourceGraph
from stackctl.topology import webapp

if TYPE_CHECKING:
    from stackctl.config.settings import StackSettings

TopologyFn = Callable[[ResourceGraph, "StackSettings"], None]

BUILTIN_TOPOLOGIES: dict[str, TopologyFn] = {
    "webapp": webapp.build,
}


def resolve_topology(name: str) -> TopologyFn:
    """Find the topology function for *name*."""
    if name in BUILTIN_TOPOLOGIES:
        return BUILTIN_TOPOLOGIES[name]
    if ":" not in name:
        known = ", ".join(sorted(BUILTIN_TOPOLOGIES))
        raise TopologyError(f"Unknown topology '{name}' (builtins: {known})")

    module_name, _, attr = name.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise TopologyError(f"Cannot import topology module '{module_name}': {exc}") from exc
    fn = getattr(module, attr, None)
    if not callable(fn):
        raise TopologyError(f"'{name}' is not a callable topology")
    return fn


def load_topology(settings: StackSettings, *, name: str | None = None) -> ResourceGraph:
    """Build and finalize the graph for the configured topology.

    Raises:
        TopologyError: the topology can't be found or raised while declaring.
        DeclarationError: duplicate ids or cycles.
        PlanningError: dangling references.
    """
    topology_name = name or settings.deployment.topology
    fn = resolve_topology(topology_name)
    graph = ResourceGraph(name=topology_name)
    try:
        fn(graph, settings)
    except StackError:
        raise
    except Exception as exc:
        raise TopologyError(f"Topology '{topology_name}' failed: {exc}") from exc
    return graph.finalize()
