"""GraphService — inspect the declared resource graph without touching state."""

from __future__ import annotations

from typing import Any

import networkx as nx

from stackctl.domain.errors import StackError
from stackctl.domain.graph import ResourceGraph
from stackctl.domain.planner import graph_digest
from stackctl.domain.references import to_display
from stackctl.services.base import BaseService
from stackctl.services.result import ServiceResult
from stackctl.services.telemetry import traced


class GraphService(BaseService):
    """Declared-graph queries."""

    @traced
    def show(self, *, graph: ResourceGraph | None = None) -> ServiceResult:
        """Resources in dependency order, with their edges and outputs."""
        try:
            graph = self._graph(graph)
        except StackError as exc:
            return ServiceResult.failure("graph_show", exc)

        generations = {
            node_id: depth
            for depth, members in enumerate(nx.topological_generations(graph.dag))
            for node_id in members
        }
        items: list[dict[str, Any]] = []
        for node_id in graph.topological_order():
            node = graph.get(node_id)
            items.append(
                {
                    "id": node_id,
                    "type": node.type,
                    "depth": generations[node_id],
                    "depends_on": graph.dependencies(node_id),
                    "dependents": graph.dependents(node_id),
                    "attributes": to_display(dict(node.attributes)),
                }
            )
        outputs = {decl.name: to_display(decl.value) for decl in graph.outputs}
        return ServiceResult(
            ok=True,
            op="graph_show",
            data={
                "name": graph.name,
                "digest": graph_digest(graph),
                "count": len(items),
                "items": items,
                "outputs": outputs,
            },
        )

    @traced
    def validate(self, *, graph: ResourceGraph | None = None) -> ServiceResult:
        """Finalize the graph and check every type has a provider."""
        try:
            graph = self._graph(graph)
            registry = self._ws.registry
            registry.require(node.type for node in graph.nodes)
        except StackError as exc:
            return ServiceResult.failure("graph_validate", exc)

        return ServiceResult(
            ok=True,
            op="graph_validate",
            data={
                "name": graph.name,
                "resources": len(graph),
                "edges": graph.dag.number_of_edges(),
                "outputs": len(graph.outputs),
                "digest": graph_digest(graph),
            },
            warnings=self._ws.take_warnings(),
        )
