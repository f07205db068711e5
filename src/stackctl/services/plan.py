"""PlanService — diff the deployment description against its snapshot.

Planning never changes anything: it reads the stored snapshot, builds the
graph, and returns the ordered change plan. ``out`` saves the plan so a
later ``apply --plan`` executes exactly what was reviewed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from stackctl.domain.errors import StackError
from stackctl.domain.graph import ResourceGraph
from stackctl.domain.plan import ChangePlan
from stackctl.domain.planner import plan_changes
from stackctl.services.base import BaseService
from stackctl.services.result import ServiceResult
from stackctl.services.telemetry import trace_span, traced


def plan_payload(plan: ChangePlan) -> dict[str, Any]:
    """Result data for a change plan."""
    data = plan.model_dump(mode="json")
    data["summary"] = plan.summary()
    data["count"] = len(plan.changes)
    return data


class PlanService(BaseService):
    """Computes change plans."""

    @traced
    def plan(
        self,
        *,
        destroy: bool = False,
        graph: ResourceGraph | None = None,
        out: Path | None = None,
    ) -> ServiceResult:
        """Plan the changes that would reconcile the deployment.

        Args:
            destroy: Plan the deletion of every recorded resource.
            graph: Use this graph instead of the configured topology.
            out: Also save the plan as JSON to this path.
        """
        warnings: list[str] = []
        deployment_id = self._ws.deployment_id
        try:
            with trace_span("load_graph"):
                graph = self._graph(graph)
            registry = self._ws.registry
            warnings.extend(self._ws.take_warnings())
            registry.require(node.type for node in graph.nodes)
            snapshot = self._ws.store.read(deployment_id)
            with trace_span("diff") as span:
                plan = plan_changes(graph, snapshot, registry.replace_on, destroy=destroy)
                if span is not None:
                    span.annotate("changes", len(plan.changes))
        except StackError as exc:
            return ServiceResult.failure("plan", exc, warnings=warnings)

        if snapshot.partial:
            warnings.append(
                "Last apply stopped part-way; this plan completes the remaining changes"
            )

        data = plan_payload(plan)
        if out is not None:
            plan.save(out)
            data["path"] = str(out)

        self._dispatch_event(
            "post_plan", warnings, deployment_id=deployment_id, summary=plan.summary()
        )
        return ServiceResult(ok=True, op="plan", data=data, warnings=warnings)
