"""ApplyService — plan (or load a saved plan) and execute it under the lock.

The deployment lock is held from reading the snapshot until the new
snapshot is written, so no other run can interleave. A saved plan is
rejected when the snapshot serial or the deployment description changed
since it was made.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from stackctl.config.logging import bind_run_context, clear_run_context
from stackctl.domain.errors import PartialApplyError, PlanningError, StackError, StalePlanError
from stackctl.domain.graph import ResourceGraph
from stackctl.domain.plan import Change, ChangeKind, ChangePlan
from stackctl.domain.planner import graph_digest, plan_changes
from stackctl.domain.snapshot import ResourceState, Snapshot
from stackctl.services.base import BaseService
from stackctl.services.executor import ApplyExecutor
from stackctl.services.plan import plan_payload
from stackctl.services.result import ServiceResult
from stackctl.services.telemetry import trace_span, traced


def load_plan(path: Path) -> ChangePlan:
    """Read a saved plan.

    Raises:
        PlanningError: the file is missing or not a valid plan.
    """
    try:
        return ChangePlan.load(path)
    except FileNotFoundError:
        raise PlanningError(f"Plan file not found: {path}") from None
    except (ValidationError, ValueError) as exc:
        raise PlanningError(f"Invalid plan file {path}: {exc}") from exc


class ApplyService(BaseService):
    """Executes change plans against the providers."""

    @traced
    def apply(
        self,
        *,
        destroy: bool = False,
        plan_path: Path | None = None,
        graph: ResourceGraph | None = None,
    ) -> ServiceResult:
        """Apply a fresh plan, or the saved plan at *plan_path*.

        Args:
            destroy: Delete every recorded resource (ignored with *plan_path*;
                a saved plan keeps its own mode).
            plan_path: Execute this saved plan instead of planning now.
            graph: Use this graph instead of the configured topology.
        """
        warnings: list[str] = []
        deployment_id = self._ws.deployment_id
        run_id = bind_run_context(deployment_id)
        try:
            return self._apply(deployment_id, run_id, destroy, plan_path, graph, warnings)
        finally:
            clear_run_context()

    def _apply(
        self,
        deployment_id: str,
        run_id: str,
        destroy: bool,
        plan_path: Path | None,
        graph: ResourceGraph | None,
        warnings: list[str],
    ) -> ServiceResult:
        partial: PartialApplyError | None = None
        try:
            with trace_span("load_graph"):
                graph = self._graph(graph)
            registry = self._ws.registry
            warnings.extend(self._ws.take_warnings())
            store = self._ws.store

            with store.lock(deployment_id):
                snapshot = store.read(deployment_id)
                if plan_path is not None:
                    plan = load_plan(plan_path)
                    _check_saved_plan(plan, deployment_id, graph)
                else:
                    registry.require(node.type for node in graph.nodes)
                    with trace_span("diff"):
                        plan = plan_changes(
                            graph, snapshot, registry.replace_on, destroy=destroy
                        )
                registry.require(_required_types(plan, snapshot))

                def on_change(change: Change, state: ResourceState | None) -> None:
                    self._dispatch_event(
                        "post_change",
                        warnings,
                        deployment_id=deployment_id,
                        resource_id=change.resource_id,
                        kind=change.kind.value,
                        outputs=dict(state.outputs) if state is not None else {},
                    )

                executor = ApplyExecutor(
                    registry,
                    store,
                    retry=self._ws.retry_policy(),
                    parallelism=self._ws.settings.apply.parallelism,
                    on_change=on_change,
                )
                with trace_span("execute"):
                    try:
                        outcome = executor.apply(plan, graph)
                    except PartialApplyError as exc:
                        partial = exc
        except StackError as exc:
            return ServiceResult.failure("apply", exc, warnings=warnings)

        if partial is not None:
            self._dispatch_event(
                "post_apply",
                warnings,
                deployment_id=deployment_id,
                serial=partial.serial,
                summary=plan.summary(),
                ok=False,
            )
            data = {
                "deployment_id": deployment_id,
                "run_id": run_id,
                "serial": partial.serial,
                "failed": partial.failed_resource,
                "applied": partial.applied,
                "pending": partial.pending,
            }
            return ServiceResult.failure("apply", partial, data=data, warnings=warnings)

        self._dispatch_event(
            "post_apply",
            warnings,
            deployment_id=deployment_id,
            serial=outcome.snapshot.serial,
            summary=plan.summary(),
            ok=True,
        )
        data = plan_payload(plan)
        data.update(
            {
                "run_id": run_id,
                "serial": outcome.snapshot.serial,
                "applied": [c.resource_id for c in outcome.applied],
                "outputs": outcome.snapshot.outputs,
                "written": outcome.written,
            }
        )
        return ServiceResult(ok=True, op="apply", data=data, warnings=warnings)


def _check_saved_plan(plan: ChangePlan, deployment_id: str, graph: ResourceGraph) -> None:
    if plan.deployment_id != deployment_id:
        raise StalePlanError(
            f"plan is for deployment '{plan.deployment_id}', not '{deployment_id}'"
        )
    if plan.graph_digest != graph_digest(graph):
        raise StalePlanError("the deployment description changed since the plan was made")


def _required_types(plan: ChangePlan, snapshot: Snapshot) -> set[str]:
    """Resource types whose providers the plan will call."""
    types = {c.resource_type for c in plan.changes}
    for change in plan.changes:
        if change.kind in (ChangeKind.DELETE, ChangeKind.REPLACE):
            prior = snapshot.get(change.resource_id)
            if prior is not None:
                types.add(prior.type)
    return types
