"""ApplyExecutor — run a change plan against the providers.

The executor runs ``plan.steps``: one provider call each, so a replace is a
delete step and a later create step. With ``parallelism > 1`` the steps are
split into dependency generations (``Step.rank``) and the steps of one
generation share a thread pool, at most ``parallelism`` in flight; a
generation starts only after the previous one has fully finished.

On the first failure nothing new is started. Steps already in flight finish
and are recorded. The snapshot is then written with ``partial=True`` and
:class:`PartialApplyError` names the failed resource and the resources left
pending. A run that completes writes the whole new snapshot in one
transaction.

Attribute references are resolved again here, against the working snapshot,
so values that were unknown at plan time (provider ids, ARNs, DNS names)
are filled in from the resources applied earlier in the same run.
"""

from __future__ import annotations

import contextvars
from collections import deque
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from stackctl.domain.errors import (
    PartialApplyError,
    ProviderError,
    StackError,
    StalePlanError,
    UnresolvedReferenceError,
)
from stackctl.domain.plan import Change, ChangeKind, ChangePlan, Step
from stackctl.domain.references import Reference, resolve_value
from stackctl.domain.snapshot import ResourceState, Snapshot
from stackctl.providers.retry import RetryPolicy
from stackctl.services.telemetry import trace_span

if TYPE_CHECKING:
    from stackctl.domain.graph import ResourceGraph
    from stackctl.infrastructure.state_store import StateStore
    from stackctl.providers.registry import ProviderRegistry

log = structlog.get_logger(__name__)

ChangeCallback = Callable[[Change, ResourceState | None], None]


@dataclass
class _Outcome:
    step: Step
    state: ResourceState | None = None
    error: StackError | None = None
    started: bool = True


@dataclass
class ApplyOutcome:
    """Result of a completed apply."""

    snapshot: Snapshot
    applied: list[Change] = field(default_factory=list)
    written: bool = True


class ApplyExecutor:
    """Executes change plans and records the resulting snapshot.

    Args:
        registry: Resolves the provider for each resource type.
        store: Snapshot persistence. The caller holds the deployment lock.
        retry: Retry policy for provider calls (no retries by default).
        parallelism: Maximum concurrent provider calls within a generation.
        on_change: Called on the calling thread after each entry completes.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: StateStore,
        *,
        retry: RetryPolicy | None = None,
        parallelism: int = 1,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._retry = retry or RetryPolicy()
        self._parallelism = max(1, parallelism)
        self._on_change = on_change

    def apply(self, plan: ChangePlan, graph: ResourceGraph) -> ApplyOutcome:
        """Execute *plan* for the resources declared in *graph*.

        Raises:
            StalePlanError: the stored snapshot changed since *plan* was made.
            PartialApplyError: a step failed; the partial snapshot is stored.
        """
        snapshot = self._store.read(plan.deployment_id)
        if snapshot.serial != plan.serial:
            raise StalePlanError(
                f"state serial is {snapshot.serial}, plan was made at serial {plan.serial}"
            )

        changes = {c.resource_id: c for c in plan.changes}
        working: dict[str, ResourceState] = dict(snapshot.resources)
        applied: list[Change] = []
        log_entries: list[dict[str, Any]] = []

        groups = plan.steps_by_rank() if self._parallelism > 1 else [[s] for s in plan.steps]
        for index, group in enumerate(groups):
            failures: list[_Outcome] = []
            not_started: list[str] = []
            for outcome in self._run_group(group, working, graph):
                step = outcome.step
                change = changes[step.resource_id]
                if not outcome.started:
                    not_started.append(step.resource_id)
                    continue
                if outcome.error is not None:
                    failures.append(outcome)
                    log_entries.append(_log_entry(change, "failed", outcome.error))
                    continue
                if outcome.state is None:
                    working.pop(step.resource_id, None)
                else:
                    working[step.resource_id] = outcome.state
                if change.kind is ChangeKind.REPLACE and step.action is ChangeKind.DELETE:
                    # Complete once the new copy exists.
                    continue
                applied.append(change)
                log_entries.append(_log_entry(change, "applied"))
                if self._on_change is not None:
                    self._on_change(change, outcome.state)

            if failures:
                failed = {o.step.resource_id for o in failures}
                remaining = not_started + [s.resource_id for g in groups[index + 1 :] for s in g]
                pending = [rid for rid in dict.fromkeys(remaining) if rid not in failed]
                self._fail(plan, snapshot, working, applied, failures[0], pending, log_entries)

        return self._finish(plan, graph, snapshot, working, applied, log_entries)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run_group(
        self,
        group: list[Step],
        working: Mapping[str, ResourceState],
        graph: ResourceGraph,
    ) -> list[_Outcome]:
        """Run one generation; after a failure, queued steps are not started.

        Outcomes come back in plan order, not completion order.
        """
        if len(group) == 1:
            return [self._run(group[0], working, graph)]

        queue = deque(enumerate(group))
        outcomes: dict[int, _Outcome] = {}
        running: dict[Future[_Outcome], int] = {}
        halted = False
        with ThreadPoolExecutor(max_workers=self._parallelism) as pool:
            while queue or running:
                while queue and not halted and len(running) < self._parallelism:
                    position, step = queue.popleft()
                    context = contextvars.copy_context()
                    running[pool.submit(context.run, self._run, step, working, graph)] = position
                if not running:
                    break
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    outcome = future.result()
                    outcomes[running.pop(future)] = outcome
                    halted = halted or outcome.error is not None

        return [
            outcomes.get(position) or _Outcome(step=step, started=False)
            for position, step in enumerate(group)
        ]

    def _run(
        self,
        step: Step,
        working: Mapping[str, ResourceState],
        graph: ResourceGraph,
    ) -> _Outcome:
        outcome = _Outcome(step=step)
        rid = step.resource_id
        with trace_span(f"{step.action.value}:{rid}") as span:
            try:
                if step.action is ChangeKind.DELETE:
                    self._delete(rid, working[rid])
                elif step.action is ChangeKind.CREATE:
                    outcome.state = self._create(rid, working, graph)
                else:
                    outcome.state = self._update(rid, working, graph)
            except StackError as exc:
                outcome.error = exc
            except Exception as exc:
                log.exception("apply.unexpected", resource_id=rid, action=step.action.value)
                wrapped = ProviderError(str(exc), resource_id=rid, operation=step.action.value)
                wrapped.__cause__ = exc
                outcome.error = wrapped

            if span is not None:
                span.annotate("ok", outcome.error is None)

        if outcome.error is None:
            log.info(
                "apply.step",
                resource_id=rid,
                action=step.action.value,
                provider_id=outcome.state.provider_id if outcome.state else None,
            )
        else:
            log.warning(
                "apply.failed",
                resource_id=rid,
                action=step.action.value,
                error=str(outcome.error),
            )
        return outcome
    def _create(
        self,
        rid: str,
        working: Mapping[str, ResourceState],
        graph: ResourceGraph,
    ) -> ResourceState:
        node = graph.get(rid)
        attributes = _resolve(rid, node.attributes, working)
        provider = self._registry.get(node.type)
        result = self._call(
            rid,
            "create",
            lambda: provider.create(node.type, attributes, logical_id=rid),
        )
        return ResourceState(
            type=node.type,
            provider_id=result.provider_id,
            attributes=attributes,
            outputs=result.outputs,
            dependencies=graph.dependencies(rid),
            declared_index=node.declared_index,
        )

    def _update(
        self,
        rid: str,
        working: Mapping[str, ResourceState],
        graph: ResourceGraph,
    ) -> ResourceState:
        node = graph.get(rid)
        prior = working[rid]
        attributes = _resolve(rid, node.attributes, working)
        provider = self._registry.get(node.type)
        result = self._call(
            rid,
            "update",
            lambda: provider.update(
                node.type, prior.provider_id, prior.attributes, attributes, logical_id=rid
            ),
        )
        return ResourceState(
            type=node.type,
            provider_id=result.provider_id,
            attributes=attributes,
            outputs=result.outputs,
            dependencies=graph.dependencies(rid),
            declared_index=node.declared_index,
        )

    def _delete(self, rid: str, prior: ResourceState) -> None:
        provider = self._registry.get(prior.type)
        self._call(
            rid,
            "delete",
            lambda: provider.delete(prior.type, prior.provider_id, logical_id=rid),
        )

    def _call(self, rid: str, operation: str, fn: Callable[[], Any]) -> Any:
        """Invoke a provider operation, binding errors to *rid* and *operation*."""
        try:
            return self._retry.call(fn)
        except ProviderError as exc:
            raise ProviderError(
                exc.reason,
                resource_id=rid,
                operation=operation,
                retryable=exc.retryable,
            ) from exc
        except StackError:
            raise
        except Exception as exc:
            raise ProviderError(str(exc), resource_id=rid, operation=operation) from exc

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _fail(
        self,
        plan: ChangePlan,
        snapshot: Snapshot,
        working: dict[str, ResourceState],
        applied: list[Change],
        failure: _Outcome,
        pending: list[str],
        log_entries: list[dict[str, Any]],
    ) -> None:
        partial = Snapshot(
            deployment_id=plan.deployment_id,
            resources=working,
            outputs=snapshot.outputs,
            partial=True,
        )
        stored = self._store.write(plan.deployment_id, partial)
        self._store.record(plan.deployment_id, stored.serial, log_entries)
        log.warning(
            "apply.partial",
            failed=failure.step.resource_id,
            applied=len(applied),
            pending=len(pending),
            serial=stored.serial,
        )
        raise PartialApplyError(
            failure.step.resource_id,
            pending,
            applied=[c.resource_id for c in applied],
            cause=failure.error,
            serial=stored.serial,
        ) from failure.error

    def _finish(
        self,
        plan: ChangePlan,
        graph: ResourceGraph,
        snapshot: Snapshot,
        working: dict[str, ResourceState],
        applied: list[Change],
        log_entries: list[dict[str, Any]],
    ) -> ApplyOutcome:
        # Unchanged resources may have moved in the declaration order or
        # gained explicit dependencies.
        for node in graph.nodes:
            state = working.get(node.id)
            if state is None:
                continue
            dependencies = graph.dependencies(node.id)
            if state.declared_index != node.declared_index or state.dependencies != dependencies:
                working[node.id] = state.model_copy(
                    update={"declared_index": node.declared_index, "dependencies": dependencies}
                )

        outputs: dict[str, Any] = {}
        if not plan.destroy:
            for decl in graph.outputs:
                outputs[decl.name] = _resolve(f"output:{decl.name}", decl.value, working)

        if (
            not applied
            and not snapshot.partial
            and working == snapshot.resources
            and outputs == snapshot.outputs
        ):
            return ApplyOutcome(snapshot=snapshot, applied=[], written=False)

        stored = self._store.write(
            plan.deployment_id,
            Snapshot(deployment_id=plan.deployment_id, resources=working, outputs=outputs),
        )
        self._store.record(plan.deployment_id, stored.serial, log_entries)
        log.info("apply.complete", applied=len(applied), serial=stored.serial)
        return ApplyOutcome(snapshot=stored, applied=applied)


def _resolve(owner: str, value: Any, working: Mapping[str, ResourceState]) -> Any:
    def lookup(reference: Reference) -> Any:
        state = working.get(reference.node_id)
        if state is not None:
            found, resolved = state.lookup(reference.field)
            if found:
                return resolved
        raise UnresolvedReferenceError(owner, reference.node_id, reference.field)

    if isinstance(value, Mapping):
        value = dict(value)
    return resolve_value(value, lookup)


def _log_entry(change: Change, status: str, error: BaseException | None = None) -> dict[str, Any]:
    return {
        "resource_id": change.resource_id,
        "kind": change.kind.value,
        "status": status,
        "error": str(error) if error is not None else None,
    }
