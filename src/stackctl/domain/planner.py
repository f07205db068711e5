"""Diff planner — reconcile a finalized graph with a state snapshot.

For each declared node, in dependency order:

- absent from the snapshot: **create**
- recorded with identical resolved attributes: nothing to do
- recorded with changed attributes: **update**, or **replace** when a
  changed attribute is one the provider cannot modify in place (or the
  resource type itself changed)

Recorded resources that are no longer declared are **deleted**.

References are resolved against the snapshot as the walk proceeds. A
reference to a resource that is created or replaced in the same plan
resolves to ``UNKNOWN`` unless the field is one of its declared inputs,
and an unknown value always counts as a change.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any

import networkx as nx

from stackctl.domain.errors import UnresolvedReferenceError
from stackctl.domain.graph import ResourceGraph, ResourceNode
from stackctl.domain.plan import Change, ChangeKind, ChangePlan, Step
from stackctl.domain.references import (
    UNKNOWN,
    Reference,
    contains_unknown,
    resolve_value,
    to_display,
)
from stackctl.domain.snapshot import Snapshot

ReplaceOn = Callable[[str], Collection[str]]


@dataclass
class _Pending:
    resource_id: str
    resource_type: str
    kind: ChangeKind
    index: int
    changed: list[str]
    before: dict[str, Any]
    after: dict[str, Any]


def graph_digest(graph: ResourceGraph) -> str:
    """Stable fingerprint of a graph's declarations."""
    raw = json.dumps(graph.describe(), sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def changed_keys(before: dict[str, Any], after: dict[str, Any]) -> list[str]:
    """Keys whose values differ between *before* and *after*.

    A key missing on either side counts as changed, and so does any value
    that is not yet known.
    """
    keys = set(before) | set(after)
    changed = [
        key
        for key in keys
        if key not in before
        or key not in after
        or contains_unknown(after[key])
        or before[key] != after[key]
    ]
    return sorted(changed)


def plan_changes(
    graph: ResourceGraph,
    snapshot: Snapshot,
    replace_on: ReplaceOn,
    *,
    destroy: bool = False,
) -> ChangePlan:
    """Compute the ordered change plan for *graph* against *snapshot*.

    Args:
        graph: The declared resources; finalized here if it isn't already.
        snapshot: Last recorded state of the deployment.
        replace_on: Returns the replacement-triggering attribute names for a
            resource type.
        destroy: Plan the removal of every recorded resource.

    Raises:
        UnresolvedReferenceError: a reference cannot be resolved.
    """
    graph.finalize()

    pending: dict[str, _Pending] = {}
    resolved: dict[str, dict[str, Any]] = {}
    fresh: set[str] = set()

    def lookup(owner: str, reference: Reference) -> Any:
        target_attrs = resolved.get(reference.node_id)
        if target_attrs is not None and reference.field in target_attrs:
            return target_attrs[reference.field]
        if reference.node_id in fresh:
            return UNKNOWN
        found, value = snapshot.resolve(reference)
        if not found:
            raise UnresolvedReferenceError(owner, reference.node_id, reference.field)
        return value

    if not destroy:
        for resource_id in graph.topological_order():
            node = graph.get(resource_id)
            desired = resolve_value(dict(node.attributes), lambda r, o=resource_id: lookup(o, r))
            resolved[resource_id] = desired
            entry = _diff_node(node, desired, snapshot, replace_on)
            if entry is None:
                continue
            if entry.kind in (ChangeKind.CREATE, ChangeKind.REPLACE):
                fresh.add(resource_id)
            pending[resource_id] = entry

    declared = set() if destroy else {n.id for n in graph.nodes}
    for resource_id in snapshot.ordered_ids():
        if resource_id in declared:
            continue
        prior = snapshot.resources[resource_id]
        pending[resource_id] = _Pending(
            resource_id=resource_id,
            resource_type=prior.type,
            kind=ChangeKind.DELETE,
            index=prior.declared_index,
            changed=sorted(prior.attributes),
            before=dict(prior.attributes),
            after={},
        )

    outputs: dict[str, Any] = {}
    if not destroy:
        for decl in graph.outputs:
            value = resolve_value(decl.value, lambda r, n=decl.name: lookup(f"output:{n}", r))
            outputs[decl.name] = to_display(value)

    changes, steps = _order(pending, graph, snapshot)
    return ChangePlan(
        deployment_id=snapshot.deployment_id,
        serial=snapshot.serial,
        graph_digest=graph_digest(graph),
        destroy=destroy,
        changes=changes,
        steps=steps,
        outputs=outputs,
    )


def _diff_node(
    node: ResourceNode,
    desired: dict[str, Any],
    snapshot: Snapshot,
    replace_on: ReplaceOn,
) -> _Pending | None:
    prior = snapshot.get(node.id)
    if prior is None:
        return _Pending(
            resource_id=node.id,
            resource_type=node.type,
            kind=ChangeKind.CREATE,
            index=node.declared_index,
            changed=sorted(desired),
            before={},
            after=desired,
        )

    changed = changed_keys(prior.attributes, desired)
    if prior.type != node.type:
        kind = ChangeKind.REPLACE
    elif not changed:
        return None
    elif set(changed) & set(replace_on(node.type)):
        kind = ChangeKind.REPLACE
    else:
        kind = ChangeKind.UPDATE

    return _Pending(
        resource_id=node.id,
        resource_type=node.type,
        kind=kind,
        index=node.declared_index,
        changed=changed,
        before=dict(prior.attributes),
        after=desired,
    )


_Op = tuple[str, ChangeKind]


def _order(
    pending: dict[str, _Pending],
    graph: ResourceGraph,
    snapshot: Snapshot,
) -> tuple[list[Change], list[Step]]:
    """Sort pending entries into provider steps and display entries.

    Each entry becomes a *build* op (create or update, the create half of a
    replace) and/or a *teardown* op (delete, the delete half of a replace).
    Builds follow the builds of their dependencies. A teardown follows the
    teardowns of everything recorded as depending on it, and the update of
    any dependent that no longer references it. A dependent that is only
    updated and still references a replaced resource needs the new copy's
    values, so it runs after the build.
    """
    ops: nx.DiGraph = nx.DiGraph()
    build: dict[str, _Op] = {}
    teardown: dict[str, _Op] = {}
    for resource_id, entry in pending.items():
        if entry.kind in (ChangeKind.DELETE, ChangeKind.REPLACE):
            teardown[resource_id] = (resource_id, ChangeKind.DELETE)
            ops.add_node(teardown[resource_id])
        if entry.kind is not ChangeKind.DELETE:
            action = ChangeKind.CREATE if entry.kind is ChangeKind.REPLACE else entry.kind
            build[resource_id] = (resource_id, action)
            ops.add_node(build[resource_id])
        if entry.kind is ChangeKind.REPLACE:
            ops.add_edge(teardown[resource_id], build[resource_id])

    for resource_id, op in build.items():
        for dep in graph.dependencies(resource_id):
            if dep in build:
                ops.add_edge(build[dep], op)

    moved_off: list[tuple[_Op, _Op]] = []
    for resource_id, state in snapshot.resources.items():
        if resource_id not in pending:
            continue
        for dep in state.dependencies:
            if dep not in teardown:
                continue
            if resource_id in teardown:
                ops.add_edge(teardown[resource_id], teardown[dep])
            elif dep not in build or dep not in graph.dependencies(resource_id):
                moved_off.append((build[resource_id], teardown[dep]))

    # An update that moves off a resource goes first unless it also waits,
    # through other resources, on that resource being rebuilt.
    for before, after in moved_off:
        if not nx.has_path(ops, after, before):
            ops.add_edge(before, after)

    def sort_key(op: _Op) -> tuple[int, int, str]:
        resource_id, action = op
        return (0 if action is ChangeKind.DELETE else 1, pending[resource_id].index, resource_id)

    ranks: dict[_Op, int] = {}
    for generation, members in enumerate(nx.topological_generations(ops)):
        for member in members:
            ranks[member] = generation

    ordered = list(nx.lexicographical_topological_sort(ops, key=sort_key))
    steps = [
        Step(resource_id=resource_id, action=action, rank=ranks[(resource_id, action)])
        for resource_id, action in ordered
    ]

    # An entry is listed where its last step runs.
    last = {resource_id: position for position, (resource_id, _) in enumerate(ordered)}
    changes: list[Change] = []
    for resource_id in sorted(last, key=last.__getitem__):
        entry = pending[resource_id]
        own = [op for op in (teardown.get(resource_id), build.get(resource_id)) if op]
        depends_on = {pred[0] for op in own for pred in ops.predecessors(op)} - {resource_id}
        final = own[-1]
        changes.append(
            Change(
                resource_id=resource_id,
                resource_type=entry.resource_type,
                kind=entry.kind,
                rank=ranks[final],
                depends_on=sorted(depends_on, key=lambda r: last[r]),
                changed_attributes=entry.changed,
                before=to_display(entry.before),
                after=to_display(entry.after),
            )
        )
    return changes, steps
