"""ResourceGraph — accumulates resource declarations and their dependencies.

Declarations are collected in order. Nothing is resolved while building:
attribute references stay symbolic. :meth:`ResourceGraph.finalize` checks
that every dependency and reference target exists, folds reference edges
into the explicit ``depends_on`` edges, and rejects cycles. After that the
graph is frozen and can be planned against.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import networkx as nx

from stackctl.domain.errors import (
    CyclicDependencyError,
    DeclarationError,
    DuplicateIdError,
    UnresolvedReferenceError,
)
from stackctl.domain.references import Reference, iter_references, to_display


@dataclass(frozen=True)
class ResourceNode:
    """A single declared resource."""

    id: str
    type: str
    attributes: Mapping[str, Any]
    depends_on: frozenset[str] = frozenset()
    declared_index: int = 0

    def references(self) -> list[Reference]:
        """All references held by this node's attributes."""
        return list(iter_references(dict(self.attributes)))

    def implicit_dependencies(self) -> set[str]:
        return {r.node_id for r in self.references()}

    def all_dependencies(self) -> set[str]:
        """Explicit plus reference-implied dependency ids."""
        return set(self.depends_on) | self.implicit_dependencies()


@dataclass(frozen=True)
class OutputDecl:
    """A named stack output (literal or reference)."""

    name: str
    value: Any
    description: str = ""


@dataclass
class ResourceGraph:
    """Builder and container for a deployment's resource graph."""

    name: str = "default"
    _nodes: dict[str, ResourceNode] = field(default_factory=dict, repr=False)
    _outputs: dict[str, OutputDecl] = field(default_factory=dict, repr=False)
    _dag: nx.DiGraph | None = field(default=None, repr=False)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def declare(
        self,
        resource_id: str,
        resource_type: str,
        attributes: Mapping[str, Any] | None = None,
        *,
        depends_on: Iterable[str] = (),
    ) -> ResourceNode:
        """Add a resource node.

        Raises:
            DuplicateIdError: *resource_id* was already declared.
            DeclarationError: the graph is finalized, or id/type is empty.
        """
        self._ensure_open()
        if not resource_id:
            raise DeclarationError("Resource id must not be empty")
        if not resource_type:
            raise DeclarationError(f"Resource '{resource_id}' has no type")
        if resource_id in self._nodes:
            raise DuplicateIdError(resource_id)

        node = ResourceNode(
            id=resource_id,
            type=resource_type,
            attributes=MappingProxyType(dict(attributes or {})),
            depends_on=frozenset(depends_on),
            declared_index=len(self._nodes),
        )
        self._nodes[resource_id] = node
        return node

    def output(self, name: str, value: Any, description: str = "") -> OutputDecl:
        """Declare a stack output."""
        self._ensure_open()
        if name in self._outputs:
            raise DuplicateIdError(name, kind="output")
        decl = OutputDecl(name=name, value=value, description=description)
        self._outputs[name] = decl
        return decl

    def finalize(self) -> ResourceGraph:
        """Validate references and check for dependency cycles.

        Safe to call more than once. Returns ``self`` for chaining.

        Raises:
            UnresolvedReferenceError: a dependency or reference target is
                not declared.
            CyclicDependencyError: the dependency edges contain a cycle.
        """
        if self._dag is not None:
            return self

        dag: nx.DiGraph = nx.DiGraph()
        for node in self._nodes.values():
            dag.add_node(node.id, index=node.declared_index)

        for node in self._nodes.values():
            for dep in sorted(node.depends_on):
                if dep not in self._nodes:
                    raise UnresolvedReferenceError(node.id, dep)
                dag.add_edge(dep, node.id)
            for reference in node.references():
                if reference.node_id not in self._nodes:
                    raise UnresolvedReferenceError(node.id, reference.node_id, reference.field)
                dag.add_edge(reference.node_id, node.id)

        for decl in self._outputs.values():
            for reference in iter_references(decl.value):
                if reference.node_id not in self._nodes:
                    raise UnresolvedReferenceError(
                        f"output:{decl.name}", reference.node_id, reference.field
                    )

        try:
            cycle_edges = nx.find_cycle(dag)
        except nx.NetworkXNoCycle:
            cycle_edges = []
        if cycle_edges:
            raise CyclicDependencyError([u for u, _v in cycle_edges])

        self._dag = dag
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_finalized(self) -> bool:
        return self._dag is not None

    @property
    def dag(self) -> nx.DiGraph:
        """The dependency DiGraph (edge ``a -> b`` means b depends on a)."""
        if self._dag is None:
            raise DeclarationError("Graph must be finalized before it is queried")
        return self._dag

    @property
    def nodes(self) -> list[ResourceNode]:
        """Nodes in declaration order."""
        return list(self._nodes.values())

    @property
    def outputs(self) -> list[OutputDecl]:
        return list(self._outputs.values())

    def get(self, resource_id: str) -> ResourceNode:
        return self._nodes[resource_id]

    def dependencies(self, resource_id: str) -> list[str]:
        """Direct dependencies of *resource_id*, in declaration order."""
        return self._by_index(self.dag.predecessors(resource_id))

    def dependents(self, resource_id: str) -> list[str]:
        """Resources that directly depend on *resource_id*."""
        return self._by_index(self.dag.successors(resource_id))

    def topological_order(self) -> list[str]:
        """Dependencies first; ties broken by declaration order."""
        return list(
            nx.lexicographical_topological_sort(
                self.dag, key=lambda n: self._nodes[n].declared_index
            )
        )

    def describe(self) -> dict[str, Any]:
        """Plain-data view of the graph for rendering."""
        order = self.topological_order() if self.is_finalized else list(self._nodes)
        resources: list[dict[str, Any]] = []
        for resource_id in order:
            node = self._nodes[resource_id]
            deps = self.dependencies(resource_id) if self.is_finalized else sorted(node.depends_on)
            resources.append(
                {
                    "id": node.id,
                    "type": node.type,
                    "depends_on": deps,
                    "attributes": to_display(dict(node.attributes)),
                }
            )
        return {
            "name": self.name,
            "count": len(resources),
            "resources": resources,
            "outputs": [
                {"name": o.name, "value": to_display(o.value), "description": o.description}
                for o in self._outputs.values()
            ],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._dag is not None:
            raise DeclarationError("Graph is finalized; no further declarations allowed")

    def _by_index(self, ids: Iterable[str]) -> list[str]:
        return sorted(ids, key=lambda n: self._nodes[n].declared_index)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes.values())
