"""State snapshot models — last applied state of a deployment.

A snapshot is read before planning and written after apply. It records,
per resource, the resolved attributes that were last sent to the provider
and the values the provider reported back (including its identifier).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from stackctl.domain.references import Reference


class ResourceState(BaseModel):
    """Recorded state of one applied resource."""

    model_config = {"frozen": True}

    type: str
    provider_id: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    declared_index: int = 0

    def lookup(self, field: str) -> tuple[bool, Any]:
        """Find *field* among attributes, then outputs, then ``id``.

        Declared inputs win over provider-reported values so that plan-time
        and apply-time resolution agree. Returns ``(found, value)``.
        """
        if field in self.attributes:
            return True, self.attributes[field]
        if field in self.outputs:
            return True, self.outputs[field]
        if field == "id":
            return True, self.provider_id
        return False, None


class Snapshot(BaseModel):
    """All recorded resources of one deployment."""

    model_config = {"frozen": True}

    deployment_id: str
    serial: int = 0
    resources: dict[str, ResourceState] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    partial: bool = False
    updated_at: str | None = None

    @classmethod
    def empty(cls, deployment_id: str) -> Snapshot:
        return cls(deployment_id=deployment_id)

    @property
    def is_empty(self) -> bool:
        return not self.resources

    def get(self, resource_id: str) -> ResourceState | None:
        return self.resources.get(resource_id)

    def resolve(self, reference: Reference) -> tuple[bool, Any]:
        """Look up a reference against recorded resources."""
        state = self.resources.get(reference.node_id)
        if state is None:
            return False, None
        return state.lookup(reference.field)

    def ordered_ids(self) -> list[str]:
        """Resource ids in their recorded declaration order."""
        return sorted(self.resources, key=lambda rid: (self.resources[rid].declared_index, rid))
