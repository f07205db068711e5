"""Change plan models.

A :class:`ChangePlan` lists one :class:`Change` per affected resource, in
dependency order, for display and counting. What the executor runs is
``steps``: one :class:`Step` per provider call, so a replace is two steps.
The delete step of a replace is ordered after the teardown of the resources
that depended on the old copy; its create step comes after the new
versions of its own dependencies. ``rank`` groups steps into dependency
generations; steps of equal rank never depend on each other.
"""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ChangeKind(StrEnum):
    """Operation applied to a single resource."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"


class Change(BaseModel):
    """One planned resource operation.

    ``before`` and ``after`` hold display values: references render as
    ``${node.field}`` and values only known after apply as
    ``(known after apply)``.
    """

    model_config = {"frozen": True}

    resource_id: str
    resource_type: str
    kind: ChangeKind
    rank: int = 0
    depends_on: list[str] = Field(default_factory=list)
    changed_attributes: list[str] = Field(default_factory=list)
    before: dict[str, Any] = Field(default_factory=dict)
    after: dict[str, Any] = Field(default_factory=dict)


class Step(BaseModel):
    """One provider call: ``action`` is create, update, or delete."""

    model_config = {"frozen": True}

    resource_id: str
    action: ChangeKind
    rank: int = 0


class ChangePlan(BaseModel):
    """Ordered reconciliation plan for one deployment."""

    model_config = {"frozen": True}

    deployment_id: str
    serial: int
    graph_digest: str = ""
    destroy: bool = False
    changes: list[Change] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    outputs: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _steps_cover_changes(self) -> ChangePlan:
        missing = {c.resource_id for c in self.changes} - {s.resource_id for s in self.steps}
        if missing:
            raise ValueError(f"no steps for {', '.join(sorted(missing))}")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def summary(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in ChangeKind}
        for change in self.changes:
            counts[change.kind.value] += 1
        return counts

    def resource_ids(self) -> list[str]:
        return [c.resource_id for c in self.changes]

    def get(self, resource_id: str) -> Change | None:
        for change in self.changes:
            if change.resource_id == resource_id:
                return change
        return None

    def steps_by_rank(self) -> list[list[Step]]:
        """Steps grouped into dependency generations, in plan order."""
        groups: dict[int, list[Step]] = {}
        for step in self.steps:
            groups.setdefault(step.rank, []).append(step)
        return [groups[rank] for rank in sorted(groups)]

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> ChangePlan:
        path = Path(path)
        return cls.model_validate_json(path.read_text(encoding="utf-8"))
