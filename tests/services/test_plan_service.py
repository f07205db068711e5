"""Tests for PlanService."""

from __future__ import annotations

from pathlib import Path

from stackctl.domain.graph import ResourceGraph
from stackctl.domain.plan import ChangePlan
from stackctl.domain.references import ref
from stackctl.infrastructure.workspace import Workspace
from stackctl.services.apply import ApplyService
from stackctl.services.plan import PlanService


def two_tier() -> ResourceGraph:
    g = ResourceGraph()
    g.declare("net", "network", {"cidr": "10.0.0.0/16"})
    g.declare("web", "instance", {"port": 80, "subnet": ref("net")})
    return g


class TestPlan:
    def test_fresh_deployment_creates_everything(self, workspace: Workspace) -> None:
        result = PlanService(workspace).plan(graph=two_tier())
        assert result.ok
        assert result.op == "plan"
        assert result.data["count"] == 2
        assert result.data["summary"] == {"create": 2, "update": 0, "replace": 0, "delete": 0}
        assert [c["resource_id"] for c in result.data["changes"]] == ["net", "web"]
        assert result.data["serial"] == 0
        assert result.data["deployment_id"] == "test"

    def test_unknown_values_displayed(self, workspace: Workspace) -> None:
        result = PlanService(workspace).plan(graph=two_tier())
        web = result.data["changes"][1]
        assert web["after"]["subnet"] == "(known after apply)"

    def test_no_changes_after_apply(self, workspace: Workspace) -> None:
        assert ApplyService(workspace).apply(graph=two_tier()).ok
        result = PlanService(workspace).plan(graph=two_tier())
        assert result.ok
        assert result.data["count"] == 0

    def test_destroy_plan(self, workspace: Workspace) -> None:
        ApplyService(workspace).apply(graph=two_tier())
        result = PlanService(workspace).plan(graph=two_tier(), destroy=True)
        assert result.ok
        assert [(c["kind"], c["resource_id"]) for c in result.data["changes"]] == [
            ("delete", "web"),
            ("delete", "net"),
        ]

    def test_saves_plan_file(self, workspace: Workspace, tmp_path: Path) -> None:
        out = tmp_path / "plan.json"
        result = PlanService(workspace).plan(graph=two_tier(), out=out)
        assert result.data["path"] == str(out)
        saved = ChangePlan.load(out)
        assert saved.resource_ids() == ["net", "web"]
        assert saved.graph_digest == result.data["graph_digest"]

    def test_planning_does_not_write_state(self, workspace: Workspace) -> None:
        PlanService(workspace).plan(graph=two_tier())
        assert workspace.store.read("test").serial == 0


class TestPlanFailures:
    def test_cycle(self, workspace: Workspace) -> None:
        g = ResourceGraph()
        g.declare("a", "record", {"peer": ref("b")})
        g.declare("b", "record", {"peer": ref("a")})
        result = PlanService(workspace).plan(graph=g)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CYCLE"
        assert set(result.error.detail["cycle"]) == {"a", "b"}

    def test_unknown_type(self, workspace: Workspace) -> None:
        g = ResourceGraph()
        g.declare("db", "database")
        result = PlanService(workspace).plan(graph=g)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNKNOWN_TYPE"

    def test_unresolved_reference(self, workspace: Workspace) -> None:
        g = ResourceGraph()
        g.declare("a", "record", {"peer": ref("ghost")})
        result = PlanService(workspace).plan(graph=g)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNRESOLVED_REFERENCE"
        assert result.error.detail["target"] == "ghost"
