"""Tests for the builtin web application topology and topology loading."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from stackctl.config.settings import StackSettings
from stackctl.domain.errors import TopologyError
from stackctl.infrastructure.workspace import Workspace
from stackctl.plugins.manager import PluginManager
from stackctl.services.apply import ApplyService
from stackctl.services.plan import PlanService
from stackctl.topology import load_topology, resolve_topology


@pytest.fixture
def sim_workspace(settings: StackSettings) -> Iterator[Workspace]:
    """Workspace on the simulated cloud (the default registry)."""
    ws = Workspace(settings, plugin_manager=PluginManager())
    try:
        yield ws
    finally:
        ws.close()


class TestWebAppGraph:
    def test_declares_every_component(self, settings: StackSettings) -> None:
        graph = load_topology(settings, name="webapp")
        assert [node.id for node in graph.nodes] == [
            "vpc",
            "alb_sg",
            "web_sg",
            "web_role",
            "deploy_bucket",
            "deploy_bucket_grant",
            "web_server",
            "alb",
            "web_targets",
            "http_listener",
            "dns_record",
            "dashboard",
        ]
        assert [o.name for o in graph.outputs] == [
            "load_balancer_dns",
            "website_url",
            "deployment_bucket_name",
        ]

    def test_dependencies(self, settings: StackSettings) -> None:
        graph = load_topology(settings, name="webapp")
        assert graph.dependencies("web_server") == [
            "vpc",
            "web_sg",
            "web_role",
            "deploy_bucket_grant",
        ]
        assert graph.dependencies("dns_record") == ["alb"]
        order = graph.topological_order()
        assert order.index("deploy_bucket_grant") < order.index("web_server")
        assert order.index("web_server") < order.index("dashboard")

    def test_values_come_from_config(self, tmp_path: Path) -> None:
        (tmp_path / "stackctl.toml").write_text(
            '[webapp]\ndomain_name = "corp.example"\nrecord_name = "shop"\n'
            'name_prefix = "shop"\nrdp_port = 3390\n',
            encoding="utf-8",
        )
        settings = StackSettings.from_cli(project_root=tmp_path)
        graph = load_topology(settings, name="webapp")
        assert graph.get("dns_record").attributes["zone"] == "corp.example"
        assert graph.get("alb").attributes["name"] == "shop-alb"
        ports = [rule["port"] for rule in graph.get("web_sg").attributes["ingress"]]
        assert 3390 in ports
        website = next(o for o in graph.outputs if o.name == "website_url")
        assert website.value == "http://shop.corp.example"


class TestWebAppLifecycle:
    def test_plan_apply_replan(self, sim_workspace: Workspace) -> None:
        plan = PlanService(sim_workspace).plan()
        assert plan.ok
        assert plan.data["summary"]["create"] == 12

        applied = ApplyService(sim_workspace).apply()
        assert applied.ok, applied.error
        outputs = applied.data["outputs"]
        assert outputs["website_url"] == "http://webapp.example.com"
        assert outputs["load_balancer_dns"].endswith(".elb.sim.internal")
        assert outputs["deployment_bucket_name"].startswith("webapp-deploy-")

        replan = PlanService(sim_workspace).plan()
        assert replan.ok
        assert replan.data["count"] == 0

    def test_instance_type_change_cascades(self, project_root: Path) -> None:
        first = StackSettings.from_cli(project_root=project_root)
        ws = Workspace(first, plugin_manager=PluginManager())
        assert ApplyService(ws).apply().ok
        ws.close()

        with (project_root / "stackctl.toml").open("a", encoding="utf-8") as fh:
            fh.write('\n[webapp]\ninstance_type = "t3.large"\n')
        changed = StackSettings.from_cli(project_root=project_root)
        ws = Workspace(changed, plugin_manager=PluginManager())
        try:
            plan = PlanService(ws).plan()
            kinds = {c["resource_id"]: c["kind"] for c in plan.data["changes"]}
            assert kinds["web_server"] == "replace"
            assert kinds["web_targets"] == "update"
            assert kinds["dashboard"] == "update"
            assert "vpc" not in kinds

            assert ApplyService(ws).apply().ok
            assert PlanService(ws).plan().data["count"] == 0
        finally:
            ws.close()


class TestResolveTopology:
    def test_unknown_builtin(self) -> None:
        with pytest.raises(TopologyError, match="Unknown topology"):
            resolve_topology("mainframe")

    def test_missing_module(self) -> None:
        with pytest.raises(TopologyError, match="Cannot import"):
            resolve_topology("no_such_module_xyz:build")

    def test_import_path(
        self, tmp_path: Path, settings: StackSettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "custom_stack.py").write_text(
            "from stackctl.domain.references import ref\n\n"
            "def build(graph, settings):\n"
            "    graph.declare('queue', 'record', {'name': settings.deployment_id})\n"
            "    graph.declare('consumer', 'record', {'queue': ref('queue')})\n",
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.delitem(sys.modules, "custom_stack", raising=False)
        graph = load_topology(settings, name="custom_stack:build")
        assert graph.name == "custom_stack:build"
        assert graph.dependencies("consumer") == ["queue"]
        assert graph.get("queue").attributes["name"] == "test"

    def test_topology_exception_wrapped(
        self, tmp_path: Path, settings: StackSettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "broken_stack.py").write_text(
            "def build(graph, settings):\n    raise KeyError('subnet')\n", encoding="utf-8"
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.delitem(sys.modules, "broken_stack", raising=False)
        with pytest.raises(TopologyError, match="failed"):
            load_topology(settings, name="broken_stack:build")
