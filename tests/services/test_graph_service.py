"""Tests for GraphService."""

from __future__ import annotations

from stackctl.domain.graph import ResourceGraph
from stackctl.domain.references import ref
from stackctl.infrastructure.workspace import Workspace
from stackctl.services.graph import GraphService


def stack() -> ResourceGraph:
    g = ResourceGraph(name="demo")
    g.declare("net", "network", {"cidr": "10.0.0.0/16"})
    g.declare("web", "instance", {"port": 80, "subnet": ref("net")})
    g.declare("dns", "record", {"ip": ref("web", "private_ip")})
    g.output("ip", ref("web", "private_ip"))
    return g


class TestShow:
    def test_items_in_dependency_order(self, workspace: Workspace) -> None:
        result = GraphService(workspace).show(graph=stack())
        assert result.ok
        assert result.data["name"] == "demo"
        items = result.data["items"]
        assert [i["id"] for i in items] == ["net", "web", "dns"]
        assert [i["depth"] for i in items] == [0, 1, 2]
        assert items[1]["depends_on"] == ["net"]
        assert items[1]["dependents"] == ["dns"]
        assert items[1]["attributes"]["subnet"] == "${net.id}"
        assert result.data["outputs"] == {"ip": "${web.private_ip}"}

    def test_does_not_touch_state(self, workspace: Workspace) -> None:
        GraphService(workspace).show(graph=stack())
        assert not workspace.settings.state_path.exists()


class TestValidate:
    def test_valid_graph(self, workspace: Workspace) -> None:
        result = GraphService(workspace).validate(graph=stack())
        assert result.ok
        assert result.data["resources"] == 3
        assert result.data["edges"] == 2
        assert result.data["outputs"] == 1
        assert len(result.data["digest"]) == 16

    def test_unsupported_type(self, workspace: Workspace) -> None:
        g = ResourceGraph()
        g.declare("q", "queue")
        result = GraphService(workspace).validate(graph=g)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNKNOWN_TYPE"

    def test_explicit_dependency_cycle(self, workspace: Workspace) -> None:
        g = ResourceGraph()
        g.declare("a", "record", depends_on=["b"])
        g.declare("b", "record", depends_on=["a"])
        result = GraphService(workspace).validate(graph=g)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CYCLE"
