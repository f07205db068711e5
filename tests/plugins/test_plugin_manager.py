"""Tests for plugin discovery, provider collection, and hook dispatch."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from stackctl.plugins.hookspecs import hookimpl
from stackctl.plugins.manager import PluginManager
from stackctl.providers.base import ResourceProvider
from stackctl.providers.memory import InMemoryProvider, TypeSpec
from stackctl.providers.registry import ProviderRegistry

_LOCAL_PLUGIN = '''\
from stackctl.plugins.hookspecs import hookimpl
from stackctl.providers.memory import InMemoryProvider, TypeSpec


class QueuePlugin:
    @hookimpl
    def register_providers(self):
        return {"queue": InMemoryProvider({"queue": TypeSpec("q")})}


class NotAPlugin:
    def register_providers(self):
        return {}
'''


@pytest.fixture
def local_dir(tmp_path: Path) -> Iterator[Path]:
    plugin_dir = tmp_path / "plugins"
    plugin_dir.mkdir()
    yield plugin_dir
    for name in [m for m in sys.modules if m.startswith("stackctl_local_plugin_")]:
        del sys.modules[name]


class _Provides:
    def __init__(self, mapping: object) -> None:
        self.mapping = mapping

    @hookimpl
    def register_providers(self) -> object:
        return self.mapping


class _Raises:
    @hookimpl
    def register_providers(self) -> dict[str, ResourceProvider]:
        raise RuntimeError("no credentials")


class _FailingEvent:
    @hookimpl
    def post_plan(self, deployment_id: str, summary: dict[str, int]) -> None:
        raise ValueError("webhook down")


class TestLocalDiscovery:
    def test_loads_hook_classes_only(self, local_dir: Path) -> None:
        (local_dir / "queues.py").write_text(_LOCAL_PLUGIN, encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=local_dir)
        assert "stackctl_local_plugin_queues.QueuePlugin" in names
        assert not any(n.endswith("NotAPlugin") for n in names)
        assert pm.is_loaded

    def test_skips_private_and_broken_files(self, local_dir: Path) -> None:
        (local_dir / "_helpers.py").write_text(_LOCAL_PLUGIN, encoding="utf-8")
        (local_dir / "broken.py").write_text("import does_not_exist_xyz\n", encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=local_dir)
        assert not any("local_plugin" in n for n in names)
        assert "stackctl_local_plugin_broken" not in sys.modules

    def test_missing_directory(self, tmp_path: Path) -> None:
        pm = PluginManager()
        pm.discover_and_load(local_dir=tmp_path / "absent")
        assert pm.is_loaded

    def test_local_provider_registered(self, local_dir: Path) -> None:
        (local_dir / "queues.py").write_text(_LOCAL_PLUGIN, encoding="utf-8")
        pm = PluginManager()
        pm.discover_and_load(local_dir=local_dir)
        registry = ProviderRegistry()
        assert pm.collect_providers(registry) == []
        assert "queue" in registry


class TestCollectProviders:
    def test_plugin_overrides_builtin(self, provider: InMemoryProvider) -> None:
        registry = ProviderRegistry()
        registry.register(provider)
        override = InMemoryProvider({"record": TypeSpec("dnsrec")})
        pm = PluginManager()
        pm.register_plugin(_Provides({"record": override}))
        pm.collect_providers(registry)
        assert registry.get("record") is override
        assert registry.get("network") is provider

    def test_failures_become_warnings(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_Raises())
        pm.register_plugin(_Provides(["not", "a", "dict"]), name="listy")
        warnings = pm.collect_providers(ProviderRegistry())
        assert warnings == [
            "Plugin _Raises failed to register providers",
            "Plugin listy returned non-dict provider registrations",
        ]

    def test_none_is_ignored(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_Provides(None))
        assert pm.collect_providers(ProviderRegistry()) == []


class TestDispatch:
    def test_hook_failure_is_warning(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_FailingEvent())
        assert pm.dispatch("post_plan", deployment_id="d", summary={}) == [
            "Plugin hook post_plan failed"
        ]

    def test_no_plugins(self) -> None:
        assert PluginManager().dispatch("post_plan", deployment_id="d", summary={}) == []

    def test_unregister(self) -> None:
        pm = PluginManager()
        plugin = _FailingEvent()
        pm.register_plugin(plugin)
        pm.unregister(plugin)
        assert pm.list_plugin_names() == []
