"""Tests for Workspace wiring."""

from __future__ import annotations

from pathlib import Path

from stackctl.config.settings import StackSettings
from stackctl.infrastructure.workspace import Workspace
from stackctl.plugins.hookspecs import hookimpl
from stackctl.plugins.manager import PluginManager
from stackctl.providers.base import ResourceProvider
from stackctl.services.graph import GraphService
from stackctl.services.plan import PlanService


def _settings(root: Path, toml: str) -> StackSettings:
    (root / "stackctl.toml").write_text(toml, encoding="utf-8")
    return StackSettings.from_cli(project_root=root)


class _NoCredentials:
    @hookimpl
    def register_providers(self) -> dict[str, ResourceProvider]:
        raise RuntimeError("no credentials")


class TestWorkspace:
    def test_state_database_created_lazily(self, settings: StackSettings) -> None:
        ws = Workspace(settings, plugin_manager=PluginManager())
        assert not settings.state_path.exists()
        ws.store.read(ws.deployment_id)
        assert settings.state_path.exists()
        ws.close()

    def test_default_registry_is_simulated_cloud(self, settings: StackSettings) -> None:
        ws = Workspace(settings, plugin_manager=PluginManager())
        types = ws.registry.types()
        assert "vpc" in types
        assert "dashboard" in types
        assert ws.take_warnings() == []

    def test_simulated_provider_disabled(self, tmp_path: Path) -> None:
        settings = _settings(
            tmp_path, "[plugins]\nenabled = false\n\n[providers]\nsimulated = false\n"
        )
        ws = Workspace(settings)
        assert ws.registry.types() == []

    def test_plugins_not_discovered_when_disabled(self, tmp_path: Path) -> None:
        plugin_dir = tmp_path / ".stackctl" / "plugins"
        plugin_dir.mkdir(parents=True)
        (plugin_dir / "boom.py").write_text("raise RuntimeError('loaded')\n", encoding="utf-8")
        settings = _settings(tmp_path, "[plugins]\nenabled = false\n")
        ws = Workspace(settings)
        assert ws.plugins.list_plugin_names() == []
        assert not ws.plugins.is_loaded

    def test_retry_policy_from_settings(self, tmp_path: Path) -> None:
        settings = _settings(
            tmp_path,
            "[plugins]\nenabled = false\n\n[retry]\nmax_attempts = 4\nbackoff_max = 2.5\n",
        )
        policy = Workspace(settings).retry_policy()
        assert policy.enabled
        assert policy.max_attempts == 4
        assert policy.max_wait == 2.5

    def test_deployment_override(self, project_root: Path) -> None:
        settings = StackSettings.from_cli(project_root=project_root, deployment_override="prod")
        assert Workspace(settings).deployment_id == "prod"

    def test_close_is_idempotent(self, settings: StackSettings) -> None:
        ws = Workspace(settings, plugin_manager=PluginManager())
        _ = ws.store
        ws.close()
        ws.close()


class TestSetupWarnings:
    @staticmethod
    def _workspace(settings: StackSettings) -> Workspace:
        plugins = PluginManager()
        plugins.register_plugin(_NoCredentials())
        return Workspace(settings, plugin_manager=plugins)

    def test_taken_once(self, settings: StackSettings) -> None:
        ws = self._workspace(settings)
        _ = ws.registry
        assert ws.take_warnings() == ["Plugin _NoCredentials failed to register providers"]
        assert ws.take_warnings() == []

    def test_reported_by_first_service_call_only(self, settings: StackSettings) -> None:
        ws = self._workspace(settings)
        first = PlanService(ws).plan()
        second = PlanService(ws).plan()
        validated = GraphService(ws).validate()
        ws.close()

        assert first.ok, first.error
        assert "Plugin _NoCredentials failed to register providers" in first.warnings
        assert not any("_NoCredentials" in w for w in second.warnings)
        assert not any("_NoCredentials" in w for w in validated.warnings)
