"""Tests for StackSettings: TOML discovery, env overrides, and CLI flags."""

from __future__ import annotations

from pathlib import Path

import click
import pytest
from pydantic import ValidationError

from stackctl.config.discovery import find_config
from stackctl.config.settings import StackSettings


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STACKCTL_CONFIG", raising=False)
    monkeypatch.delenv("STACKCTL_APPLY__PARALLELISM", raising=False)
    monkeypatch.delenv("STACKCTL_DEPLOYMENT__ID", raising=False)


def _write(root: Path, text: str) -> Path:
    path = root / "stackctl.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_without_config_file(self, tmp_path: Path) -> None:
        settings = StackSettings.from_cli(project_root=tmp_path)
        assert settings.config_path is None
        assert settings.deployment_id == "default"
        assert settings.deployment.topology == "webapp"
        assert settings.apply.parallelism == 1
        assert settings.retry.max_attempts == 1
        assert settings.state_path == tmp_path / ".stackctl" / "state.db"
        assert settings.plugin_dir == tmp_path / ".stackctl" / "plugins"

    def test_webapp_defaults(self, tmp_path: Path) -> None:
        webapp = StackSettings.from_cli(project_root=tmp_path).webapp
        assert webapp.fqdn == "webapp.example.com"
        assert webapp.rdp_port == 3389
        assert webapp.managed_policies == [
            "AmazonSSMManagedInstanceCore",
            "CloudWatchAgentServerPolicy",
        ]


class TestTomlSource:
    def test_sparse_overrides(self, tmp_path: Path) -> None:
        _write(tmp_path, '[deployment]\nid = "staging"\n\n[apply]\nparallelism = 4\n')
        settings = StackSettings.from_cli(project_root=tmp_path)
        assert settings.config_path == tmp_path / "stackctl.toml"
        assert settings.deployment_id == "staging"
        assert settings.apply.parallelism == 4
        assert settings.state.path == ".stackctl/state.db"

    def test_walk_up_sets_project_root(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(tmp_path, '[deployment]\nid = "nested"\n')
        sub = tmp_path / "infra" / "modules"
        sub.mkdir(parents=True)
        monkeypatch.chdir(sub)
        settings = StackSettings.from_cli()
        assert settings.project_root == tmp_path.resolve()
        assert settings.deployment_id == "nested"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        other = tmp_path / "elsewhere"
        other.mkdir()
        path = _write(other, '[deployment]\nid = "explicit"\n')
        settings = StackSettings.from_cli(config_path=str(path), project_root=tmp_path)
        assert settings.deployment_id == "explicit"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        _write(tmp_path, "[deployment\nid = 1\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            StackSettings.from_cli(project_root=tmp_path)

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        _write(tmp_path, "[apply]\nparallelism = 0\n")
        with pytest.raises(ValidationError):
            StackSettings.from_cli(project_root=tmp_path)

    def test_relative_paths_resolve_against_root(self, tmp_path: Path) -> None:
        _write(tmp_path, '[state]\npath = "var/state.db"\n')
        settings = StackSettings.from_cli(project_root=tmp_path)
        assert settings.state_path == tmp_path / "var" / "state.db"


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path, "[apply]\nparallelism = 2\n")
        monkeypatch.setenv("STACKCTL_APPLY__PARALLELISM", "8")
        settings = StackSettings.from_cli(project_root=tmp_path)
        assert settings.apply.parallelism == 8

    def test_cli_flag_beats_toml(self, tmp_path: Path) -> None:
        _write(tmp_path, '[deployment]\nid = "staging"\n')
        settings = StackSettings.from_cli(project_root=tmp_path, deployment_override="prod")
        assert settings.deployment_id == "prod"
        assert settings.deployment.id == "staging"

    def test_none_flags_dropped(self, tmp_path: Path) -> None:
        settings = StackSettings.from_cli(project_root=tmp_path, deployment_override=None)
        assert settings.deployment_override is None

    def test_settings_frozen(self, tmp_path: Path) -> None:
        settings = StackSettings.from_cli(project_root=tmp_path)
        with pytest.raises(ValidationError):
            settings.quiet = True  # type: ignore[misc]


class TestDiscovery:
    def test_env_var_points_at_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _write(tmp_path, "")
        monkeypatch.setenv("STACKCTL_CONFIG", str(path))
        assert find_config(tmp_path / "unrelated") == path

    def test_env_var_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STACKCTL_CONFIG", str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None

    def test_nothing_found(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None
