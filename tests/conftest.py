"""Shared pytest fixtures for stackctl tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from stackctl.config.settings import StackSettings
from stackctl.infrastructure.database.engine import init_database
from stackctl.infrastructure.state_store import StateStore
from stackctl.infrastructure.workspace import Workspace
from stackctl.plugins.manager import PluginManager
from stackctl.providers.memory import InMemoryProvider, TypeSpec
from stackctl.providers.registry import ProviderRegistry

TEST_TYPES = {
    "network": TypeSpec("net", frozenset({"cidr"})),
    "instance": TypeSpec(
        "i",
        frozenset({"port", "image"}),
        lambda pid, attrs: {"private_ip": "10.0.0.5"},
    ),
    "record": TypeSpec("rec"),
}


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "state.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(db_engine: Engine) -> StateStore:
    return StateStore(db_engine, holder="tester@localhost:1")


@pytest.fixture
def provider() -> InMemoryProvider:
    """In-memory provider for the ``network``, ``instance`` and ``record`` types.

    ``instance`` replaces on ``port`` and ``image``; ``network`` on ``cidr``.
    """
    return InMemoryProvider(TEST_TYPES)


@pytest.fixture
def registry(provider: InMemoryProvider) -> ProviderRegistry:
    reg = ProviderRegistry()
    reg.register(provider)
    return reg


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project directory with a minimal stackctl.toml."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "stackctl.toml").write_text(
        '[deployment]\nid = "test"\n\n[plugins]\nenabled = false\n',
        encoding="utf-8",
    )
    return root


@pytest.fixture
def settings(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> StackSettings:
    monkeypatch.delenv("STACKCTL_CONFIG", raising=False)
    return StackSettings.from_cli(project_root=project_root)


@pytest.fixture
def workspace(settings: StackSettings, registry: ProviderRegistry) -> Iterator[Workspace]:
    """Workspace wired to the test provider, with no plugin discovery."""
    ws = Workspace(settings, registry=registry, plugin_manager=PluginManager())
    try:
        yield ws
    finally:
        ws.close()


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project so the CLI finds its stackctl.toml.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes.
    """
    monkeypatch.delenv("STACKCTL_CONFIG", raising=False)
    monkeypatch.chdir(project_root)
