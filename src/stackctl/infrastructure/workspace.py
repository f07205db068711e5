"""Workspace — the single dependency injected into every service.

A Workspace owns the state database engine, the snapshot store, the
provider registry, and the plugin manager for one project directory. Each
is built lazily on first access, so commands that never touch state (e.g.
``graph validate``) never create the database file.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stackctl.infrastructure.database.engine import init_database
from stackctl.infrastructure.state_store import StateStore
from stackctl.providers.registry import ProviderRegistry
from stackctl.providers.retry import RetryPolicy
from stackctl.providers.simulated import simulated_provider

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from stackctl.config.settings import StackSettings
    from stackctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Workspace:
    """Repository of everything a plan or apply run needs.

    Constructed once at CLI startup from :class:`StackSettings` and stored
    on the :class:`~stackctl.commands._context.AppContext`. Tests pass a
    prepared *registry* or *plugin_manager* to bypass discovery.
    """

    def __init__(
        self,
        settings: StackSettings,
        *,
        registry: ProviderRegistry | None = None,
        plugin_manager: PluginManager | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._plugins = plugin_manager
        self._engine: Engine | None = None
        self._store: StateStore | None = None
        self._warnings: list[str] = []

    @property
    def settings(self) -> StackSettings:
        return self._settings

    @property
    def deployment_id(self) -> str:
        return self._settings.deployment_id

    @property
    def engine(self) -> Engine:
        """SQLAlchemy engine for the state database (created on first use)."""
        if self._engine is None:
            self._engine = init_database(self._settings.state_path)
        return self._engine

    @property
    def store(self) -> StateStore:
        if self._store is None:
            self._store = StateStore(self.engine)
        return self._store

    @property
    def plugins(self) -> PluginManager:
        """Plugin manager, discovering plugins on first access when enabled."""
        if self._plugins is None:
            from stackctl.plugins.manager import PluginManager

            self._plugins = PluginManager()
            if self._settings.plugins.enabled:
                names = self._plugins.discover_and_load(local_dir=self._settings.plugin_dir)
                if names:
                    logger.debug("Loaded plugins: %s", ", ".join(names))
        return self._plugins

    @property
    def registry(self) -> ProviderRegistry:
        """Provider registry: the simulated cloud, then plugin providers."""
        if self._registry is None:
            registry = ProviderRegistry()
            if self._settings.providers.simulated:
                registry.register(simulated_provider(self._settings.simulated_cloud_path))
            self._warnings.extend(self.plugins.collect_providers(registry))
            self._registry = registry
        return self._registry

    def take_warnings(self) -> list[str]:
        """Setup warnings not yet reported; each is handed out once."""
        taken, self._warnings = self._warnings, []
        return taken

    def retry_policy(self) -> RetryPolicy:
        cfg = self._settings.retry
        return RetryPolicy(
            max_attempts=cfg.max_attempts,
            multiplier=cfg.backoff_multiplier,
            min_wait=cfg.backoff_min,
            max_wait=cfg.backoff_max,
        )

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._store = None
