"""Plugin loading and hook calls.

Plugins come from the ``stackctl.plugins`` entry-point group and from
single ``*.py`` files in the project's plugin directory. A broken plugin
is logged and skipped; it never stops a command.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

import pluggy

from stackctl.plugins.hookspecs import PROJECT_NAME, StackctlHookSpec

if TYPE_CHECKING:
    from stackctl.providers.registry import ProviderRegistry

ENTRY_POINT_GROUP = "stackctl.plugins"
LOCAL_MODULE_PREFIX = "stackctl_local_plugin_"

logger = logging.getLogger(__name__)


def is_hook_class(obj: object) -> bool:
    """True for classes with at least one public ``@hookimpl`` method."""
    if not inspect.isclass(obj):
        return False
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(obj, attr, None), marker, None) is not None
        for attr in dir(obj)
        if not attr.startswith("_")
    )


def load_plugin_file(path: Path) -> ModuleType | None:
    """Import *path* as ``stackctl_local_plugin_<stem>``; None if it fails."""
    module_name = LOCAL_MODULE_PREFIX + path.stem
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Cannot import plugin file %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        del sys.modules[module_name]
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        return None
    return module


class PluginManager:
    """Thin wrapper over :class:`pluggy.PluginManager` with stackctl's hooks."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(StackctlHookSpec)
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then files in *local_dir*; return all names."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_registered_classes()
        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("[!_]*.py")):
                self._register_from_file(path)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        logger.debug("Registered plugin: %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def list_plugin_names(self) -> list[str]:
        return [name for name, plugin in self._pm.list_name_plugin() if plugin is not None]

    def collect_providers(self, registry: ProviderRegistry) -> list[str]:
        """Add each plugin's ``register_providers`` mapping to *registry*.

        Plugins are asked one at a time so a failure is pinned on its
        plugin; later plugins override earlier ones and the builtins.
        """
        warnings: list[str] = []
        for impl in self._pm.hook.register_providers.get_hookimpls():
            try:
                mapping = impl.function()
            except Exception:
                logger.warning("Provider hook of %s raised", impl.plugin_name, exc_info=True)
                warnings.append(f"Plugin {impl.plugin_name} failed to register providers")
                continue
            if mapping is None:
                continue
            if not isinstance(mapping, dict):
                warnings.append(
                    f"Plugin {impl.plugin_name} returned non-dict provider registrations"
                )
                continue
            for resource_type, provider in mapping.items():
                registry.register(provider, [resource_type])
                logger.debug("Plugin %s provides %s", impl.plugin_name, resource_type)
        return warnings

    def dispatch(self, hook_name: str, **kwargs: Any) -> list[str]:
        """Call an event hook; a raising plugin turns into one warning."""
        try:
            getattr(self._pm.hook, hook_name)(**kwargs)
        except Exception:
            logger.warning("Plugin hook %s failed", hook_name, exc_info=True)
            return [f"Plugin hook {hook_name} failed"]
        return []

    def _register_from_file(self, path: Path) -> None:
        module = load_plugin_file(path)
        if module is None:
            return
        for _, cls in inspect.getmembers(module, is_hook_class):
            if cls.__module__ != module.__name__:
                continue
            try:
                self.register_plugin(cls(), name=f"{module.__name__}.{cls.__name__}")
            except Exception:
                logger.warning("Cannot instantiate %s from %s", cls.__name__, path, exc_info=True)

    def _instantiate_registered_classes(self) -> None:
        # Entry points may name a class; hooks need an instance to bind self.
        for name, plugin in list(self._pm.list_name_plugin()):
            if not is_hook_class(plugin):
                continue
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Cannot instantiate entry-point plugin %s", name, exc_info=True)
