"""pluggy-based plugins: extra resource providers and lifecycle hooks.

A plugin that raises is reported as a warning on the command's result.
"""

from stackctl.plugins.hookspecs import hookimpl
from stackctl.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
