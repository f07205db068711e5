"""Provider layer — the seam between the engine and cloud APIs.

Providers are supplied externally (plugins). The in-memory provider
simulates a cloud so the engine can run without credentials.
"""

from stackctl.providers.base import ProviderResult, ResourceProvider
from stackctl.providers.registry import ProviderRegistry

__all__ = ["ProviderRegistry", "ProviderResult", "ResourceProvider"]
