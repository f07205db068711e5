"""ProviderRegistry — maps resource type tags to providers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from stackctl.domain.errors import UnknownResourceTypeError
from stackctl.providers.base import ResourceProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Resolves the provider responsible for each resource type.

    Later registrations for the same type win, so plugins can override
    built-in providers.
    """

    def __init__(self) -> None:
        self._by_type: dict[str, ResourceProvider] = {}

    def register(self, provider: ResourceProvider, types: Iterable[str] | None = None) -> None:
        """Register *provider* for *types* (default: all it declares)."""
        for resource_type in types if types is not None else provider.resource_types:
            previous = self._by_type.get(resource_type)
            if previous is not None and previous is not provider:
                logger.debug(
                    "Provider %s replaces %s for %s", provider.name, previous.name, resource_type
                )
            self._by_type[resource_type] = provider

    def get(self, resource_type: str) -> ResourceProvider:
        try:
            return self._by_type[resource_type]
        except KeyError:
            raise UnknownResourceTypeError(resource_type) from None

    def replace_on(self, resource_type: str) -> frozenset[str]:
        """Replacement-triggering attributes for *resource_type*."""
        return self.get(resource_type).replace_on(resource_type)

    def require(self, resource_types: Iterable[str]) -> None:
        """Fail fast if any of *resource_types* has no provider."""
        for resource_type in resource_types:
            self.get(resource_type)

    def types(self) -> list[str]:
        return sorted(self._by_type)

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._by_type
