"""ResourceProvider — contract every provider implementation fulfils.

A provider owns one or more resource types. For each it exposes the four
CRUD operations plus the list of attributes it cannot change in place
(changing one forces a replacement).

Provider calls are synchronous; any timeout is the provider's own concern.
Errors should be raised as :class:`~stackctl.domain.errors.ProviderError`
(set ``retryable=True`` for throttling and other transient failures).
Other exceptions are wrapped by the executor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProviderResult:
    """Provider-assigned identifier plus the live attribute values."""

    provider_id: str
    outputs: dict[str, Any] = field(default_factory=dict)


class ResourceProvider(ABC):
    """Abstract base for provider implementations.

    Usage::

        class DnsProvider(ResourceProvider):
            name = "dns"
            resource_types = frozenset({"dns.record"})

            def create(self, resource_type, attributes, *, logical_id):
                ...
    """

    name: str = "provider"
    resource_types: frozenset[str] = frozenset()

    def replace_on(self, resource_type: str) -> frozenset[str]:
        """Attributes of *resource_type* that require replacement when changed."""
        return frozenset()

    def supports(self, resource_type: str) -> bool:
        return resource_type in self.resource_types

    @abstractmethod
    def create(
        self,
        resource_type: str,
        attributes: Mapping[str, Any],
        *,
        logical_id: str,
    ) -> ProviderResult:
        """Create a resource and return its identifier and live values."""

    @abstractmethod
    def read(self, resource_type: str, provider_id: str) -> ProviderResult | None:
        """Return the live state of a resource, or None if it is gone."""

    @abstractmethod
    def update(
        self,
        resource_type: str,
        provider_id: str,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        *,
        logical_id: str,
    ) -> ProviderResult:
        """Modify a resource in place."""

    @abstractmethod
    def delete(self, resource_type: str, provider_id: str, *, logical_id: str) -> None:
        """Destroy a resource. Deleting a missing resource is not an error."""
