"""InMemoryProvider — a simulated cloud for local runs and tests.

Objects live in a dict keyed by provider id. When a ``path`` is given the
dict is mirrored to a JSON file after every write, so separate CLI
invocations see the same fake cloud.

Failures can be injected per operation to exercise partial-apply handling.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stackctl.domain.errors import ProviderError
from stackctl.providers.base import ProviderResult, ResourceProvider

logger = logging.getLogger(__name__)

OutputFn = Callable[[str, Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class TypeSpec:
    """Behaviour of one simulated resource type."""

    prefix: str
    replace_on: frozenset[str] = frozenset()
    outputs: OutputFn | None = None


@dataclass
class _Fault:
    operation: str
    logical_id: str | None
    resource_type: str | None
    times: int
    retryable: bool
    message: str = "injected failure"
    hits: int = field(default=0)

    def matches(self, operation: str, logical_id: str, resource_type: str) -> bool:
        if self.operation != operation or self.hits >= self.times:
            return False
        if self.logical_id is not None and self.logical_id != logical_id:
            return False
        return self.resource_type is None or self.resource_type == resource_type


class InMemoryProvider(ResourceProvider):
    """Provider that keeps every resource in process memory."""

    name = "memory"

    def __init__(
        self,
        types: Mapping[str, TypeSpec] | None = None,
        *,
        path: Path | None = None,
    ) -> None:
        self._types: dict[str, TypeSpec] = dict(types or {})
        self._path = path
        self._lock = threading.Lock()
        self._objects: dict[str, dict[str, Any]] = {}
        self._faults: list[_Fault] = []
        self.calls: list[tuple[str, str]] = []
        if path is not None and path.is_file():
            self._objects = json.loads(path.read_text(encoding="utf-8"))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def resource_types(self) -> frozenset[str]:  # type: ignore[override]
        return frozenset(self._types)

    def add_type(self, resource_type: str, spec: TypeSpec) -> None:
        self._types[resource_type] = spec

    def replace_on(self, resource_type: str) -> frozenset[str]:
        return self._spec(resource_type).replace_on

    def inject_failure(
        self,
        operation: str,
        *,
        logical_id: str | None = None,
        resource_type: str | None = None,
        times: int = 1,
        retryable: bool = False,
        message: str = "injected failure",
    ) -> None:
        """Make the next *times* matching calls of *operation* fail."""
        self._faults.append(
            _Fault(
                operation=operation,
                logical_id=logical_id,
                resource_type=resource_type,
                times=times,
                retryable=retryable,
                message=message,
            )
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def objects(self, resource_type: str | None = None) -> dict[str, dict[str, Any]]:
        """Snapshot of stored objects, optionally filtered by type."""
        with self._lock:
            return {
                pid: dict(obj)
                for pid, obj in self._objects.items()
                if resource_type is None or obj["type"] == resource_type
            }

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(
        self,
        resource_type: str,
        attributes: Mapping[str, Any],
        *,
        logical_id: str,
    ) -> ProviderResult:
        spec = self._spec(resource_type)
        self._maybe_fail("create", logical_id, resource_type)
        provider_id = f"{spec.prefix}-{uuid.uuid4().hex[:12]}"
        outputs = self._outputs(spec, provider_id, attributes)
        with self._lock:
            self.calls.append(("create", logical_id))
            self._objects[provider_id] = {
                "type": resource_type,
                "logical_id": logical_id,
                "attributes": dict(attributes),
                "outputs": outputs,
            }
            self._save()
        logger.debug("Created %s %s (%s)", resource_type, provider_id, logical_id)
        return ProviderResult(provider_id=provider_id, outputs=outputs)

    def read(self, resource_type: str, provider_id: str) -> ProviderResult | None:
        with self._lock:
            obj = self._objects.get(provider_id)
        if obj is None or obj["type"] != resource_type:
            return None
        return ProviderResult(provider_id=provider_id, outputs=dict(obj["outputs"]))

    def update(
        self,
        resource_type: str,
        provider_id: str,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        *,
        logical_id: str,
    ) -> ProviderResult:
        spec = self._spec(resource_type)
        self._maybe_fail("update", logical_id, resource_type)
        with self._lock:
            obj = self._objects.get(provider_id)
            if obj is None:
                raise ProviderError(f"{resource_type} {provider_id} does not exist")
            immutable = sorted(
                k for k in spec.replace_on if before.get(k) != after.get(k)
            )
            if immutable:
                raise ProviderError(
                    f"cannot modify {', '.join(immutable)} of {resource_type} in place"
                )
            outputs = self._outputs(spec, provider_id, after)
            self.calls.append(("update", logical_id))
            obj["attributes"] = dict(after)
            obj["outputs"] = outputs
            self._save()
        return ProviderResult(provider_id=provider_id, outputs=outputs)

    def delete(self, resource_type: str, provider_id: str, *, logical_id: str) -> None:
        self._spec(resource_type)
        self._maybe_fail("delete", logical_id, resource_type)
        with self._lock:
            self.calls.append(("delete", logical_id))
            self._objects.pop(provider_id, None)
            self._save()
        logger.debug("Deleted %s %s (%s)", resource_type, provider_id, logical_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spec(self, resource_type: str) -> TypeSpec:
        spec = self._types.get(resource_type)
        if spec is None:
            raise ProviderError(f"unsupported resource type '{resource_type}'")
        return spec

    @staticmethod
    def _outputs(spec: TypeSpec, provider_id: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
        outputs: dict[str, Any] = {"id": provider_id}
        if spec.outputs is not None:
            outputs.update(spec.outputs(provider_id, attributes))
        return outputs

    def _maybe_fail(self, operation: str, logical_id: str, resource_type: str) -> None:
        with self._lock:
            for fault in self._faults:
                if fault.matches(operation, logical_id, resource_type):
                    fault.hits += 1
                    raise ProviderError(fault.message, retryable=fault.retryable)

    def _save(self) -> None:
        """Mirror objects to disk. Caller holds the lock."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._objects, indent=2, sort_keys=True), encoding="utf-8")
