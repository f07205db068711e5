"""Exception taxonomy for declaration, planning, and apply failures.

- ``DeclarationError``: the description itself is malformed (duplicate id,
  dependency cycle). Raised before any planning happens.
- ``PlanningError``: the description is well-formed but cannot be diffed
  against the snapshot (unresolvable reference, stale plan). No changes made.
- ``PartialApplyError``: apply halted mid-way. The stored snapshot reflects
  what actually changed; the caller must re-run.
- ``ProviderError``: a provider call failed. Carries resource id and
  operation context.
"""

from __future__ import annotations

from collections.abc import Sequence


class StackError(Exception):
    """Root of every error raised by stackctl."""

    code = "STACK_ERROR"


# --- Declaration ---


class DeclarationError(StackError):
    """The deployment description is invalid."""

    code = "DECLARATION_ERROR"


class DuplicateIdError(DeclarationError):
    """A resource or output id was declared twice."""

    code = "DUPLICATE_ID"

    def __init__(self, resource_id: str, *, kind: str = "resource") -> None:
        self.resource_id = resource_id
        self.kind = kind
        super().__init__(f"Duplicate {kind} id '{resource_id}'")


class CyclicDependencyError(DeclarationError):
    """The dependency edges (explicit or implied by references) form a cycle."""

    code = "CYCLE"

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else "?"
        super().__init__(f"Dependency cycle detected: {path}")


# --- Planning ---


class PlanningError(StackError):
    """The graph could not be reconciled with the snapshot."""

    code = "PLANNING_ERROR"


class UnresolvedReferenceError(PlanningError):
    """A reference or dependency points at something that does not exist."""

    code = "UNRESOLVED_REFERENCE"

    def __init__(self, resource_id: str, target: str, field: str | None = None) -> None:
        self.resource_id = resource_id
        self.target = target
        self.field = field
        where = f"{target}.{field}" if field else target
        super().__init__(f"'{resource_id}' references unknown '{where}'")


class UnknownResourceTypeError(PlanningError):
    """No provider is registered for a resource type."""

    code = "UNKNOWN_TYPE"

    def __init__(self, resource_type: str) -> None:
        self.resource_type = resource_type
        super().__init__(f"No provider registered for resource type '{resource_type}'")


class StalePlanError(PlanningError):
    """A saved plan no longer matches the snapshot or the description."""

    code = "STALE_PLAN"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Saved plan is stale: {reason}; re-run plan")


# --- Apply ---


class ProviderError(StackError):
    """A provider operation failed for a specific resource."""

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        resource_id: str | None = None,
        operation: str | None = None,
        retryable: bool = False,
    ) -> None:
        self.resource_id = resource_id
        self.operation = operation
        self.retryable = retryable
        self.reason = message
        prefix = ""
        if operation and resource_id:
            prefix = f"{operation} {resource_id}: "
        elif resource_id:
            prefix = f"{resource_id}: "
        super().__init__(f"{prefix}{message}")


class PartialApplyError(StackError):
    """Apply stopped after a failure; some changes were applied."""

    code = "PARTIAL_APPLY"

    def __init__(
        self,
        failed_resource: str,
        pending: Sequence[str],
        *,
        applied: Sequence[str] = (),
        cause: BaseException | None = None,
        serial: int | None = None,
    ) -> None:
        self.failed_resource = failed_resource
        self.serial = serial
        self.pending = list(pending)
        self.applied = list(applied)
        self.cause = cause
        msg = f"Apply failed at '{failed_resource}'"
        if cause is not None:
            msg += f" ({cause})"
        msg += f"; {len(self.pending)} change(s) left pending"
        super().__init__(msg)


class StateLockedError(StackError):
    """The deployment's state is locked by another run."""

    code = "STATE_LOCKED"

    def __init__(self, deployment_id: str, holder: str, acquired_at: str) -> None:
        self.deployment_id = deployment_id
        self.holder = holder
        self.acquired_at = acquired_at
        super().__init__(
            f"State for '{deployment_id}' is locked by {holder} since {acquired_at}"
        )


class TopologyError(DeclarationError):
    """A topology could not be located or failed while declaring resources."""

    code = "TOPOLOGY_ERROR"
