"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: All service-layer methods return ServiceResult.
Domain and engine code raise the exception taxonomy in
:mod:`stackctl.domain.errors`; services translate those exceptions into
results with :meth:`ServiceResult.failure`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from stackctl.domain.errors import (
    CyclicDependencyError,
    DuplicateIdError,
    PartialApplyError,
    ProviderError,
    StackError,
    StateLockedError,
    UnresolvedReferenceError,
)


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: StackError) -> ServiceError:
        """Build the payload for a stackctl exception, keeping its context."""
        detail: dict[str, Any] = {}
        if isinstance(exc, DuplicateIdError):
            detail = {"id": exc.resource_id, "kind": exc.kind}
        elif isinstance(exc, CyclicDependencyError):
            detail = {"cycle": exc.cycle}
        elif isinstance(exc, UnresolvedReferenceError):
            detail = {"resource_id": exc.resource_id, "target": exc.target, "field": exc.field}
        elif isinstance(exc, ProviderError):
            detail = {"resource_id": exc.resource_id, "operation": exc.operation}
        elif isinstance(exc, StateLockedError):
            detail = {"holder": exc.holder, "acquired_at": exc.acquired_at}
        elif isinstance(exc, PartialApplyError):
            detail = {
                "failed_resource": exc.failed_resource,
                "pending": exc.pending,
                "applied": exc.applied,
                "serial": exc.serial,
            }
        return cls(code=exc.code, message=str(exc), detail=detail)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"plan"``).
        data: Operation-specific payload. Also set on some failures
            (a partial apply reports what was applied).
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        exc: StackError,
        *,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError.from_exception(exc),
        )
