"""StateService — read-only views of stored snapshots, plus lock recovery."""

from __future__ import annotations

from typing import Any

from stackctl.services.base import BaseService
from stackctl.services.result import ServiceError, ServiceResult
from stackctl.services.telemetry import traced


class StateService(BaseService):
    """Inspects the state store."""

    @traced
    def show(self, resource_id: str | None = None) -> ServiceResult:
        """The current deployment's snapshot, or one recorded resource."""
        deployment_id = self._ws.deployment_id
        snapshot = self._ws.store.read(deployment_id)

        if resource_id is not None:
            state = snapshot.get(resource_id)
            if state is None:
                return ServiceResult(
                    ok=False,
                    op="state_show",
                    error=ServiceError(
                        code="NOT_FOUND",
                        message=f"No resource '{resource_id}' in deployment '{deployment_id}'",
                    ),
                )
            return ServiceResult(
                ok=True,
                op="state_show",
                data={"deployment_id": deployment_id, "id": resource_id, **state.model_dump()},
            )

        items: list[dict[str, Any]] = [
            {
                "id": rid,
                "type": snapshot.resources[rid].type,
                "provider_id": snapshot.resources[rid].provider_id,
                "dependencies": snapshot.resources[rid].dependencies,
            }
            for rid in snapshot.ordered_ids()
        ]
        warnings: list[str] = []
        if snapshot.partial:
            warnings.append("Snapshot is partial: the last apply did not finish; re-run apply")
        return ServiceResult(
            ok=True,
            op="state_show",
            data={
                "deployment_id": deployment_id,
                "serial": snapshot.serial,
                "partial": snapshot.partial,
                "updated_at": snapshot.updated_at,
                "count": len(items),
                "items": items,
                "outputs": snapshot.outputs,
            },
            warnings=warnings,
        )

    @traced
    def list_deployments(self) -> ServiceResult:
        items = self._ws.store.list_deployments()
        return ServiceResult(
            ok=True,
            op="state_list",
            data={"count": len(items), "items": items},
        )

    @traced
    def history(self, *, limit: int = 50) -> ServiceResult:
        """Recent apply-log entries for the current deployment."""
        deployment_id = self._ws.deployment_id
        items = self._ws.store.history(deployment_id, limit=limit)
        return ServiceResult(
            ok=True,
            op="state_history",
            data={"deployment_id": deployment_id, "count": len(items), "items": items},
        )

    @traced
    def unlock(self) -> ServiceResult:
        """Clear a lock left behind by a crashed run."""
        deployment_id = self._ws.deployment_id
        store = self._ws.store
        info = store.lock_info(deployment_id)
        if not store.force_unlock(deployment_id):
            return ServiceResult(
                ok=False,
                op="state_unlock",
                error=ServiceError(
                    code="NOT_FOUND",
                    message=f"Deployment '{deployment_id}' is not locked",
                ),
            )
        return ServiceResult(
            ok=True,
            op="state_unlock",
            data={"deployment_id": deployment_id, **(info or {})},
        )
