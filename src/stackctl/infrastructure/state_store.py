"""StateStore — snapshot persistence keyed by deployment id.

Snapshots are written in a single transaction: the deployment row and all
of its resource rows are replaced together, so readers see either the old
snapshot or the new one. Every write increments the deployment's serial.

The advisory lock (:meth:`StateStore.lock`) keeps two apply runs from
mutating the same deployment at once. It is a row in ``state_locks``; a
crashed run leaves it behind and :meth:`StateStore.force_unlock` clears it.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import socket
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from stackctl.domain.errors import StateLockedError
from stackctl.domain.snapshot import ResourceState, Snapshot
from stackctl.infrastructure.database.schema import (
    apply_log,
    deployments,
    resource_state,
    state_locks,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def default_holder() -> str:
    """Identify this process as ``user@host:pid``."""
    try:
        user = getpass.getuser()
    except OSError:
        user = "unknown"
    return f"{user}@{socket.gethostname()}:{os.getpid()}"


class StateStore:
    """Reads and writes deployment snapshots in the state database."""

    def __init__(self, engine: Engine, *, holder: str | None = None) -> None:
        self._engine = engine
        self._holder = holder or default_holder()

    @property
    def engine(self) -> Engine:
        return self._engine

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def read(self, deployment_id: str) -> Snapshot:
        """Load the snapshot for *deployment_id* (empty if never written)."""
        with self._engine.connect() as conn:
            row = conn.execute(
                select(deployments).where(deployments.c.id == deployment_id)
            ).first()
            if row is None:
                return Snapshot.empty(deployment_id)
            rows = conn.execute(
                select(resource_state)
                .where(resource_state.c.deployment_id == deployment_id)
                .order_by(resource_state.c.declared_index, resource_state.c.resource_id)
            ).fetchall()

        resources = {
            r.resource_id: ResourceState(
                type=r.type,
                provider_id=r.provider_id,
                attributes=json.loads(r.attributes),
                outputs=json.loads(r.outputs),
                dependencies=json.loads(r.dependencies),
                declared_index=r.declared_index,
            )
            for r in rows
        }
        return Snapshot(
            deployment_id=deployment_id,
            serial=row.serial,
            resources=resources,
            outputs=json.loads(row.outputs) if row.outputs else {},
            partial=bool(row.partial),
            updated_at=row.updated_at,
        )

    def write(self, deployment_id: str, snapshot: Snapshot) -> Snapshot:
        """Replace the stored snapshot atomically and bump its serial.

        Returns the snapshot as stored (new serial and timestamp).
        """
        now = _now()
        with self._engine.begin() as conn:
            current = conn.execute(
                select(deployments.c.serial).where(deployments.c.id == deployment_id)
            ).scalar_one_or_none()
            serial = (current or 0) + 1
            values = {
                "serial": serial,
                "partial": int(snapshot.partial),
                "outputs": json.dumps(snapshot.outputs, sort_keys=True),
                "updated_at": now,
            }
            if current is None:
                conn.execute(insert(deployments).values(id=deployment_id, **values))
            else:
                conn.execute(
                    update(deployments).where(deployments.c.id == deployment_id).values(**values)
                )

            conn.execute(
                delete(resource_state).where(resource_state.c.deployment_id == deployment_id)
            )
            rows = [
                {
                    "deployment_id": deployment_id,
                    "resource_id": resource_id,
                    "type": state.type,
                    "provider_id": state.provider_id,
                    "attributes": json.dumps(state.attributes, sort_keys=True),
                    "outputs": json.dumps(state.outputs, sort_keys=True),
                    "dependencies": json.dumps(state.dependencies),
                    "declared_index": state.declared_index,
                }
                for resource_id, state in snapshot.resources.items()
            ]
            if rows:
                conn.execute(insert(resource_state), rows)

        logger.debug(
            "Wrote snapshot %s serial=%d resources=%d partial=%s",
            deployment_id,
            serial,
            len(snapshot.resources),
            snapshot.partial,
        )
        return snapshot.model_copy(
            update={"deployment_id": deployment_id, "serial": serial, "updated_at": now}
        )

    def list_deployments(self) -> list[dict[str, Any]]:
        """Summaries of every deployment with a stored snapshot."""
        with self._engine.connect() as conn:
            rows = conn.execute(select(deployments).order_by(deployments.c.id)).fetchall()
            counts: dict[str, int] = {}
            for r in conn.execute(select(resource_state.c.deployment_id)):
                counts[r.deployment_id] = counts.get(r.deployment_id, 0) + 1
        return [
            {
                "id": r.id,
                "serial": r.serial,
                "resources": counts.get(r.id, 0),
                "partial": bool(r.partial),
                "updated_at": r.updated_at,
            }
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Advisory lock
    # ------------------------------------------------------------------

    @contextmanager
    def lock(self, deployment_id: str) -> Iterator[None]:
        """Hold the deployment lock for the duration of the block.

        Raises:
            StateLockedError: another holder owns the lock.
        """
        self.acquire(deployment_id)
        try:
            yield
        finally:
            self.release(deployment_id)

    def acquire(self, deployment_id: str) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    insert(state_locks).values(
                        deployment_id=deployment_id,
                        holder=self._holder,
                        acquired_at=_now(),
                    )
                )
        except IntegrityError:
            info = self.lock_info(deployment_id) or {}
            raise StateLockedError(
                deployment_id,
                info.get("holder", "unknown"),
                info.get("acquired_at", "unknown"),
            ) from None
        logger.debug("Acquired lock on %s as %s", deployment_id, self._holder)

    def release(self, deployment_id: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                delete(state_locks).where(
                    state_locks.c.deployment_id == deployment_id,
                    state_locks.c.holder == self._holder,
                )
            )

    def force_unlock(self, deployment_id: str) -> bool:
        """Remove the lock regardless of holder. Returns True if one existed."""
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(state_locks).where(state_locks.c.deployment_id == deployment_id)
            )
        return bool(result.rowcount)

    def lock_info(self, deployment_id: str) -> dict[str, Any] | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(state_locks).where(state_locks.c.deployment_id == deployment_id)
            ).first()
        if row is None:
            return None
        return {"holder": row.holder, "acquired_at": row.acquired_at}

    # ------------------------------------------------------------------
    # Apply log
    # ------------------------------------------------------------------

    def record(self, deployment_id: str, serial: int, entries: Iterable[dict[str, Any]]) -> None:
        """Append apply-log entries (``resource_id``, ``kind``, ``status``, ``error``)."""
        now = _now()
        rows = [
            {
                "deployment_id": deployment_id,
                "serial": serial,
                "resource_id": e["resource_id"],
                "kind": e["kind"],
                "status": e["status"],
                "error": e.get("error"),
                "timestamp": now,
            }
            for e in entries
        ]
        if not rows:
            return
        with self._engine.begin() as conn:
            conn.execute(insert(apply_log), rows)

    def history(self, deployment_id: str, *, limit: int = 50) -> list[dict[str, Any]]:
        """Most recent apply-log entries, newest first."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(apply_log)
                .where(apply_log.c.deployment_id == deployment_id)
                .order_by(apply_log.c.id.desc())
                .limit(limit)
            ).fetchall()
        return [
            {
                "serial": r.serial,
                "resource_id": r.resource_id,
                "kind": r.kind,
                "status": r.status,
                "error": r.error,
                "timestamp": r.timestamp,
            }
            for r in rows
        ]
