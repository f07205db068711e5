"""SQLite state database, schema, and migrations via SQLAlchemy Core."""

from stackctl.infrastructure.database.engine import create_db_engine, init_database
from stackctl.infrastructure.database.schema import (
    apply_log,
    deployments,
    metadata,
    resource_state,
    state_locks,
)

__all__ = [
    "apply_log",
    "create_db_engine",
    "deployments",
    "init_database",
    "metadata",
    "resource_state",
    "state_locks",
]
