"""SQLAlchemy Core table definitions for the state database.

JSON-valued columns are stored as TEXT and encoded by the state store.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

deployments = Table(
    "deployments",
    metadata,
    Column("id", Text, primary_key=True),
    Column("serial", Integer, nullable=False, default=0, server_default="0"),
    Column("partial", Integer, nullable=False, default=0, server_default="0"),
    Column("outputs", Text),  # JSON object
    Column("updated_at", Text, nullable=False),
)

resource_state = Table(
    "resource_state",
    metadata,
    Column("deployment_id", Text, ForeignKey("deployments.id"), nullable=False),
    Column("resource_id", Text, nullable=False),
    Column("type", Text, nullable=False),
    Column("provider_id", Text, nullable=False),
    Column("attributes", Text, nullable=False),  # JSON object
    Column("outputs", Text, nullable=False),  # JSON object
    Column("dependencies", Text, nullable=False),  # JSON array
    Column("declared_index", Integer, nullable=False, default=0, server_default="0"),
    UniqueConstraint("deployment_id", "resource_id"),
)

state_locks = Table(
    "state_locks",
    metadata,
    Column("deployment_id", Text, primary_key=True),
    Column("holder", Text, nullable=False),
    Column("acquired_at", Text, nullable=False),
)

apply_log = Table(
    "apply_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("deployment_id", Text, nullable=False),
    Column("serial", Integer, nullable=False),
    Column("resource_id", Text, nullable=False),
    Column("kind", Text, nullable=False),
    Column("status", Text, nullable=False),  # applied | failed | pending
    Column("error", Text),
    Column("timestamp", Text, nullable=False),
)

Index("ix_resource_state_deployment", resource_state.c.deployment_id)
Index("ix_apply_log_deployment", apply_log.c.deployment_id)
