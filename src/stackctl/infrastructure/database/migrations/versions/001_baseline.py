"""Baseline state schema.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19

Fresh databases are created from ``schema.py`` and stamped at head;
this revision exists so later migrations have a base to build on.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "deployments",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("serial", sa.Integer, nullable=False, server_default="0"),
        sa.Column("partial", sa.Integer, nullable=False, server_default="0"),
        sa.Column("outputs", sa.Text),
        sa.Column("updated_at", sa.Text, nullable=False),
    )
    op.create_table(
        "resource_state",
        sa.Column("deployment_id", sa.Text, sa.ForeignKey("deployments.id"), nullable=False),
        sa.Column("resource_id", sa.Text, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("provider_id", sa.Text, nullable=False),
        sa.Column("attributes", sa.Text, nullable=False),
        sa.Column("outputs", sa.Text, nullable=False),
        sa.Column("dependencies", sa.Text, nullable=False),
        sa.Column("declared_index", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("deployment_id", "resource_id"),
    )
    op.create_table(
        "state_locks",
        sa.Column("deployment_id", sa.Text, primary_key=True),
        sa.Column("holder", sa.Text, nullable=False),
        sa.Column("acquired_at", sa.Text, nullable=False),
    )
    op.create_table(
        "apply_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("deployment_id", sa.Text, nullable=False),
        sa.Column("serial", sa.Integer, nullable=False),
        sa.Column("resource_id", sa.Text, nullable=False),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("error", sa.Text),
        sa.Column("timestamp", sa.Text, nullable=False),
    )
    op.create_index("ix_resource_state_deployment", "resource_state", ["deployment_id"])
    op.create_index("ix_apply_log_deployment", "apply_log", ["deployment_id"])


def downgrade() -> None:
    op.drop_index("ix_apply_log_deployment", table_name="apply_log")
    op.drop_index("ix_resource_state_deployment", table_name="resource_state")
    op.drop_table("apply_log")
    op.drop_table("state_locks")
    op.drop_table("resource_state")
    op.drop_table("deployments")
