"""Alembic runtime environment: online migrations only."""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine, event, pool

from stackctl.infrastructure.database.engine import apply_pragmas
from stackctl.infrastructure.database.schema import metadata

url = context.config.get_main_option("sqlalchemy.url")
if url is None:
    raise RuntimeError("sqlalchemy.url is not configured")

engine = create_engine(url, poolclass=pool.NullPool)
event.listen(engine, "connect", apply_pragmas)

with engine.connect() as connection:
    context.configure(connection=connection, target_metadata=metadata, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()
