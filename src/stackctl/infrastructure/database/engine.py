"""State database engine: SQLite in WAL mode, created or migrated on open.

The database lives at ``{project_root}/.stackctl/state.db`` unless
``[state] path`` points elsewhere. Several CLI processes may read it while
one apply writes, which is what WAL allows.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine

from stackctl.infrastructure.database.schema import metadata

PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA foreign_keys=ON")


def apply_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
    """``connect`` listener shared by the engine and the migration env."""
    cursor = dbapi_conn.cursor()
    try:
        for pragma in PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_db_engine(db_path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{db_path}")
    event.listen(engine, "connect", apply_pragmas)
    return engine


def init_database(db_path: Path) -> Engine:
    """Open the state database at *db_path*, creating it when missing.

    New files get the full schema and an Alembic stamp at head; files that
    already carry a version table are upgraded instead.
    """
    from stackctl.infrastructure.database.migrations import migrate

    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    fresh = not inspect(engine).has_table("alembic_version")
    if fresh:
        metadata.create_all(engine)
    migrate(db_path, fresh=fresh)
    return engine
