"""Alembic revisions for the state database.

Configured in code from the database path; the scripts sit next to this
module, so there is no ``alembic.ini``.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

SCRIPT_LOCATION = Path(__file__).parent


def alembic_config(db_path: Path) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return cfg


def migrate(db_path: Path, *, fresh: bool = False) -> None:
    """Bring *db_path* to the head revision.

    A *fresh* database was just built from the current schema, so it is
    only stamped.
    """
    cfg = alembic_config(db_path)
    if fresh:
        command.stamp(cfg, "head")
    else:
        command.upgrade(cfg, "head")
