"""Alembic wiring for the rule store.

There is no ``alembic.ini``: the config is built in code and points at the
revision scripts next to this module. Callers that already hold a
connection (``clashctl upgrade``) pass it through ``Config.attributes`` so
migrations run on the store's own engine and pragmas.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection

SCRIPT_LOCATION = Path(__file__).parent


def build_config(db_path: Path, *, connection: Connection | None = None) -> Config:
    """Alembic config for the store at *db_path*."""
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def head_revision() -> str | None:
    script = ScriptDirectory(str(SCRIPT_LOCATION))
    return script.get_current_head()


def current_revision(conn: Connection) -> str | None:
    """Revision the store is stamped at, or None for an unversioned store."""
    return MigrationContext.configure(conn).get_current_revision()


def pending_revisions(current: str | None) -> list[dict[str, Any]]:
    """Revisions between *current* and head, newest first."""
    script = ScriptDirectory(str(SCRIPT_LOCATION))
    head = script.get_current_head()
    rev = script.get_revision(head) if head is not None else None

    # Revision history is linear; follow down_revision until current.
    pending: list[dict[str, Any]] = []
    while rev is not None and rev.revision != current:
        pending.append({"revision": rev.revision, "description": rev.doc or ""})
        down = rev.down_revision
        rev = script.get_revision(str(down)) if down is not None else None
    return pending


def stamp_head(db_path: Path) -> None:
    """Mark a freshly created store as current without running migrations."""
    from alembic import command

    command.stamp(build_config(db_path), "head")
