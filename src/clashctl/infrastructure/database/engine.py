"""Database engine setup for SQLite with WAL mode.

SQLite is the persistence layer: WAL mode for concurrent reads, ACID
transactions so a reconcile either fully commits or leaves no trace.
The DB is stored at ``{data_root}/.clashctl/clashctl.db`` by default.

SQLAlchemy Core (not ORM) is used because clashctl is a short-lived
CLI process — no benefit from session management or identity maps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from clashctl.infrastructure.database.schema import metadata


def set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
    """Enable WAL and foreign keys on every new DBAPI connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    event.listen(engine, "connect", set_sqlite_pragma)
    return engine


def init_database(db_path: Path) -> Engine:
    """Initialize the clashctl database at *db_path*.

    Creates the parent directory, a ``backups/`` sibling, and all tables
    from :data:`schema.metadata`.

    Idempotent — safe to call on an existing store.

    Returns the engine ready for use.
    """
    store_dir = db_path.parent
    store_dir.mkdir(parents=True, exist_ok=True)
    (store_dir / "backups").mkdir(exist_ok=True)

    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    return engine
