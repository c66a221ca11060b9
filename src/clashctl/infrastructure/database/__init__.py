"""SQLite database engine and schema via SQLAlchemy Core."""

from clashctl.infrastructure.database.engine import create_db_engine, init_database
from clashctl.infrastructure.database.schema import items, metadata, rules

__all__ = [
    "create_db_engine",
    "init_database",
    "items",
    "metadata",
    "rules",
]
