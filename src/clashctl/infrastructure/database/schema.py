"""SQLAlchemy Core table definitions for the clashctl database.

A rule owns its items: ``items.rule_id`` cascades on delete, which SQLite
only honours with ``PRAGMA foreign_keys=ON`` (set by the engine).
Both tables use AUTOINCREMENT so ids of deleted rows are never reissued;
a client still holding a stale id must not hit someone else's new row.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, MetaData, Table, Text

metadata = MetaData()

rules = Table(
    "rules",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", Text),  # NULL until first save
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    sqlite_autoincrement=True,
)

items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "rule_id",
        Integer,
        ForeignKey("rules.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("type", Text, nullable=False),
    Column("value", Text, nullable=False, default="", server_default=""),
    Column("policy", Text, nullable=False),
    Column("position", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    sqlite_autoincrement=True,
)

Index("ix_items_rule_id", items.c.rule_id)
Index("ix_rules_created_at", rules.c.created_at)
