"""Baseline schema — rules and their items.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19

Databases created by ``clashctl init`` are stamped at this revision
without running it; databases that predate version tracking get it
applied (or stamped, when the tables already exist) by ``clashctl upgrade``.
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
        "rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("url", sa.Text),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "rule_id",
            sa.Integer,
            sa.ForeignKey("rules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("value", sa.Text, nullable=False, server_default=""),
        sa.Column("policy", sa.Text, nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.Text, nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_items_rule_id", "items", ["rule_id"])
    op.create_index("ix_rules_created_at", "rules", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_rules_created_at", table_name="rules")
    op.drop_index("ix_items_rule_id", table_name="items")
    op.drop_table("items")
    op.drop_table("rules")
