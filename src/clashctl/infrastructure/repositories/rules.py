"""Persisted-store operations for rules and their items.

The caller owns the transaction: construct the repository with a
``Connection`` obtained from ``engine.begin()`` so every statement issued
here participates in the same atomic unit as the surrounding writes.
Commit or rollback is the caller's responsibility.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update

from clashctl.infrastructure.database.schema import items, rules

if TYPE_CHECKING:
    from sqlalchemy import Connection

_ITEM_COLUMNS = (
    items.c.id,
    items.c.rule_id,
    items.c.type,
    items.c.value,
    items.c.policy,
    items.c.position,
    items.c.created_at,
)


class RuleRepository:
    """Encapsulates SQL for rule and item reads/writes."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def insert_rule(self, url: str | None, *, now: str) -> int:
        """Insert an empty rule and return its id."""
        result = self.conn.execute(
            insert(rules).values(url=url, created_at=now, updated_at=now)
        )
        return int(result.inserted_primary_key[0])

    def find_rule_by_id(self, rule_id: int) -> dict[str, Any] | None:
        """Fetch one rule with its items, or None."""
        row = self.conn.execute(select(rules).where(rules.c.id == rule_id)).mappings().first()
        if row is None:
            return None
        rule = dict(row)
        rule["items"] = self.list_items(rule_id)
        return rule

    def list_rules(self) -> list[dict[str, Any]]:
        """All rules with item counts, newest first."""
        stmt = (
            select(rules, func.count(items.c.id).label("item_count"))
            .select_from(rules.outerjoin(items, items.c.rule_id == rules.c.id))
            .group_by(rules.c.id)
            .order_by(rules.c.created_at.desc(), rules.c.id.desc())
        )
        return [dict(row) for row in self.conn.execute(stmt).mappings()]

    def update_rule_url(self, rule_id: int, url: str, *, now: str) -> None:
        self.conn.execute(
            update(rules).where(rules.c.id == rule_id).values(url=url, updated_at=now)
        )

    def touch_rule(self, rule_id: int, *, now: str) -> None:
        self.conn.execute(update(rules).where(rules.c.id == rule_id).values(updated_at=now))

    def delete_rule(self, rule_id: int) -> bool:
        """Delete a rule; its items go with it (ON DELETE CASCADE)."""
        result = self.conn.execute(delete(rules).where(rules.c.id == rule_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self, rule_id: int) -> list[dict[str, Any]]:
        """Items owned by *rule_id* in submission order."""
        stmt = (
            select(*_ITEM_COLUMNS)
            .where(items.c.rule_id == rule_id)
            .order_by(items.c.position, items.c.id)
        )
        return [dict(row) for row in self.conn.execute(stmt).mappings()]

    def list_item_ids_by_rule_id(self, rule_id: int) -> list[int]:
        rows = self.conn.execute(select(items.c.id).where(items.c.rule_id == rule_id))
        return [int(row.id) for row in rows]

    def delete_items_by_ids(self, ids: Collection[int], *, rule_id: int | None = None) -> int:
        """Delete items by id, optionally restricted to one owner.

        Returns the number of rows removed. An empty *ids* is a no-op.
        """
        if not ids:
            return 0
        stmt = delete(items).where(items.c.id.in_(list(ids)))
        if rule_id is not None:
            stmt = stmt.where(items.c.rule_id == rule_id)
        return self.conn.execute(stmt).rowcount

    def upsert_item(
        self,
        item_id: int | None,
        rule_id: int,
        *,
        value: str,
        type: str,  # noqa: A002
        policy: str,
        position: int,
        now: str,
    ) -> dict[str, Any]:
        """Overwrite the owned item *item_id*, or insert a new one.

        The update is keyed on ``(id, rule_id)``: an id owned by another
        rule matches nothing and falls through to an insert, so ownership
        never moves between rules.
        """
        fields = {"value": value, "type": type, "policy": policy, "position": position}

        if item_id is not None:
            result = self.conn.execute(
                update(items)
                .where(items.c.id == item_id, items.c.rule_id == rule_id)
                .values(**fields)
            )
            if result.rowcount == 1:
                return self._get_item(item_id)

        result = self.conn.execute(insert(items).values(rule_id=rule_id, created_at=now, **fields))
        return self._get_item(int(result.inserted_primary_key[0]))

    def _get_item(self, item_id: int) -> dict[str, Any]:
        row = self.conn.execute(select(*_ITEM_COLUMNS).where(items.c.id == item_id)).mappings().one()
        return dict(row)
