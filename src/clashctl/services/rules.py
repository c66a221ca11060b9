"""RuleService — rule lifecycle and item reconciliation.

Clients never send diffs. Every save submits the complete desired item
sequence; the service derives the changes from current vs. desired
membership:

- owned ids missing from the desired set are deleted,
- desired items whose id is owned are overwritten in place,
- everything else is inserted with a fresh id.

Pipeline: VALIDATE → DIFF → DELETE → UPSERT → RESPOND, all inside one
transaction. Because the plan depends only on the two sets, resubmitting
the same desired sequence after a failure is safe.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clashctl.domain.rules import ItemSpec, validate_items
from clashctl.infrastructure.repositories.rules import RuleRepository
from clashctl.services._helpers import error_result, now_iso, serialize_rule
from clashctl.services.base import BaseService
from clashctl.services.result import ErrorCode, ServiceResult
from clashctl.services.telemetry import stage, timed

log = structlog.get_logger(__name__)

RawItem = Mapping[str, Any] | ItemSpec


@dataclass
class ReconcilePlan:
    """Counts of what a reconcile changed."""

    deleted: int = 0
    updated: int = 0
    inserted: int = 0
    unchanged: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.updated or self.inserted)

    def to_dict(self) -> dict[str, int]:
        return {
            "deleted": self.deleted,
            "updated": self.updated,
            "inserted": self.inserted,
            "unchanged": self.unchanged,
        }


class RuleService(BaseService):
    """Creates, reads, reconciles and deletes rules."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @timed
    def create_rule(
        self,
        url: str | None = None,
        items: Sequence[RawItem] = (),
    ) -> ServiceResult:
        """Create a rule, optionally with an initial item sequence."""
        op = "create_rule"

        if url is not None and not url.strip():
            return error_result(op, ErrorCode.INVALID_INPUT, "url must not be empty")

        validation = validate_items(items)
        if not validation.valid:
            return _invalid_items(op, validation.errors)

        now = now_iso()
        try:
            with self._store.transaction() as repo:
                rule_id = repo.insert_rule(url, now=now)
                for position, item in enumerate(validation.items):
                    repo.upsert_item(
                        None,
                        rule_id,
                        value=item.value,
                        type=item.type,
                        policy=item.policy,
                        position=position,
                        now=now,
                    )
                rule = repo.find_rule_by_id(rule_id)
        except SQLAlchemyError as exc:
            return _persistence_failed(op, exc)

        assert rule is not None
        log.info("rule.created", rule_id=rule_id, items=len(validation.items))
        return ServiceResult(ok=True, op=op, data=serialize_rule(rule))

    @timed
    def get_rule(self, rule_id: int) -> ServiceResult:
        """Fetch one rule with its items."""
        op = "get_rule"
        with self._store.reader() as repo:
            rule = repo.find_rule_by_id(rule_id)
        if rule is None:
            return _not_found(op, rule_id)
        return ServiceResult(ok=True, op=op, data=serialize_rule(rule))

    @timed
    def list_rules(self) -> ServiceResult:
        """All rules, newest first, with item counts."""
        op = "list_rules"
        with self._store.reader() as repo:
            rows = repo.list_rules()
        listed = [
            {
                "id": row["id"],
                "url": row["url"],
                "item_count": row["item_count"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
            for row in rows
        ]
        return ServiceResult(ok=True, op=op, data={"count": len(listed), "items": listed})

    @timed
    def delete_rule(self, rule_id: int) -> ServiceResult:
        """Delete a rule together with all of its items."""
        op = "delete_rule"
        try:
            with self._store.transaction() as repo:
                item_count = len(repo.list_item_ids_by_rule_id(rule_id))
                deleted = repo.delete_rule(rule_id)
        except SQLAlchemyError as exc:
            return _persistence_failed(op, exc)

        if not deleted:
            return _not_found(op, rule_id)
        log.info("rule.deleted", rule_id=rule_id, items=item_count)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": rule_id, "items_deleted": item_count},
        )

    @timed
    def reconcile(
        self,
        rule_id: int,
        *,
        url: str | None = None,
        items: Sequence[RawItem] | None = None,
    ) -> ServiceResult:
        """Make the rule's persisted items equal *items*, atomically.

        Args:
            rule_id: The rule to save.
            url: New remote base URL; None keeps the current one.
            items: The complete desired item sequence. An empty sequence
                clears the rule. None leaves the items untouched (URL-only
                save).

        Duplicate ids within *items* are a caller error and are not
        de-duplicated; the last occurrence wins.
        """
        op = "reconcile"

        # ── VALIDATE ─────────────────────────────────────────────
        if url is not None and not url.strip():
            return error_result(op, ErrorCode.INVALID_INPUT, "url must not be empty")

        desired: list[ItemSpec] | None = None
        if items is not None:
            validation = validate_items(items)
            if not validation.valid:
                return _invalid_items(op, validation.errors)
            desired = validation.items

        now = now_iso()
        plan = ReconcilePlan()
        try:
            with self._store.transaction() as repo:
                rule = repo.find_rule_by_id(rule_id)
                if rule is None:
                    return _not_found(op, rule_id)

                url_changed = url is not None and url != rule["url"]
                if url_changed:
                    repo.update_rule_url(rule_id, url, now=now)  # type: ignore[arg-type]

                if desired is not None:
                    with stage("apply_items") as facts:
                        plan = _apply_items(repo, rule_id, rule["items"], desired, now=now)
                        if facts is not None:
                            facts.update(plan.to_dict())

                if plan.changed and not url_changed:
                    repo.touch_rule(rule_id, now=now)

                saved = repo.find_rule_by_id(rule_id)
        except SQLAlchemyError as exc:
            return _persistence_failed(op, exc, rule_id=rule_id)

        assert saved is not None
        log.info("rule.reconciled", rule_id=rule_id, url_changed=url_changed, **plan.to_dict())
        data = serialize_rule(saved)
        data["changes"] = {**plan.to_dict(), "url_changed": url_changed}
        return ServiceResult(ok=True, op=op, data=data)


# ---------------------------------------------------------------------------
# Reconcile internals
# ---------------------------------------------------------------------------


def _apply_items(
    repo: RuleRepository,
    rule_id: int,
    current_items: list[dict[str, Any]],
    desired: list[ItemSpec],
    *,
    now: str,
) -> ReconcilePlan:
    """DIFF → DELETE → UPSERT against the rule's owned items."""
    plan = ReconcilePlan()

    # ── DIFF ─────────────────────────────────────────────────
    current_ids = set(repo.list_item_ids_by_rule_id(rule_id))
    desired_ids = {item.id for item in desired if item.id is not None}
    to_delete = current_ids - desired_ids

    # ── DELETE ───────────────────────────────────────────────
    plan.deleted = repo.delete_items_by_ids(sorted(to_delete), rule_id=rule_id)

    # ── UPSERT ───────────────────────────────────────────────
    existing = {row["id"]: row for row in current_items}
    for position, item in enumerate(desired):
        owned_id = item.id if item.id in current_ids else None
        if owned_id is not None and _unchanged(existing[owned_id], item, position):
            plan.unchanged += 1
            continue
        row = repo.upsert_item(
            owned_id,
            rule_id,
            value=item.value,
            type=item.type,
            policy=item.policy,
            position=position,
            now=now,
        )
        if owned_id is None:
            plan.inserted += 1
        else:
            existing[owned_id] = row
            plan.updated += 1
    return plan


def _unchanged(row: dict[str, Any], item: ItemSpec, position: int) -> bool:
    return (
        row["type"] == item.type
        and row["value"] == item.value
        and row["policy"] == item.policy
        and row["position"] == position
    )


def _not_found(op: str, rule_id: int) -> ServiceResult:
    return error_result(
        op,
        ErrorCode.NOT_FOUND,
        f"No rule found with ID: {rule_id}",
        detail={"rule_id": rule_id},
    )


def _invalid_items(op: str, errors: list[str]) -> ServiceResult:
    return error_result(
        op,
        ErrorCode.INVALID_INPUT,
        "; ".join(errors),
        detail={"errors": errors},
    )


def _persistence_failed(op: str, exc: SQLAlchemyError, **detail: Any) -> ServiceResult:
    log.error("persistence.failed", op=op, error=str(exc), **detail)
    return error_result(
        op,
        ErrorCode.PERSISTENCE_FAILED,
        f"Could not commit changes: {exc.__class__.__name__}",
        detail={**detail, "error": str(exc)},
    )
