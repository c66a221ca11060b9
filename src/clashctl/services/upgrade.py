"""UpgradeService — bring an existing rule store up to the current schema.

Pipeline: CHECK → BACKUP → MIGRATE → REPORT

A store whose tables predate version tracking is stamped rather than
migrated, since the baseline revision would try to recreate them.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import structlog
from alembic import command
from sqlalchemy import inspect

from clashctl.infrastructure.database.migrations import (
    build_config,
    current_revision,
    head_revision,
    pending_revisions,
)
from clashctl.services._helpers import error_result, now_compact
from clashctl.services.base import BaseService
from clashctl.services.result import ErrorCode, ServiceResult

log = structlog.get_logger(__name__)

BACKUP_MAX_COUNT = 10


class UpgradeService(BaseService):
    """Schema migrations for the store's SQLite database."""

    def check_pending(self) -> ServiceResult:
        """List pending migrations without applying."""
        op = "upgrade"
        try:
            with self._store.engine.connect() as conn:
                current = current_revision(conn)
            pending = pending_revisions(current)
            head = head_revision()
        except Exception as exc:
            return error_result(op, ErrorCode.CHECK_FAILED, f"Failed to check migrations: {exc}")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
            },
        )

    def apply(self, *, backup: bool = True) -> ServiceResult:
        """Migrate to head, copying the database aside first unless *backup* is off."""
        op = "upgrade"

        # ── CHECK ────────────────────────────────────────────────
        check = self.check_pending()
        if not check.ok:
            return check
        pending_count = check.data["pending_count"]
        head = check.data["head"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": head,
                    "message": "Database is already up to date",
                },
            )

        # ── BACKUP ───────────────────────────────────────────────
        backup_path: Path | None = None
        if backup:
            try:
                backup_path = self._backup_db()
            except OSError as exc:
                return error_result(op, ErrorCode.BACKUP_FAILED, f"Backup failed: {exc}")

        # ── MIGRATE ──────────────────────────────────────────────
        unversioned = check.data["current"] is None and self._has_rule_tables()
        try:
            with self._store.engine.begin() as conn:
                cfg = build_config(self._store.db_path, connection=conn)
                if unversioned:
                    command.stamp(cfg, "head")
                else:
                    command.upgrade(cfg, "head")
        except Exception as exc:
            detail = {"backup_path": str(backup_path)} if backup_path else {}
            suffix = f". Backup at: {backup_path}" if backup_path else ""
            return error_result(
                op, ErrorCode.MIGRATION_FAILED, f"Migration failed: {exc}{suffix}", detail=detail
            )

        # ── REPORT ───────────────────────────────────────────────
        log.info(
            "store.upgraded",
            applied=pending_count,
            stamped=unversioned,
            backup=str(backup_path) if backup_path else None,
        )
        data: dict[str, object] = {"applied_count": pending_count, "current": head}
        if backup_path is not None:
            data["backup_path"] = str(backup_path)
        return ServiceResult(ok=True, op=op, data=data)

    def _has_rule_tables(self) -> bool:
        return "rules" in inspect(self._store.engine).get_table_names()

    def _backup_db(self) -> Path:
        """Copy the database to ``backups/`` and prune the oldest copies."""
        db_path = self._store.db_path
        backup_dir = db_path.parent / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)

        backup_path = backup_dir / f"{db_path.stem}-{now_compact()}.db"
        shutil.copy2(db_path, backup_path)

        backups = sorted(backup_dir.glob(f"{db_path.stem}-*.db"))
        for old in backups[: max(0, len(backups) - BACKUP_MAX_COUNT)]:
            old.unlink(missing_ok=True)
        return backup_path
