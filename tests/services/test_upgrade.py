"""Tests for UpgradeService — Alembic migration handling."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import inspect

from clashctl.infrastructure.store import Store
from clashctl.services.upgrade import BACKUP_MAX_COUNT, UpgradeService
from tests.conftest import create_rule


class TestCheckPending:
    def test_unstamped_store_has_pending(self, store: Store) -> None:
        result = UpgradeService(store).check_pending()
        assert result.ok
        assert result.data["current"] is None
        assert result.data["head"] == "001_baseline"
        assert result.data["pending_count"] == 1
        assert result.data["pending"][0]["revision"] == "001_baseline"


class TestApply:
    def test_stamps_existing_tables(self, store: Store) -> None:
        svc = UpgradeService(store)
        result = svc.apply()
        assert result.ok
        assert result.data["applied_count"] == 1
        assert result.data["current"] == "001_baseline"
        assert svc.check_pending().data["pending_count"] == 0

    def test_rules_survive_stamp(self, store: Store) -> None:
        rule = create_rule(store)
        UpgradeService(store).apply()
        assert "alembic_version" in inspect(store.engine).get_table_names()
        with store.reader() as repo:
            assert repo.find_rule_by_id(rule["id"]) is not None

    def test_backup_written(self, store: Store) -> None:
        result = UpgradeService(store).apply()
        assert Path(result.data["backup_path"]).is_file()

    def test_without_backup(self, store: Store) -> None:
        result = UpgradeService(store).apply(backup=False)
        assert result.ok
        assert "backup_path" not in result.data
        assert list((store.db_path.parent / "backups").glob("*.db")) == []

    def test_up_to_date(self, store: Store) -> None:
        svc = UpgradeService(store)
        svc.apply()
        result = svc.apply()
        assert result.ok
        assert result.data["applied_count"] == 0
        assert "up to date" in result.data["message"]


class TestBackupRotation:
    def test_prunes_oldest(self, store: Store) -> None:
        backup_dir = store.db_path.parent / "backups"
        for i in range(BACKUP_MAX_COUNT + 2):
            (backup_dir / f"clashctl-20200101T0000{i:02d}.db").write_bytes(b"")
        UpgradeService(store)._backup_db()
        remaining = sorted(p.name for p in backup_dir.glob("clashctl-*.db"))
        assert len(remaining) == BACKUP_MAX_COUNT
        assert "clashctl-20200101T000000.db" not in remaining
