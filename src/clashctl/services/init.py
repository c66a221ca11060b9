"""InitService — create a data root with its database and config file."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clashctl.config.models import StoreConfig
from clashctl.config.settings import CONFIG_FILENAME
from clashctl.infrastructure.database.engine import init_database
from clashctl.infrastructure.database.migrations import stamp_head
from clashctl.services._helpers import error_result
from clashctl.services.result import ErrorCode, ServiceResult

log = structlog.get_logger(__name__)

_CONFIG_TEMPLATE = """\
# clashctl configuration. Every key is optional; defaults shown.

[store]
dirname = "{dirname}"
filename = "{filename}"

[fetch]
timeout = 30.0
user_agent = "clash"
follow_redirects = true

[export]
filename_template = "clash-config-{{id}}.yaml"
"""


class InitService:
    """Stateless: runs before any Store exists."""

    @staticmethod
    def init_store(root: Path, *, store: StoreConfig | None = None) -> ServiceResult:
        """Initialize ``root`` for clashctl.

        Creates the store directory and database, stamps it at the current
        migration head, and writes a ``clashctl.toml`` unless one exists.
        Idempotent: an existing database and config are left as they are.
        """
        op = "init"
        store = store or StoreConfig()
        db_path = root / store.dirname / store.filename
        existed = db_path.is_file()

        try:
            root.mkdir(parents=True, exist_ok=True)
            engine = init_database(db_path)
            engine.dispose()
            if not existed:
                stamp_head(db_path)
        except (OSError, SQLAlchemyError) as exc:
            return error_result(
                op,
                ErrorCode.PERSISTENCE_FAILED,
                f"Could not initialize store at {db_path}: {exc}",
                detail={"db_path": str(db_path)},
            )

        config_path = root / CONFIG_FILENAME
        config_created = False
        if not config_path.exists():
            config_path.write_text(
                _CONFIG_TEMPLATE.format(dirname=store.dirname, filename=store.filename),
                encoding="utf-8",
            )
            config_created = True

        log.info("store.initialized", root=str(root), created=not existed)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "data_root": str(root),
                "db_path": str(db_path),
                "db_created": not existed,
                "config_path": str(config_path),
                "config_created": config_created,
            },
        )
