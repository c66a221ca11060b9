"""Alembic environment for the rule store.

Migrations run on the connection handed in via ``config.attributes`` when
there is one, otherwise on a short-lived engine for the configured URL.
SQLite cannot ALTER most constraints, so batch mode is always on.
"""

from __future__ import annotations

from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection

from clashctl.infrastructure.database.engine import create_db_engine
from clashctl.infrastructure.database.schema import metadata


def _run(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations() -> None:
    shared = context.config.attributes.get("connection")
    if shared is not None:
        _run(shared)
        return

    url = context.config.get_main_option("sqlalchemy.url")
    assert url is not None and url.startswith("sqlite:///"), url
    engine = create_db_engine(Path(url.removeprefix("sqlite:///")))
    try:
        with engine.connect() as connection:
            _run(connection)
    finally:
        engine.dispose()


run_migrations()
