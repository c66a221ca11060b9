"""Store — the single dependency injected into every service.

The Store owns the database engine and the HTTP fetcher. Services own
their transaction boundaries via :meth:`Store.transaction`, which yields
a :class:`RuleRepository` bound to one ``engine.begin()`` connection:

- commit when the block exits normally,
- roll back every statement when it raises.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from clashctl.infrastructure.database.engine import init_database
from clashctl.infrastructure.fetch import Fetcher
from clashctl.infrastructure.repositories.rules import RuleRepository

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from clashctl.config.settings import ClashSettings

logger = logging.getLogger(__name__)


class Store:
    """Repository host encapsulating database and remote access.

    Constructed lazily by the CLI context from :class:`ClashSettings`.
    """

    def __init__(self, settings: ClashSettings, *, fetcher: Fetcher | None = None) -> None:
        self._settings = settings
        self._engine: Engine = init_database(settings.db_path)
        self._fetcher = fetcher or Fetcher(
            timeout=settings.fetch.timeout,
            user_agent=settings.fetch.user_agent,
            follow_redirects=settings.fetch.follow_redirects,
        )

    @property
    def root(self) -> Path:
        """The data root directory."""
        return self._settings.data_root

    @property
    def db_path(self) -> Path:
        return self._settings.db_path

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> ClashSettings:
        return self._settings

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher

    @contextmanager
    def transaction(self) -> Iterator[RuleRepository]:
        """Atomic unit of work over the rules database.

        Usage::

            with store.transaction() as repo:
                repo.delete_items_by_ids(stale)
                repo.upsert_item(...)
                # Both commit on success, both roll back on failure.
        """
        with self._engine.begin() as conn:
            yield RuleRepository(conn)

    @contextmanager
    def reader(self) -> Iterator[RuleRepository]:
        """Read-only access; nothing issued here is committed."""
        with self._engine.connect() as conn:
            yield RuleRepository(conn)

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
