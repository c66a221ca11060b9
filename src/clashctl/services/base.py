"""BaseService — abstract foundation for all clashctl services.

Every service receives a :class:`Store` at construction time. The Store
provides transactional access to the database and the remote fetcher.
Services own their transaction boundaries via ``self._store.transaction()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clashctl.infrastructure.store import Store


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class RuleService(BaseService):
            def reconcile(self, rule_id: int, ...) -> ServiceResult:
                with self._store.transaction() as repo:
                    ...
    """

    def __init__(self, store: Store) -> None:
        self._store = store
