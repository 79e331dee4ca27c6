from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from ..models.config_models import ContactDefaults
from ..models.contact import NormalizedContact
from .batch_insert import BatchMetrics, InsertFailedError, batch_insert
from .connection import ConnectionProvider

"""Contacts store: duplicate lookup + transactional batch insert."""

__all__ = [
    "DuplicateLookupError",
    "ContactStore",
    "PostgresContactStore",
]

logger = logging.getLogger(__name__)


class DuplicateLookupError(Exception):
    """The duplicate-phone lookup query failed."""


class ContactStore(Protocol):
    def phone_exists(self, phone: str) -> bool: ...

    def insert_batch(
        self,
        contacts: Sequence[NormalizedContact],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> int:
        """Persist the whole batch atomically; return the committed row count.

        Raises InsertFailedError after rolling the batch back.
        """
        ...


class PostgresContactStore:
    def __init__(
        self,
        provider: ConnectionProvider,
        table: str = "contacts",
        defaults: ContactDefaults | None = None,
    ) -> None:
        self._provider = provider
        self.table = table
        self.defaults = defaults or ContactDefaults()

    def phone_exists(self, phone: str) -> bool:
        try:
            with self._provider.transaction() as cur:
                cur.execute(f"SELECT 1 FROM {self.table} WHERE phone = %s LIMIT 1", (phone,))
                return cur.fetchone() is not None
        except Exception as e:
            raise DuplicateLookupError(f"duplicate lookup failed: {e}") from e

    def insert_batch(
        self,
        contacts: Sequence[NormalizedContact],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> int:
        if not contacts:
            return 0
        # COMMIT 成功後にだけ通知する
        measured: list[BatchMetrics] = []
        try:
            with self._provider.transaction() as cur:
                result = batch_insert(
                    cur,
                    self.table,
                    contacts,
                    defaults=self.defaults,
                    metrics_callback=measured.append,
                )
        except InsertFailedError:
            raise
        except Exception as e:
            # COMMIT 失敗 / 接続断など execute 以外の失敗
            raise InsertFailedError(str(e), batch_size=len(contacts)) from e
        logger.debug("table=%s committed batch rows=%d", self.table, result.inserted_rows)
        if metrics_callback is not None:
            for metrics in measured:
                metrics_callback(metrics)
        return result.inserted_rows
