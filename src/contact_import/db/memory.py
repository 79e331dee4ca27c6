from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence

from ..models.contact import NormalizedContact
from .batch_insert import BatchMetrics

"""In-memory ContactStore used by --dry-run (and by tests).

Same contract as PostgresContactStore: a batch becomes visible all at once.
"""

__all__ = [
    "MemoryContactStore",
]


class MemoryContactStore:
    def __init__(self, existing_phones: Sequence[str] = ()) -> None:
        self._contacts: list[NormalizedContact] = []
        self._phones: set[str] = set(existing_phones)
        self._lock = threading.Lock()
        self.batches_committed = 0

    def phone_exists(self, phone: str) -> bool:
        with self._lock:
            return phone in self._phones

    def insert_batch(
        self,
        contacts: Sequence[NormalizedContact],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> int:
        if not contacts:
            return 0
        start_time = time.time()
        with self._lock:
            self._contacts.extend(contacts)
            self._phones.update(c.phone for c in contacts if c.phone is not None)
            self.batches_committed += 1
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(contacts),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )
        return len(contacts)

    @property
    def contacts(self) -> list[NormalizedContact]:
        with self._lock:
            return list(self._contacts)
