from __future__ import annotations

from collections.abc import Set as AbstractSet

from ..models.contact import NormalizedContact
from ..models.config_models import DEFAULT_BATCH_SIZE

"""Accumulates accepted contacts until the flush threshold. No storage access."""

__all__ = [
    "Batcher",
]


class Batcher:
    def __init__(self, size: int = DEFAULT_BATCH_SIZE) -> None:
        if size < 1:
            raise ValueError(f"batch size must be >= 1, got {size}")
        self.size = size
        self._buffer: list[NormalizedContact] = []
        self._phones: set[str] = set()

    def add(self, contact: NormalizedContact) -> bool:
        """Buffer a contact; True when the buffer reached the threshold."""
        self._buffer.append(contact)
        if contact.phone is not None:
            self._phones.add(contact.phone)
        return len(self._buffer) >= self.size

    def drain(self) -> list[NormalizedContact]:
        """Return the buffered contacts in arrival order and reset the buffer."""
        batch = self._buffer
        self._buffer = []
        self._phones = set()
        return batch

    @property
    def pending_phones(self) -> AbstractSet[str]:
        return self._phones

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return bool(self._buffer)
