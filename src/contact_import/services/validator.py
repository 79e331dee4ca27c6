from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Protocol

from ..models.config_models import DuplicateCheck
from ..models.contact import REQUIRED_COLUMNS, FailureReason, FailureRecord, NormalizedContact
from .normalizer import canonical_key

"""Sheet precondition and per-row acceptance checks.

Row checks run in fixed order and the first failure wins:
name → phone → duplicate phone (only with DuplicateCheck.LOOKUP).
"""

__all__ = [
    "DuplicateLookup",
    "missing_required_columns",
    "RowValidator",
]


class DuplicateLookup(Protocol):
    def phone_exists(self, phone: str) -> bool:
        """True when the phone is already committed in the contacts store."""
        ...


def missing_required_columns(columns: Iterable[str]) -> list[str]:
    """Required columns absent from the (canonicalized) header, in required order."""
    present = {canonical_key(c) for c in columns}
    return [col for col in REQUIRED_COLUMNS if col not in present]


class RowValidator:
    """Decides acceptance of normalized rows for one sheet run.

    With DuplicateCheck.LOOKUP a phone is a duplicate when it is already
    committed (point lookup through ``lookup``) or is waiting in the current,
    not yet flushed batch (``pending_phones``).
    """

    def __init__(self, duplicate_check: DuplicateCheck, lookup: DuplicateLookup | None = None) -> None:
        if duplicate_check is DuplicateCheck.LOOKUP and lookup is None:
            raise ValueError("duplicate_check=lookup requires a DuplicateLookup")
        self.duplicate_check = duplicate_check
        # DuplicateCheck.NONE では lookup を持たない
        self._lookup = lookup if duplicate_check is DuplicateCheck.LOOKUP else None

    def validate(
        self,
        row_number: int,
        contact: NormalizedContact,
        pending_phones: Collection[str] = (),
    ) -> FailureRecord | None:
        if contact.name is None:
            return FailureRecord(row_number, FailureReason.MISSING_NAME)
        if contact.phone is None:
            return FailureRecord(row_number, FailureReason.MISSING_PHONE)
        if self._lookup is not None:
            if contact.phone in pending_phones or self._lookup.phone_exists(contact.phone):
                return FailureRecord(row_number, FailureReason.DUPLICATE_PHONE)
        return None
