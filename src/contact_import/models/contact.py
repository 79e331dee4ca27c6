from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Contact domain models for the spreadsheet -> PostgreSQL contact import.

NormalizedContact is produced once per source row by the normalizer and is
consumed exactly once by the batcher / bulk inserter. FailureRecord captures a
rejected row and is only ever surfaced in results and the error log.
"""

__all__ = [
    "NormalizedContact",
    "FailureReason",
    "FailureRecord",
    "RESERVED_FIELDS",
    "REQUIRED_COLUMNS",
]

# 正規化後の既知列 (additional_info には含めない)
RESERVED_FIELDS: tuple[str, ...] = ("name", "email", "phone", "area", "city", "state", "zip", "address")

# ヘッダに必須の列 (順序は MissingRequiredColumns のメッセージ順)
REQUIRED_COLUMNS: tuple[str, ...] = ("name", "phone")


@dataclass(frozen=True)
class NormalizedContact:
    """Canonical contact record built from one spreadsheet row.

    ``name`` and ``phone`` may still be ``None`` here: the normalizer never
    rejects, the validator decides acceptance.
    """
    name: str | None
    phone: str | None
    email: str | None = None
    area: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    address: str | None = None
    additional_info: str = ""


class FailureReason(Enum):
    """Per-row rejection reasons (first failing check wins)."""
    MISSING_NAME = "Missing name"
    MISSING_PHONE = "Missing phone"
    DUPLICATE_PHONE = "Duplicate phone"

    @property
    def error_type(self) -> str:
        """UPPER_SNAKE label used in the JSON Lines error log."""
        return self.name


@dataclass(frozen=True)
class FailureRecord:
    row_number: int  # 1-based, header 行を除いたデータ行番号
    reason: FailureReason

    def to_dict(self) -> dict[str, object]:
        return {"row": self.row_number, "reason": self.reason.value}
