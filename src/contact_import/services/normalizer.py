from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any

from ..models.contact import RESERVED_FIELDS, NormalizedContact

"""Row normalization: SourceRow (raw header -> cell) -> NormalizedContact.

Pure data transformation, no I/O, never raises for any row shape.

"Absent" is explicit here: None, NaN, or a string that is empty after trim.
Zero and False are real values and are kept.
"""

__all__ = [
    "ADDITIONAL_INFO_DELIMITER",
    "canonical_key",
    "canonicalize_row",
    "to_camel_case",
    "is_absent",
    "cell_text",
    "build_additional_info",
    "normalize_row",
]

ADDITIONAL_INFO_DELIMITER = " | "

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


def canonical_key(key: Any) -> str:
    return str(key).strip().lower()


def canonicalize_row(row: Mapping[Any, Any]) -> dict[str, Any]:
    """Lower-case / trim every key, keeping the row's column order.

    Keys that collide after canonicalization keep their first position and the
    last present value; an absent cell never replaces a present one.
    """
    out: dict[str, Any] = {}
    for k, v in row.items():
        key = canonical_key(k)
        if key in out and is_absent(v):
            continue
        out[key] = v
    return out


def to_camel_case(key: str) -> str:
    """'Lead Source' -> 'leadSource', 'utm_campaign-id' -> 'utmCampaignId'.

    Falls back to the canonical key when no alphanumeric segment remains.
    """
    words = [w for w in _NON_ALNUM.split(key.lower()) if w]
    if not words:
        return canonical_key(key)
    return words[0] + "".join(w[0].upper() + w[1:] for w in words[1:])


def is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def cell_text(value: Any) -> str:
    """Render a present cell value as the text stored in the contacts table."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        # Excel は数値を float で持つことがある (9876543210.0 -> '9876543210')
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _optional_text(row: Mapping[str, Any], key: str) -> str | None:
    value = row.get(key)
    return None if is_absent(value) else cell_text(value)


def build_additional_info(row: Mapping[str, Any], skip: tuple[str, ...] = RESERVED_FIELDS) -> str:
    """Serialize non-reserved, non-empty columns as 'camelKey : value' pairs.

    ``row`` must already be canonicalized.
    """
    parts: list[str] = []
    for key, value in row.items():
        if key in skip or is_absent(value):
            continue
        parts.append(f"{to_camel_case(key)} : {cell_text(value)}")
    return ADDITIONAL_INFO_DELIMITER.join(parts)


def normalize_row(row: Mapping[Any, Any]) -> NormalizedContact:
    canon = canonicalize_row(row)
    return NormalizedContact(
        name=_optional_text(canon, "name"),
        phone=_optional_text(canon, "phone"),
        email=_optional_text(canon, "email"),
        area=_optional_text(canon, "area"),
        city=_optional_text(canon, "city"),
        state=_optional_text(canon, "state"),
        zip=_optional_text(canon, "zip"),
        address=_optional_text(canon, "address"),
        additional_info=build_additional_info(canon),
    )
