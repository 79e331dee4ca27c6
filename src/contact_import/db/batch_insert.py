from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

from ..models.config_models import ContactDefaults
from ..models.contact import NormalizedContact

"""Multi-row contact INSERT.

One batch = one INSERT ... VALUES statement (execute_values with
page_size == batch length). Transaction boundaries belong to the caller
(PostgresContactStore.insert_batch).
"""

__all__ = [
    "CONTACT_COLUMNS",
    "InsertFailedError",
    "BatchMetrics",
    "InsertResult",
    "contact_values",
    "batch_insert",
]

CONTACT_COLUMNS: tuple[str, ...] = (
    "name",
    "email",
    "phone",
    "area",
    "city",
    "state",
    "zip",
    "address",
    "is_converted_to_prospect",
    "is_converted_to_lead",
    "prospect_status",
    "status_id",
    "assign_to",
    "lead_type",
    "company_name",
    "position",
    "additional_info",
)


class InsertFailedError(Exception):
    """A batch could not be committed; the whole batch was rolled back."""

    def __init__(self, message: str, batch_size: int = 0) -> None:
        super().__init__(message)
        self.batch_size = batch_size


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single batch insert."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float  # Start timestamp (time.time())
    end_time: float  # End timestamp (time.time())


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int


def contact_values(contact: NormalizedContact, defaults: ContactDefaults) -> tuple[Any, ...]:
    """Row tuple in CONTACT_COLUMNS order; non-sheet columns get fixed defaults."""
    return (
        contact.name,
        contact.email,
        contact.phone,
        contact.area,
        contact.city,
        contact.state,
        contact.zip,
        contact.address,
        False,  # is_converted_to_prospect
        False,  # is_converted_to_lead
        None,  # prospect_status
        defaults.status_id,
        None,  # assign_to
        defaults.lead_type,
        None,  # company_name
        None,  # position
        contact.additional_info,
    )


def batch_insert(
    cursor: Any,
    table: str,
    contacts: Sequence[NormalizedContact],
    defaults: ContactDefaults | None = None,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert ``contacts`` with a single multi-row statement.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction opened by the caller)
    table: 対象テーブル名 (config schema で識別子形式を検証済み)
    contacts: 挿入するバッチ
    defaults: status_id / lead_type の固定値
    metrics_callback: receives BatchMetrics once the statement succeeded. Not
        invoked for an empty batch or a failed statement.

    Raises
    ------
    InsertFailedError: any driver error while executing the statement
    """
    if not contacts:
        return InsertResult(inserted_rows=0)
    defaults = defaults or ContactDefaults()

    cols_sql = ",".join(f'"{c}"' for c in CONTACT_COLUMNS)
    base_sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    rows = [contact_values(c, defaults) for c in contacts]

    start_time = time.time()
    try:
        execute_values(cursor, base_sql, rows, page_size=len(rows))
    except Exception as e:
        raise InsertFailedError(str(e), batch_size=len(rows)) from e
    end_time = time.time()

    if metrics_callback is not None:
        metrics_callback(
            BatchMetrics(
                batch_size=len(rows),
                elapsed_seconds=end_time - start_time,
                start_time=start_time,
                end_time=end_time,
            )
        )

    return InsertResult(inserted_rows=len(rows))
