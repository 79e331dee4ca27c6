from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Config dataclasses for the contact import tool.

These are built by src/contact_import/config/loader.py after schema validation;
everything downstream only sees these typed objects.
"""

DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    min_connections: int = 1
    max_connections: int = 4


class DuplicateCheck(Enum):
    """Duplicate-phone policy. Exactly one is active per run.

    - LOOKUP: point lookup against committed contacts + phones pending in the
      current sheet's batch
    - NONE: no pipeline-level duplicate suppression
    """
    LOOKUP = "lookup"
    NONE = "none"


@dataclass(frozen=True)
class ContactDefaults:
    """Fixed values for contact columns that never come from the sheet."""
    status_id: int = 4
    lead_type: str = "sales"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    source_directory: str | None = None  # CLI でパス未指定時の走査対象
    contacts_table: str = "contacts"
    log_table: str = "import_logs"
    batch_size: int = DEFAULT_BATCH_SIZE
    duplicate_check: DuplicateCheck = DuplicateCheck.LOOKUP
    workers: int = 1
    keep_na_strings: list[str] | None = None
    error_log_dir: str = "./logs"
    contact_defaults: ContactDefaults = field(default_factory=ContactDefaults)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
