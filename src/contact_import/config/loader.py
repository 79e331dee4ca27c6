from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_BATCH_SIZE,
    ContactDefaults,
    DatabaseConfig,
    DuplicateCheck,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default: config/import.yml)
- Validate against config_schema.json (additionalProperties: false)
- Apply defaults and build the typed ImportConfig
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing / not valid JSON, or the
            config data fails schema validation (unknown keys, wrong types...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_database(db_raw: dict[str, Any]) -> DatabaseConfig:
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        min_connections=db_raw.get("min_connections", 1),
        max_connections=db_raw.get("max_connections", 4),
    )
    if db.max_connections < db.min_connections:
        raise ConfigError(
            f"database.max_connections ({db.max_connections}) "
            f"must be >= min_connections ({db.min_connections})"
        )
    return db


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    defaults_raw = data.get("contact_defaults", {})
    defaults = ContactDefaults(
        status_id=defaults_raw.get("status_id", 4),
        lead_type=defaults_raw.get("lead_type", "sales"),
    )
    return ImportConfig(
        source_directory=data.get("source_directory"),
        contacts_table=data.get("contacts_table", "contacts"),
        log_table=data.get("log_table", "import_logs"),
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        duplicate_check=DuplicateCheck(data.get("duplicate_check", "lookup")),
        workers=data.get("workers", 1),
        keep_na_strings=data.get("keep_na_strings"),
        error_log_dir=data.get("error_log_dir", "./logs"),
        contact_defaults=defaults,
        database=_build_database(data.get("database", {})),
    )
