from __future__ import annotations

import json
import pathlib

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from contact_import.config.loader import SCHEMA_PATH

"""Config schema contract: the shipped sample config validates, unknown keys do not."""

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_sample_config_is_valid(schema):
    config = yaml.safe_load((PROJECT_ROOT / "config" / "import.yml").read_text(encoding="utf-8"))
    jsonschema.validate(config, schema)


def test_minimal_config_is_valid(schema):
    jsonschema.validate({}, schema)
    jsonschema.validate({"source_directory": "./data", "database": {"dsn": "postgresql://u@h/db"}}, schema)


@pytest.mark.parametrize(
    "config",
    [
        {"sheet_mappings": {}},
        {"contact_defaults": {"status_id": 4, "owner": "x"}},
        {"batch_size": -1},
        {"log_table": "1logs"},
        {"keep_na_strings": "NA"},
    ],
)
def test_invalid_configs_rejected(schema, config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, schema)


def test_schema_qualified_table_name_allowed(schema):
    jsonschema.validate({"contacts_table": "crm.contacts", "log_table": "audit.import_logs"}, schema)
