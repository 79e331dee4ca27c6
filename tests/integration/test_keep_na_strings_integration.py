from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from contact_import.models.contact import FailureReason
from contact_import.services.orchestrator import ImportContext, import_file

"""keep_na_strings end to end: 'NA' is a surname / initials, not a missing value."""


def test_keep_na_strings_controls_missing_name(temp_workdir: Path, import_config, workbook_factory):
    path = workbook_factory(temp_workdir / "data" / "na.xlsx", {"S": [{"name": "NA", "phone": "1"}]})

    ctx = ImportContext.dry_run(import_config)
    (default,) = import_file(path, None, ctx)
    assert default.stats.inserted_rows == 0
    assert default.stats.failed_details[0].reason is FailureReason.MISSING_NAME

    ctx = ImportContext.dry_run(replace(import_config, keep_na_strings=["NA"]))
    (kept,) = import_file(path, None, ctx)
    assert kept.stats.inserted_rows == 1
    assert ctx.store.contacts[0].name == "NA"
