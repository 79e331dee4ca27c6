from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from contact_import.db.memory import MemoryContactStore
from contact_import.models.config_models import DuplicateCheck
from contact_import.models.contact import FailureReason, NormalizedContact
from contact_import.services.validator import RowValidator, missing_required_columns


def _c(name="Alice", phone="5550001"):
    return NormalizedContact(name=name, phone=phone)


def test_missing_required_columns_order():
    assert missing_required_columns(["email"]) == ["name", "phone"]
    assert missing_required_columns(["Phone", "email"]) == ["name"]
    assert missing_required_columns([" NAME ", "phone"]) == []


def test_lookup_policy_requires_lookup():
    with pytest.raises(ValueError):
        RowValidator(DuplicateCheck.LOOKUP)


def test_first_failure_wins():
    v = RowValidator(DuplicateCheck.NONE)
    # name も phone も無い → MISSING_NAME
    rec = v.validate(3, _c(name=None, phone=None))
    assert rec.row_number == 3
    assert rec.reason is FailureReason.MISSING_NAME
    assert v.validate(4, _c(phone=None)).reason is FailureReason.MISSING_PHONE


def test_duplicate_against_committed_phone():
    store = MemoryContactStore(existing_phones=["5550001"])
    v = RowValidator(DuplicateCheck.LOOKUP, store)
    rec = v.validate(1, _c())
    assert rec.reason is FailureReason.DUPLICATE_PHONE
    assert rec.to_dict() == {"row": 1, "reason": "Duplicate phone"}
    assert v.validate(2, _c(phone="5550002")) is None


def test_duplicate_against_pending_batch():
    v = RowValidator(DuplicateCheck.LOOKUP, MemoryContactStore())
    assert v.validate(2, _c(), pending_phones={"5550001"}).reason is FailureReason.DUPLICATE_PHONE


def test_none_policy_accepts_duplicates():
    v = RowValidator(DuplicateCheck.NONE, MemoryContactStore(existing_phones=["5550001"]))
    assert v.validate(1, _c(), pending_phones={"5550001"}) is None


def test_missing_phone_checked_before_lookup():
    class ExplodingLookup:
        def phone_exists(self, phone):  # pragma: no cover - must not be called
            raise AssertionError("lookup should not run")

    v = RowValidator(DuplicateCheck.LOOKUP, ExplodingLookup())
    assert v.validate(1, _c(phone=None)).reason is FailureReason.MISSING_PHONE


def test_none_policy_never_consults_lookup():
    lookup = MagicMock()
    v = RowValidator(DuplicateCheck.NONE, lookup)
    assert v.validate(1, _c()) is None
    lookup.phone_exists.assert_not_called()
