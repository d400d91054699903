from datetime import date

import pytest

from rx_companion.core.errors import DraftError, DraftValidationError, LastTimeRemovalError
from rx_companion.schemas.models import DraftEdits, ExtractedFields, MedicationDraft, TimeOp
from rx_companion.services.drafts import (
    add_time,
    apply_edits,
    apply_time_op,
    build_medication,
    merge_extracted,
    missing_fields,
    new_draft,
    remove_time,
    update_time,
    validate_draft,
)


def test_new_draft_defaults():
    d = new_draft(date(2024, 3, 1))
    assert d.name == "" and d.dosage == ""
    assert d.frequency == "daily"
    assert d.times == ["09:00"]
    assert d.start_date == "2024-03-01"
    assert missing_fields(d) == ["name", "dosage"]


def test_merge_fills_default_fields():
    extracted = ExtractedFields(name="Amoxicillin", dosage="500mg", frequency="thrice-daily",
                                times=["08:00", "14:00", "20:00"], instructions="Take with food")
    draft, applied = merge_extracted(new_draft(), extracted, image_uri="file:///label.jpg")
    assert applied == ["name", "dosage", "frequency", "times", "instructions"]
    assert draft.name == "Amoxicillin"
    assert draft.times == ["08:00", "14:00", "20:00"]
    assert draft.image_uri == "file:///label.jpg"


def test_merge_never_clobbers_user_edits():
    draft = new_draft().model_copy(update={"name": "My Med", "times": ["07:00"], "frequency": "weekly"})
    extracted = ExtractedFields(name="Other", dosage="5mg", frequency="daily", times=["21:00"])
    merged, applied = merge_extracted(draft, extracted)
    assert merged.name == "My Med"
    assert merged.times == ["07:00"]
    assert merged.frequency == "weekly"
    assert merged.dosage == "5mg"
    assert applied == ["dosage"]


def test_merge_with_empty_extraction_is_noop():
    draft = new_draft()
    merged, applied = merge_extracted(draft, ExtractedFields())
    assert merged == draft
    assert applied == []


def test_apply_edits_always_wins():
    draft = new_draft().model_copy(update={"name": "Extracted"})
    out = apply_edits(draft, DraftEdits(name="Typed", dosage="1g"))
    assert (out.name, out.dosage) == ("Typed", "1g")
    assert apply_edits(draft, None) is draft


def test_apply_edits_rejects_empty_times():
    with pytest.raises(LastTimeRemovalError):
        apply_edits(new_draft(), DraftEdits(times=[]))


def test_time_editing():
    d = add_time(new_draft())
    assert d.times == ["09:00", "12:00"]
    d = update_time(d, 1, "21:00")
    assert d.times == ["09:00", "21:00"]
    d = remove_time(d, 0)
    assert d.times == ["21:00"]


def test_removing_last_time_is_rejected():
    d = new_draft()
    with pytest.raises(LastTimeRemovalError):
        remove_time(d, 0)
    assert d.times == ["09:00"]


def test_bad_index_is_rejected():
    with pytest.raises(DraftError):
        update_time(new_draft(), 3, "10:00")
    with pytest.raises(DraftError):
        apply_time_op(new_draft(), TimeOp(op="remove"))


def test_apply_time_op_dispatch():
    d = apply_time_op(new_draft(), TimeOp(op="add", value="18:00"))
    d = apply_time_op(d, TimeOp(op="update", index=0, value="07:00"))
    assert d.times == ["07:00", "18:00"]
    d = apply_time_op(d, TimeOp(op="remove", index=1))
    assert d.times == ["07:00"]


def test_validate_draft_reports_every_problem():
    d = MedicationDraft(name="  ", dosage="", times=["9am", "08:00"], start_date="yesterday")
    errors = validate_draft(d)
    assert "name is required" in errors
    assert "dosage is required" in errors
    assert any("9am" in e for e in errors)
    assert any("start_date" in e for e in errors)


def test_build_medication_rejects_empty_name():
    with pytest.raises(DraftValidationError) as exc:
        build_medication(MedicationDraft(name="", dosage="5mg"))
    assert exc.value.errors == ["name is required"]


def test_build_medication_assigns_fresh_ids_and_normalizes():
    d = MedicationDraft(name=" Losartan ", dosage="50mg ", instructions="  ", times=["21:00", "08:00"])
    a = build_medication(d)
    b = build_medication(d)
    assert a.id != b.id and a.id.startswith("med_")
    assert a.name == "Losartan" and a.dosage == "50mg"
    assert a.instructions is None
    assert a.times == ["21:00", "08:00"]  # edit order preserved
