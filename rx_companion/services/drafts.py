import uuid
from datetime import date
from typing import List, Optional, Tuple

from rx_companion.core.config import DEFAULT_DOSE_TIME
from rx_companion.core.errors import DraftError, DraftValidationError, LastTimeRemovalError
from rx_companion.schemas.models import DraftEdits, ExtractedFields, Medication, MedicationDraft, TimeOp
from rx_companion.utils.clock import is_hhmm

NEW_TIME_DEFAULT = "12:00"

def _medication_id() -> str:
    return "med_" + uuid.uuid4().hex[:12]

def new_draft(today: Optional[date] = None) -> MedicationDraft:
    return MedicationDraft(start_date=(today or date.today()).isoformat())

def _is_default(field: str, value) -> bool:
    if field == "frequency":
        return value == "daily"
    if field == "times":
        return list(value or []) == [DEFAULT_DOSE_TIME]
    return not (value or "").strip()

def merge_extracted(
    draft: MedicationDraft,
    extracted: ExtractedFields,
    image_uri: Optional[str] = None,
) -> Tuple[MedicationDraft, List[str]]:
    """
    Fill draft fields from extracted ones. A field is only overwritten while the
    draft still holds its default value, so a rescan never clobbers user edits.
    Returns the new draft and the names of the fields that were applied.
    """
    updates = {}
    for field in extracted.set_fields():
        if _is_default(field, getattr(draft, field)):
            value = getattr(extracted, field)
            updates[field] = list(value) if field == "times" else value
    if image_uri:
        updates["image_uri"] = image_uri
    applied = [f for f in updates if f != "image_uri"]
    return draft.model_copy(update=updates), applied

def apply_edits(draft: MedicationDraft, edits: Optional[DraftEdits]) -> MedicationDraft:
    if edits is None:
        return draft
    updates = edits.model_dump(exclude_none=True)
    if "times" in updates and not updates["times"]:
        raise LastTimeRemovalError()
    return draft.model_copy(update=updates)

def add_time(draft: MedicationDraft, value: str = NEW_TIME_DEFAULT) -> MedicationDraft:
    return draft.model_copy(update={"times": [*draft.times, value]})

def update_time(draft: MedicationDraft, index: int, value: str) -> MedicationDraft:
    if not 0 <= index < len(draft.times):
        raise DraftError(f"No reminder time at position {index}")
    times = list(draft.times)
    times[index] = value
    return draft.model_copy(update={"times": times})

def remove_time(draft: MedicationDraft, index: int) -> MedicationDraft:
    if not 0 <= index < len(draft.times):
        raise DraftError(f"No reminder time at position {index}")
    if len(draft.times) <= 1:
        raise LastTimeRemovalError()
    return draft.model_copy(update={"times": [t for i, t in enumerate(draft.times) if i != index]})

def apply_time_op(draft: MedicationDraft, op: TimeOp) -> MedicationDraft:
    if op.op == "add":
        return add_time(draft, op.value or NEW_TIME_DEFAULT)
    if op.index is None:
        raise DraftError(f"time op {op.op!r} needs an index")
    if op.op == "update":
        return update_time(draft, op.index, op.value or "")
    return remove_time(draft, op.index)

def missing_fields(draft: MedicationDraft) -> List[str]:
    return [f for f in ("name", "dosage") if not getattr(draft, f).strip()]

def validate_draft(draft: MedicationDraft) -> List[str]:
    errors: List[str] = []
    for field in missing_fields(draft):
        errors.append(f"{field} is required")
    if not draft.times:
        errors.append("at least one reminder time is required")
    for t in draft.times:
        if not is_hhmm(t):
            errors.append(f"invalid time {t!r}; use 24-hour HH:MM")
    try:
        date.fromisoformat(draft.start_date)
    except ValueError:
        errors.append(f"invalid start_date {draft.start_date!r}; use YYYY-MM-DD")
    return errors

def build_medication(draft: MedicationDraft) -> Medication:
    errors = validate_draft(draft)
    if errors:
        raise DraftValidationError(errors)
    return Medication(
        id=_medication_id(),
        name=draft.name.strip(),
        dosage=draft.dosage.strip(),
        frequency=draft.frequency,
        times=list(draft.times),
        start_date=draft.start_date,
        instructions=draft.instructions.strip() or None,
        image_uri=draft.image_uri,
    )
