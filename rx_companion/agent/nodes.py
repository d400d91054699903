# rx_companion/agent/nodes.py
import logging
from typing import Any, Dict, List

from langgraph.types import interrupt

from rx_companion.agent.state import IntakeState
from rx_companion.core.errors import DraftError, DraftValidationError, PersistenceError, RecognitionError
from rx_companion.schemas.models import DraftEdits, MedicationDraft, TimeOp
from rx_companion.services.drafts import apply_edits, apply_time_op, merge_extracted, missing_fields, new_draft
from rx_companion.services.extraction import extract_fields
from rx_companion.services.intake import NOTHING_EXTRACTED_WARNING, RECOGNITION_WARNING, save_medication
from rx_companion.services.ocr import recognize

logger = logging.getLogger(__name__)

def _audit(state: IntakeState, event: str, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    audit = list(state.get("audit") or [])
    audit.append({"event": event, **(extra or {})})
    return {"audit": audit}

def _draft(state: IntakeState) -> MedicationDraft:
    return MedicationDraft(**state["draft"]) if state.get("draft") else new_draft()

def recognize_node(state: IntakeState) -> Dict[str, Any]:
    image_uri = state.get("image_uri")
    if (state.get("raw_text") or "").strip() or not image_uri:
        return {"warnings": [], **_audit(state, "recognize.skip")}

    try:
        raw_text = recognize(image_uri)
    except RecognitionError as e:
        logger.warning("Recognition failed for draft %s: %s", state.get("draft_id"), e)
        return {
            "raw_text": "",
            "warnings": [RECOGNITION_WARNING],
            **_audit(state, "recognize.failed", {"error": str(e)}),
        }
    return {"raw_text": raw_text, "warnings": [], **_audit(state, "recognize.done", {"chars": len(raw_text)})}

def extract_node(state: IntakeState) -> Dict[str, Any]:
    raw_text = state.get("raw_text") or ""
    extracted = extract_fields(raw_text)
    draft, applied = merge_extracted(_draft(state), extracted, state.get("image_uri"))

    warnings = list(state.get("warnings") or [])
    if raw_text.strip() and extracted.is_empty():
        warnings.append(NOTHING_EXTRACTED_WARNING)

    return {
        "extracted": extracted.model_dump(),
        "applied_fields": applied,
        "draft": draft.model_dump(),
        "warnings": warnings,
        "errors": [],
        "status": "REVIEW",
        **_audit(state, "extract.done", {"fields": extracted.set_fields(), "applied": applied}),
    }

def review_node(state: IntakeState) -> Dict[str, Any]:
    """
    Interrupt for user correction.
    Resume payload: {"action", "edits", "time_ops", "raw_text", "image_uri"}.
    """
    draft = _draft(state)
    payload = {
        "type": "REVIEW_REQUIRED",
        "draft_id": state.get("draft_id"),
        "draft": draft.model_dump(),
        "extracted": state.get("extracted", {}),
        "missing_fields": missing_fields(draft),
        "errors": state.get("errors", []),
        "warnings": state.get("warnings", []),
    }

    resume = interrupt(payload)
    resume = resume if isinstance(resume, dict) else {}
    action = resume.get("action") or "edit"

    errors: List[str] = []
    try:
        draft = apply_edits(draft, DraftEdits(**resume["edits"]) if resume.get("edits") else None)
    except DraftError as e:
        errors.append(str(e))
    for op in resume.get("time_ops") or []:
        try:
            draft = apply_time_op(draft, TimeOp(**op))
        except DraftError as e:
            errors.append(str(e))

    # never save on top of a rejected edit
    if errors and action == "save":
        action = "edit"

    updates: Dict[str, Any] = {
        "draft": draft.model_dump(),
        "review_action": action,
        "errors": errors,
        "warnings": [],
    }
    if action == "rescan":
        updates["raw_text"] = resume.get("raw_text") or ""
        if resume.get("image_uri"):
            updates["image_uri"] = resume["image_uri"]
    if action == "cancel":
        updates["status"] = "CANCELLED"

    updates.update(_audit(state, "review.resumed", {"action": action, "errors": len(errors)}))
    return updates

def route_after_review(state: IntakeState) -> str:
    return {
        "rescan": "recognize",
        "save": "save",
        "cancel": "end",
    }.get(state.get("review_action") or "edit", "review")

def save_node(state: IntakeState) -> Dict[str, Any]:
    draft = _draft(state)
    try:
        result = save_medication(draft)
    except DraftValidationError as e:
        return {"errors": e.errors, "status": "REVIEW", **_audit(state, "save.invalid", {"errors": e.errors})}
    except PersistenceError as e:
        logger.error("Save failed for draft %s: %s", state.get("draft_id"), e)
        return {"errors": [str(e)], "status": "REVIEW", **_audit(state, "save.failed", {"error": str(e)})}

    return {
        "medication": result.medication.model_dump(),
        "reminders": result.reminders.model_dump(),
        "warnings": result.warnings,
        "errors": [],
        "status": "SAVED",
        **_audit(state, "save.done", {"medication_id": result.medication.id, "reminders_ok": result.reminders.ok}),
    }

def route_after_save(state: IntakeState) -> str:
    return "end" if state.get("status") == "SAVED" else "review"
