# rx_companion/api/routes_intake.py
import uuid
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from langgraph.types import Command

from rx_companion.agent.graph import get_intake_graph
from rx_companion.schemas.models import (
    AuditResponse,
    ExtractedFields,
    IntakeResponse,
    IntakeReviewRequest,
    IntakeStartRequest,
    Medication,
    MedicationDraft,
    ReminderResult,
)
from rx_companion.services.drafts import missing_fields

router = APIRouter(prefix="/intake", tags=["intake"])

def _config(draft_id: str):
    return {"configurable": {"thread_id": draft_id}}

def _snapshot(draft_id: str):
    snap = get_intake_graph().get_state(_config(draft_id))
    state = snap.values or {}
    if not state:
        raise HTTPException(status_code=404, detail="draft_id not found")
    return snap, state

def _awaiting_review(snap) -> bool:
    return "review" in (snap.next or ())

def _response(draft_id: str) -> IntakeResponse:
    snap, state = _snapshot(draft_id)
    draft = MedicationDraft(**state["draft"]) if state.get("draft") else MedicationDraft()
    return IntakeResponse(
        draft_id=draft_id,
        status=state.get("status", "REVIEW"),
        next_step="NEED_REVIEW" if _awaiting_review(snap) else "DONE",
        draft=draft,
        extracted=ExtractedFields(**(state.get("extracted") or {})),
        applied_fields=state.get("applied_fields", []),
        missing_fields=missing_fields(draft),
        errors=state.get("errors", []),
        warnings=state.get("warnings", []),
        medication=Medication(**state["medication"]) if state.get("medication") else None,
        reminders=ReminderResult(**state["reminders"]) if state.get("reminders") else None,
    )

@router.post("/start", response_model=IntakeResponse)
def intake_start(req: IntakeStartRequest):
    draft_id = "draft_" + uuid.uuid4().hex

    initial_state = {
        "draft_id": draft_id,
        "image_uri": req.image_uri,
        "raw_text": req.raw_text or "",
        "audit": [],
    }
    get_intake_graph().invoke(initial_state, config=_config(draft_id))
    return _response(draft_id)

@router.post("/review", response_model=IntakeResponse)
def intake_review(req: IntakeReviewRequest):
    snap, _ = _snapshot(req.draft_id)
    if not _awaiting_review(snap):
        raise HTTPException(status_code=409, detail="Draft is not waiting for review.")

    resume_payload: Dict[str, Any] = {"action": req.action}
    if req.edits:
        resume_payload["edits"] = req.edits.model_dump(exclude_none=True)
    if req.time_ops:
        resume_payload["time_ops"] = [op.model_dump() for op in req.time_ops]
    if req.raw_text:
        resume_payload["raw_text"] = req.raw_text
    if req.image_uri:
        resume_payload["image_uri"] = req.image_uri

    get_intake_graph().invoke(Command(resume=resume_payload), config=_config(req.draft_id))
    return _response(req.draft_id)

@router.get("/{draft_id}", response_model=IntakeResponse)
def intake_get(draft_id: str):
    return _response(draft_id)

@router.get("/{draft_id}/audit", response_model=AuditResponse)
def intake_audit(draft_id: str):
    _, state = _snapshot(draft_id)
    return AuditResponse(draft_id=draft_id, audit=state.get("audit", []))
