from datetime import date

from fastapi import APIRouter, HTTPException

from rx_companion.core.errors import PersistenceError
from rx_companion.db.medication_store import get_store
from rx_companion.schemas.models import AdherenceSummary, MarkTakenRequest, ScheduleResponse
from rx_companion.services.adherence import mark_taken, summarize
from rx_companion.services.adherence_store import get_events, open_session, replace_events
from rx_companion.services.schedule import materialize_today

router = APIRouter(prefix="/schedule", tags=["schedule"])

def _session_events(session_id: str):
    events = get_events(session_id)
    if events is None:
        raise HTTPException(status_code=404, detail="session_id not found")
    return events

@router.get("/today", response_model=ScheduleResponse)
def today():
    # every visit rematerializes: taken flags from earlier sessions don't carry over
    try:
        events = materialize_today(get_store().list())
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    day = date.today().isoformat()
    session_id = open_session(events, day)
    return ScheduleResponse(session_id=session_id, date=day, events=events)

@router.post("/mark", response_model=ScheduleResponse)
def mark(req: MarkTakenRequest):
    events = mark_taken(_session_events(req.session_id), req.medication_id, req.time)
    replace_events(req.session_id, events)
    return ScheduleResponse(session_id=req.session_id, date=date.today().isoformat(), events=events)

@router.get("/summary", response_model=AdherenceSummary)
def summary(session_id: str):
    out = summarize(_session_events(session_id))
    out.session_id = session_id
    return out
