import uuid
from datetime import date
from typing import Dict, List, Optional

from rx_companion.schemas.models import DoseEvent

# session_id -> (schedule date, events); volatile, one entry per schedule view
SCHEDULE_SESSIONS: Dict[str, Dict[str, object]] = {}

# older views of the same day are evicted first
MAX_SESSIONS = 8

def _session_id() -> str:
    return "sess_" + uuid.uuid4().hex[:12]

def _evict(day: str) -> None:
    for sid in [s for s, sess in SCHEDULE_SESSIONS.items() if sess["date"] != day]:
        del SCHEDULE_SESSIONS[sid]
    while len(SCHEDULE_SESSIONS) >= MAX_SESSIONS:
        del SCHEDULE_SESSIONS[next(iter(SCHEDULE_SESSIONS))]

def open_session(events: List[DoseEvent], day: Optional[str] = None) -> str:
    day = day or date.today().isoformat()
    _evict(day)
    session_id = _session_id()
    SCHEDULE_SESSIONS[session_id] = {"date": day, "events": list(events)}
    return session_id

def get_events(session_id: str) -> Optional[List[DoseEvent]]:
    session = SCHEDULE_SESSIONS.get(session_id)
    return None if session is None else session["events"]  # type: ignore[return-value]

def replace_events(session_id: str, events: List[DoseEvent]) -> None:
    SCHEDULE_SESSIONS[session_id]["events"] = list(events)

def close_session(session_id: str) -> None:
    SCHEDULE_SESSIONS.pop(session_id, None)

def clear_sessions() -> None:
    SCHEDULE_SESSIONS.clear()
