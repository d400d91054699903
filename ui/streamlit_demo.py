import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

st.set_page_config(page_title="Prescription Companion", layout="wide")

# ---------------------------
# Config
# ---------------------------
DEFAULT_API_BASE = "http://127.0.0.1:8000"
API_BASE = st.sidebar.text_input("API Base URL", value=DEFAULT_API_BASE)
UPLOAD_DIR = Path(st.sidebar.text_input("Upload dir (shared with API)", value="data/uploads"))

FREQUENCIES = ["daily", "twice-daily", "thrice-daily", "weekly"]

# ---------------------------
# Helpers (API)
# ---------------------------
def _check(r: requests.Response) -> Any:
    if r.status_code >= 400:
        raise RuntimeError(f"{r.status_code} {r.text}")
    return r.json()

def api_post(path: str, payload: Dict[str, Any]) -> Any:
    return _check(requests.post(f"{API_BASE}{path}", json=payload, timeout=120))

def api_get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    return _check(requests.get(f"{API_BASE}{path}", params=params or {}, timeout=20))

def api_delete(path: str) -> Any:
    return _check(requests.delete(f"{API_BASE}{path}", timeout=20))

def save_upload(upload) -> str:
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    dest = UPLOAD_DIR / f"{uuid.uuid4().hex}{Path(upload.name).suffix or '.jpg'}"
    dest.write_bytes(upload.getvalue())
    return str(dest.resolve())

# ---------------------------
# Session state
# ---------------------------
for key, default in (("intake", None), ("schedule", None)):
    if key not in st.session_state:
        st.session_state[key] = default

page = st.sidebar.radio("Screen", ["Medications", "Add Medication", "Today's Schedule"])

with st.sidebar:
    st.divider()
    try:
        perms = api_get("/permissions").get("permissions", {})
    except Exception:
        perms = {}
    if perms.get("notifications") != "GRANTED":
        st.warning("Notifications disabled: medication reminders won't fire.")
        if st.button("Retry notification permission"):
            try:
                api_post("/permissions/notifications/retry", {})
                st.rerun()
            except Exception as e:
                st.error(str(e))

# ---------------------------
# Medications
# ---------------------------
def render_medications() -> None:
    st.title("Medications")
    try:
        meds: List[Dict[str, Any]] = api_get("/medications")
    except Exception as e:
        st.error(str(e))
        return

    if not meds:
        st.info('No medications added yet. Open "Add Medication" to get started.')
        return

    for med in meds:
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            with c1:
                st.markdown(f"**{med['name']}** · {med['dosage']} · {med['frequency']}")
                st.caption(f"Times: {', '.join(med['times'])} · since {med['start_date']}")
                if med.get("instructions"):
                    st.write(med["instructions"])
            with c2:
                if st.button("Delete", key=f"del_{med['id']}"):
                    try:
                        api_delete(f"/medications/{med['id']}")
                        st.rerun()
                    except Exception as e:
                        st.error(str(e))

# ---------------------------
# Add Medication (intake workflow)
# ---------------------------
def _review(action: str, edits: Optional[Dict[str, Any]] = None, **extra: Any) -> None:
    intake = st.session_state.intake or {}
    payload = {"draft_id": intake["draft_id"], "action": action, **extra}
    if edits:
        payload["edits"] = edits
    try:
        st.session_state.intake = api_post("/intake/review", payload)
    except Exception as e:
        st.error(str(e))

def render_add_medication() -> None:
    st.title("Add Medication")

    st.subheader("Scan Prescription")
    upload = st.file_uploader("Label photo", type=["png", "jpg", "jpeg", "webp"])
    raw_text = st.text_area("...or paste label text", height=90,
                            placeholder="Amoxicillin 500mg\nTake 1 capsule three times daily with food")

    intake = st.session_state.intake
    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("Start new draft"):
            payload: Dict[str, Any] = {"raw_text": raw_text or None}
            if upload is not None:
                payload["image_uri"] = save_upload(upload)
            try:
                with st.spinner("Processing image..."):
                    st.session_state.intake = api_post("/intake/start", payload)
            except Exception as e:
                st.error(str(e))
            st.rerun()
    with col_b:
        if intake and intake.get("next_step") == "NEED_REVIEW" and st.button("Rescan into current draft"):
            extra: Dict[str, Any] = {"raw_text": raw_text or None}
            if upload is not None:
                extra["image_uri"] = save_upload(upload)
            _review("rescan", **extra)
            st.rerun()

    intake = st.session_state.intake
    if not intake:
        st.caption("Start a draft from a photo, pasted text, or nothing (manual entry).")
        return

    for w in intake.get("warnings", []):
        st.warning(w)
    for err in intake.get("errors", []):
        st.error(err)

    if intake.get("status") == "SAVED":
        med = intake["medication"]
        st.success(f"Saved {med['name']} ({med['dosage']}).")
        if st.button("Add another"):
            st.session_state.intake = None
            st.rerun()
        return
    if intake.get("status") == "CANCELLED":
        st.info("Draft cancelled.")
        return

    draft = intake["draft"]
    if intake.get("applied_fields"):
        st.info(f"Filled from label: {', '.join(intake['applied_fields'])}. Please verify.")

    name = st.text_input("Medication Name *", value=draft["name"], placeholder="e.g., Amoxicillin")
    dosage = st.text_input("Dosage *", value=draft["dosage"], placeholder="e.g., 500mg")
    frequency = st.radio("Frequency", FREQUENCIES, index=FREQUENCIES.index(draft["frequency"]), horizontal=True)

    st.write("Reminder Times")
    times_df = st.data_editor(
        pd.DataFrame({"time": draft["times"]}),
        num_rows="dynamic",
        use_container_width=True,
        key=f"times_{intake['draft_id']}",
    )
    times = [str(t).strip() for t in times_df["time"].fillna("").tolist() if str(t).strip()]

    start_date = st.text_input("Start date", value=draft["start_date"])
    instructions = st.text_area("Instructions", value=draft["instructions"], placeholder="e.g., Take with food")

    edits = {
        "name": name,
        "dosage": dosage,
        "frequency": frequency,
        "times": times,
        "start_date": start_date,
        "instructions": instructions,
    }

    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("Apply edits"):
            _review("edit", edits)
            st.rerun()
    with c2:
        if st.button("Save Medication", type="primary"):
            _review("save", edits)
            st.rerun()
    with c3:
        if st.button("Cancel draft"):
            _review("cancel")
            st.rerun()

# ---------------------------
# Today's Schedule
# ---------------------------
def render_schedule() -> None:
    st.title("Today's Schedule")
    if st.session_state.schedule is None or st.button("Refresh"):
        try:
            st.session_state.schedule = api_get("/schedule/today")
        except Exception as e:
            st.error(str(e))
            return

    sched = st.session_state.schedule
    events = sched.get("events", [])
    if not events:
        st.info("No medications scheduled for today.")
        return

    for ev in events:
        c1, c2 = st.columns([4, 1])
        with c1:
            mark = "✅" if ev["taken"] else "⏰"
            st.markdown(f"{mark} **{ev['time']}** · {ev['name']} ({ev['dosage']})")
            if ev.get("instructions"):
                st.caption(ev["instructions"])
        with c2:
            if not ev["taken"] and st.button("Mark taken", key=f"take_{ev['medication_id']}_{ev['time']}"):
                try:
                    st.session_state.schedule = api_post("/schedule/mark", {
                        "session_id": sched["session_id"],
                        "medication_id": ev["medication_id"],
                        "time": ev["time"],
                    })
                except Exception as e:
                    st.error(str(e))
                st.rerun()

    try:
        summary = api_get("/schedule/summary", {"session_id": sched["session_id"]})
        st.progress(summary["adherence_rate"], text=f"{summary['taken']}/{summary['total']} doses taken")
    except Exception as e:
        st.error(str(e))

if page == "Medications":
    render_medications()
elif page == "Add Medication":
    render_add_medication()
else:
    render_schedule()
