from datetime import date
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from rx_companion.core.config import DEFAULT_DOSE_TIME
from rx_companion.utils.clock import is_hhmm

Frequency = Literal["daily", "twice-daily", "thrice-daily", "weekly"]
FREQUENCIES = ("daily", "twice-daily", "thrice-daily", "weekly")

IntakeStatus = Literal["REVIEW", "SAVED", "CANCELLED"]
ReviewAction = Literal["edit", "rescan", "save", "cancel"]
NextStep = Literal["NEED_REVIEW", "DONE"]

def _today() -> str:
    return date.today().isoformat()

class Medication(BaseModel):
    id: str
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: Frequency = "daily"
    times: List[str] = Field(..., min_length=1, description='24-hour "HH:MM" entries, edit order')
    start_date: str = Field(default_factory=_today, description="YYYY-MM-DD")
    instructions: Optional[str] = None
    image_uri: Optional[str] = None

    @field_validator("name", "dosage")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("times")
    @classmethod
    def _valid_times(cls, v: List[str]) -> List[str]:
        bad = [t for t in v if not is_hhmm(t)]
        if bad:
            raise ValueError(f"times must be HH:MM, got {bad}")
        return v

    @field_validator("start_date")
    @classmethod
    def _valid_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

class DoseEvent(BaseModel):
    medication_id: str
    time: str  # "HH:MM"
    name: str
    dosage: str
    frequency: Frequency = "daily"
    instructions: Optional[str] = None
    image_uri: Optional[str] = None
    taken: bool = False

class ExtractedFields(BaseModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[Frequency] = None
    times: Optional[List[str]] = None
    instructions: Optional[str] = None

    def set_fields(self) -> List[str]:
        return [k for k, v in self.model_dump().items() if v is not None]

    def is_empty(self) -> bool:
        return not self.set_fields()

class MedicationDraft(BaseModel):
    """Editable, possibly invalid record; only validated on save."""
    name: str = ""
    dosage: str = ""
    frequency: Frequency = "daily"
    times: List[str] = Field(default_factory=lambda: [DEFAULT_DOSE_TIME])
    start_date: str = Field(default_factory=_today)
    instructions: str = ""
    image_uri: Optional[str] = None

class DraftEdits(BaseModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[Frequency] = None
    times: Optional[List[str]] = None
    start_date: Optional[str] = None
    instructions: Optional[str] = None

class TimeOp(BaseModel):
    op: Literal["add", "update", "remove"]
    index: Optional[int] = None
    value: Optional[str] = None

# ---------------------------
# Reminders
# ---------------------------
class ReminderPayload(BaseModel):
    medication_id: str
    name: str
    dosage: str
    time: str

class ReminderTrigger(BaseModel):
    identifier: str
    daily_time: str  # "HH:MM", fires once per calendar day
    payload: ReminderPayload
    last_fired_on: Optional[str] = None

class ReminderResult(BaseModel):
    ok: bool
    scheduled: List[str] = Field(default_factory=list)
    error: Optional[str] = None

class SaveResult(BaseModel):
    medication: Medication
    reminders: ReminderResult
    warnings: List[str] = Field(default_factory=list)

class FireDueRequest(BaseModel):
    at: Optional[str] = None  # "HH:MM"; defaults to now

# ---------------------------
# Intake API
# ---------------------------
class IntakeStartRequest(BaseModel):
    image_uri: Optional[str] = None
    raw_text: Optional[str] = None  # already-recognized label text

class IntakeReviewRequest(BaseModel):
    draft_id: str
    action: ReviewAction = "edit"
    edits: Optional[DraftEdits] = None
    time_ops: List[TimeOp] = Field(default_factory=list)
    raw_text: Optional[str] = None
    image_uri: Optional[str] = None

class IntakeResponse(BaseModel):
    draft_id: str
    status: IntakeStatus
    next_step: Optional[NextStep] = None
    draft: MedicationDraft
    extracted: ExtractedFields = Field(default_factory=ExtractedFields)
    applied_fields: List[str] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    medication: Optional[Medication] = None
    reminders: Optional[ReminderResult] = None

class ExtractRequest(BaseModel):
    raw_text: str

# ---------------------------
# Schedule / adherence API
# ---------------------------
class ScheduleResponse(BaseModel):
    session_id: str
    date: str
    events: List[DoseEvent]

class MarkTakenRequest(BaseModel):
    session_id: str
    medication_id: str
    time: str

class AdherenceSummary(BaseModel):
    session_id: Optional[str] = None
    total: int
    taken: int
    pending: int
    adherence_rate: float

class PermissionsResponse(BaseModel):
    permissions: Dict[str, str]

class ResyncResponse(BaseModel):
    results: Dict[str, ReminderResult]

class FireDueResponse(BaseModel):
    fired: List[ReminderPayload]

class AuditResponse(BaseModel):
    draft_id: str
    audit: List[Dict[str, Any]]
