from typing import Any, Dict, List, Optional, TypedDict

class IntakeState(TypedDict, total=False):
    # identity (draft_id doubles as LangGraph thread_id)
    draft_id: str

    # inputs
    image_uri: Optional[str]
    raw_text: str                   # recognized label text

    # working state
    extracted: Dict[str, Any]       # ExtractedFields dict
    applied_fields: List[str]
    draft: Dict[str, Any]           # MedicationDraft dict
    review_action: str              # edit | rescan | save | cancel
    errors: List[str]
    warnings: List[str]

    # outputs
    status: str                     # REVIEW | SAVED | CANCELLED
    medication: Dict[str, Any]
    reminders: Dict[str, Any]
    audit: List[Dict[str, Any]]
