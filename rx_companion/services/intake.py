import logging
from typing import List, Optional, Tuple

from rx_companion.core.errors import NotFoundError, RecognitionError
from rx_companion.core.permissions import CapabilityRegistry
from rx_companion.db.medication_store import MedicationStore, get_store
from rx_companion.schemas.models import ExtractedFields, Medication, MedicationDraft, SaveResult
from rx_companion.services.drafts import build_medication
from rx_companion.services.extraction import extract_fields
from rx_companion.services.ocr import recognize
from rx_companion.services.reminders import cancel_reminders, schedule_reminders

logger = logging.getLogger(__name__)

RECOGNITION_WARNING = "Could not read the label. Please enter the details manually."
NOTHING_EXTRACTED_WARNING = "No medication details were recognized. Please enter them manually."

def recognize_and_extract(image_uri: str) -> Tuple[str, ExtractedFields, List[str]]:
    """OCR + field extraction; recognition failures degrade to an empty result."""
    try:
        raw_text = recognize(image_uri)
    except RecognitionError as e:
        logger.warning("Recognition failed for %s: %s", image_uri, e)
        return "", ExtractedFields(), [RECOGNITION_WARNING]

    extracted = extract_fields(raw_text)
    warnings = [NOTHING_EXTRACTED_WARNING] if extracted.is_empty() else []
    return raw_text, extracted, warnings

def save_medication(
    draft: MedicationDraft,
    store: Optional[MedicationStore] = None,
    scheduler=None,
    permissions: Optional[CapabilityRegistry] = None,
) -> SaveResult:
    """
    Validate -> persist -> schedule reminders.
    DraftValidationError is raised before the store or scheduler is touched;
    PersistenceError propagates; reminder failures only produce a warning.
    """
    med = build_medication(draft)

    store = store or get_store()
    store.put(med)

    reminders = schedule_reminders(med, scheduler, permissions)
    warnings = [reminders.error] if not reminders.ok and reminders.error else []
    logger.info("Saved medication %s (%s), reminders ok=%s", med.id, med.name, reminders.ok)
    return SaveResult(medication=med, reminders=reminders, warnings=warnings)

def get_medication(medication_id: str, store: Optional[MedicationStore] = None) -> Medication:
    store = store or get_store()
    med = store.get(medication_id)
    if med is None:
        raise NotFoundError(f"medication {medication_id} not found")
    return med

def delete_medication(
    medication_id: str,
    store: Optional[MedicationStore] = None,
    scheduler=None,
) -> Medication:
    store = store or get_store()
    med = get_medication(medication_id, store)
    cancelled = cancel_reminders(med, scheduler)
    store.delete(medication_id)
    logger.info("Deleted medication %s, cancelled %d reminder(s)", medication_id, len(cancelled))
    return med
