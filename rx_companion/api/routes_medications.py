from typing import List

from fastapi import APIRouter, HTTPException

from rx_companion.core.errors import DraftValidationError, NotFoundError, PersistenceError
from rx_companion.db.medication_store import get_store
from rx_companion.schemas.models import ExtractedFields, ExtractRequest, Medication, MedicationDraft, SaveResult
from rx_companion.services.extraction import extract_fields
from rx_companion.services.intake import delete_medication, get_medication, save_medication

router = APIRouter(prefix="/medications", tags=["medications"])

@router.post("/extract", response_model=ExtractedFields)
def extract(req: ExtractRequest):
    return extract_fields(req.raw_text)

@router.get("", response_model=List[Medication])
def list_medications():
    try:
        return get_store().list()
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/{medication_id}", response_model=Medication)
def read_medication(medication_id: str):
    try:
        return get_medication(medication_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.post("", response_model=SaveResult, status_code=201)
def create_medication(draft: MedicationDraft):
    try:
        return save_medication(draft)
    except DraftValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.delete("/{medication_id}", response_model=Medication)
def remove_medication(medication_id: str):
    try:
        return delete_medication(medication_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
