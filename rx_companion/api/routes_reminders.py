from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException

from rx_companion.core.permissions import PERMISSIONS
from rx_companion.db.medication_store import get_store
from rx_companion.schemas.models import (
    FireDueRequest,
    FireDueResponse,
    PermissionsResponse,
    ReminderTrigger,
    ResyncResponse,
)
from rx_companion.services.reminders import get_scheduler, resync_reminders
from rx_companion.utils.clock import is_hhmm

router = APIRouter(tags=["reminders"])

@router.get("/reminders", response_model=List[ReminderTrigger])
def list_reminders():
    return get_scheduler().triggers()

@router.post("/reminders/resync", response_model=ResyncResponse)
def resync():
    return ResyncResponse(results=resync_reminders(get_store().list()))

@router.post("/reminders/fire-due", response_model=FireDueResponse)
def fire_due(req: FireDueRequest):
    now = datetime.now()
    if req.at:
        if not is_hhmm(req.at):
            raise HTTPException(status_code=422, detail="at must be HH:MM")
        hh, mm = map(int, req.at.split(":"))
        now = now.replace(hour=hh, minute=mm, second=0, microsecond=0)
    return FireDueResponse(fired=get_scheduler().fire_due(now))

@router.get("/permissions", response_model=PermissionsResponse)
def permissions():
    return PermissionsResponse(permissions=PERMISSIONS.snapshot())

@router.post("/permissions/{name}/retry", response_model=PermissionsResponse)
def retry_permission(name: str):
    try:
        PERMISSIONS.retry(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown capability {name}")
    return PermissionsResponse(permissions=PERMISSIONS.snapshot())
