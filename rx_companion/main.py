import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rx_companion.api.routes_intake import router as intake_router
from rx_companion.api.routes_medications import router as medications_router
from rx_companion.api.routes_reminders import router as reminders_router
from rx_companion.api.routes_schedule import router as schedule_router
from rx_companion.core.config import REMINDER_TICK_SECONDS
from rx_companion.core.errors import PersistenceError
from rx_companion.core.logging_config import setup_logging
from rx_companion.core.permissions import NOTIFICATIONS, PERMISSIONS
from rx_companion.db.medication_store import get_store
from rx_companion.services.reminders import get_scheduler, resync_reminders

setup_logging()
logger = logging.getLogger(__name__)

async def _reminder_tick(interval_s: int) -> None:
    while True:
        try:
            get_scheduler().fire_due()
        except Exception:
            logger.exception("Reminder tick failed")
        await asyncio.sleep(interval_s)

def _restore_reminders() -> None:
    # scheduler triggers live in memory; rebuild them from the stored records
    try:
        meds = get_store().list()
    except PersistenceError as e:
        logger.error("Could not restore reminders: %s", e)
        return
    results = resync_reminders(meds)
    failed = [mid for mid, r in results.items() if not r.ok]
    logger.info("Restored reminders for %d medication(s), %d failed", len(results) - len(failed), len(failed))

@asynccontextmanager
async def lifespan(app: FastAPI):
    # permissions are acquired once here; later requests only query them
    PERMISSIONS.register(NOTIFICATIONS, get_scheduler().request_permission)
    PERMISSIONS.acquire(NOTIFICATIONS)
    _restore_reminders()

    tick = None
    if REMINDER_TICK_SECONDS > 0:
        tick = asyncio.create_task(_reminder_tick(REMINDER_TICK_SECONDS))
    logger.info("Prescription Companion started")
    try:
        yield
    finally:
        if tick is not None:
            tick.cancel()

app = FastAPI(title="Prescription Companion", version="1.0", lifespan=lifespan)

app.include_router(intake_router)
app.include_router(medications_router)
app.include_router(schedule_router)
app.include_router(reminders_router)

@app.get("/health")
def health():
    return {"ok": True}

@app.get("/")
def root():
    return {"ok": True, "service": "Prescription Companion"}
