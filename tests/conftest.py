import os
import tempfile

# must be set before rx_companion.core.config is imported
os.environ["RX_DATA_DIR"] = tempfile.mkdtemp(prefix="rx_companion_tests_")
os.environ["REMINDER_TICK_SECONDS"] = "0"
os.environ["OCR_PROVIDER"] = "none"
os.environ["NOTIFICATIONS_ENABLED"] = "true"

import pytest

from rx_companion.core.permissions import NOTIFICATIONS, PERMISSIONS
from rx_companion.db.medication_store import MedicationStore, get_store
from rx_companion.schemas.models import Medication
from rx_companion.services.adherence_store import clear_sessions
from rx_companion.services.reminders import LocalReminderScheduler, get_scheduler


@pytest.fixture(autouse=True)
def clean_state():
    PERMISSIONS.reset()
    get_scheduler().clear()
    clear_sessions()
    store = get_store()
    with store.conn:
        store.conn.execute("DELETE FROM medications")
    yield


@pytest.fixture
def notifications_granted():
    PERMISSIONS.register(NOTIFICATIONS, lambda: True)
    PERMISSIONS.acquire(NOTIFICATIONS)
    return PERMISSIONS


@pytest.fixture
def memory_store():
    return MedicationStore.open(":memory:")


@pytest.fixture
def scheduler():
    return LocalReminderScheduler(notifications_enabled=True)


@pytest.fixture
def make_med():
    def _make(id="a", times=("09:00",), name=None, dosage="10mg", **kw):
        return Medication(
            id=id,
            name=name or f"Med {id}",
            dosage=dosage,
            times=list(times),
            start_date=kw.pop("start_date", "2024-01-01"),
            **kw,
        )
    return _make
