import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional

from rx_companion.core.config import NOTIFICATIONS_ENABLED
from rx_companion.core.errors import ReminderSchedulingError
from rx_companion.core.permissions import NOTIFICATIONS, PERMISSIONS, CapabilityRegistry
from rx_companion.schemas.models import Medication, ReminderPayload, ReminderResult, ReminderTrigger
from rx_companion.services.recurrence import expand_times
from rx_companion.utils.clock import is_hhmm

logger = logging.getLogger(__name__)

Deliver = Callable[[ReminderPayload], None]

def trigger_identifier(medication_id: str, hhmm: str) -> str:
    return f"{medication_id}@{hhmm}"

def log_delivery(payload: ReminderPayload) -> None:
    logger.info("Reminder: time to take %s (%s) at %s", payload.name, payload.dosage, payload.time)

class LocalReminderScheduler:
    """
    In-process stand-in for the OS notification scheduler: daily triggers keyed
    by identifier, fired by `fire_due` at most once per calendar day.
    """

    def __init__(self, notifications_enabled: bool = NOTIFICATIONS_ENABLED):
        self.notifications_enabled = notifications_enabled
        self._triggers: Dict[str, ReminderTrigger] = {}

    def request_permission(self) -> bool:
        return self.notifications_enabled

    def register(self, trigger: ReminderTrigger) -> str:
        if not is_hhmm(trigger.daily_time):
            raise ReminderSchedulingError(f"Cannot schedule at {trigger.daily_time!r}")
        # re-registering an identifier replaces the old trigger
        self._triggers[trigger.identifier] = trigger
        return trigger.identifier

    def cancel(self, identifier: str) -> None:
        self._triggers.pop(identifier, None)

    def triggers(self) -> List[ReminderTrigger]:
        return sorted(self._triggers.values(), key=lambda t: (t.daily_time, t.identifier))

    def fire_due(self, now: Optional[datetime] = None, deliver: Optional[Deliver] = None) -> List[ReminderPayload]:
        now = now or datetime.now()
        hhmm = now.strftime("%H:%M")
        today = now.date().isoformat()
        deliver = deliver or log_delivery

        fired: List[ReminderPayload] = []
        for trig in self.triggers():
            if trig.daily_time != hhmm or trig.last_fired_on == today:
                continue
            trig.last_fired_on = today
            deliver(trig.payload)
            fired.append(trig.payload)
        return fired

    def clear(self) -> None:
        self._triggers.clear()

@lru_cache(maxsize=1)
def get_scheduler() -> LocalReminderScheduler:
    return LocalReminderScheduler()

def schedule_reminders(
    med: Medication,
    scheduler=None,
    permissions: Optional[CapabilityRegistry] = None,
) -> ReminderResult:
    """
    One daily trigger per distinct dose time. Failures are reported in the
    result, never raised; a partial registration is rolled back.
    """
    scheduler = scheduler or get_scheduler()
    permissions = permissions or PERMISSIONS

    if not permissions.is_granted(NOTIFICATIONS):
        logger.warning("Notifications not permitted; no reminders for %s", med.id)
        return ReminderResult(ok=False, error="Notification permission not granted; reminders may not fire.")

    scheduled: List[str] = []
    try:
        for hhmm in expand_times(med.times):
            trigger = ReminderTrigger(
                identifier=trigger_identifier(med.id, hhmm),
                daily_time=hhmm,
                payload=ReminderPayload(medication_id=med.id, name=med.name, dosage=med.dosage, time=hhmm),
            )
            scheduled.append(scheduler.register(trigger))
    except Exception as e:
        logger.warning("Reminder scheduling failed for %s: %s", med.id, e)
        for identifier in scheduled:
            scheduler.cancel(identifier)
        return ReminderResult(ok=False, error=f"Reminders could not be scheduled: {e}")

    logger.info("Scheduled %d reminder(s) for %s", len(scheduled), med.id)
    return ReminderResult(ok=True, scheduled=scheduled)

def cancel_reminders(med: Medication, scheduler=None) -> List[str]:
    scheduler = scheduler or get_scheduler()
    cancelled = [trigger_identifier(med.id, hhmm) for hhmm in expand_times(med.times)]
    for identifier in cancelled:
        scheduler.cancel(identifier)
    return cancelled

def resync_reminders(
    meds: Iterable[Medication],
    scheduler=None,
    permissions: Optional[CapabilityRegistry] = None,
) -> Dict[str, ReminderResult]:
    return {m.id: schedule_reminders(m, scheduler, permissions) for m in meds}
