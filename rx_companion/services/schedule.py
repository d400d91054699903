import logging
from typing import Iterable, List

from rx_companion.schemas.models import DoseEvent, Medication
from rx_companion.services.recurrence import expand_times

logger = logging.getLogger(__name__)

def dose_events_for(med: Medication) -> List[DoseEvent]:
    return [
        DoseEvent(
            medication_id=med.id,
            time=hhmm,
            name=med.name,
            dosage=med.dosage,
            frequency=med.frequency,
            instructions=med.instructions,
            image_uri=med.image_uri,
            taken=False,
        )
        for hhmm in expand_times(med.times)
    ]

def materialize_today(medications: Iterable[Medication]) -> List[DoseEvent]:
    """
    Today's dose events across all medications, one per (medication, distinct time),
    ordered by time; same-time events are ordered by medication id.
    Read-only: the medications are not touched and nothing is persisted.
    """
    events: List[DoseEvent] = []
    for med in medications:
        events.extend(dose_events_for(med))

    events.sort(key=lambda e: (e.time, e.medication_id))
    logger.debug("Materialized %d dose events", len(events))
    return events
