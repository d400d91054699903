from typing import List, Sequence

from rx_companion.schemas.models import AdherenceSummary, DoseEvent

def mark_taken(events: Sequence[DoseEvent], medication_id: str, time: str) -> List[DoseEvent]:
    """
    Return a new list where the (medication_id, time) event is taken.
    Other entries are passed through as-is; no match -> unchanged copy.
    """
    return [
        e.model_copy(update={"taken": True})
        if e.medication_id == medication_id and e.time == time and not e.taken
        else e
        for e in events
    ]

def summarize(events: Sequence[DoseEvent]) -> AdherenceSummary:
    total = len(events)
    taken = sum(1 for e in events if e.taken)
    rate = (taken / total) if total else 0.0
    return AdherenceSummary(
        total=total,
        taken=taken,
        pending=total - taken,
        adherence_rate=round(rate, 3),
    )
