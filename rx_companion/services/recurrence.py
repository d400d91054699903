from typing import Iterable, List

from rx_companion.core.errors import InvalidTimeError
from rx_companion.utils.clock import is_hhmm

def expand_times(times: Iterable[str]) -> List[str]:
    """
    Distinct time-of-day strings of a medication's schedule, first-appearance
    order. Raises InvalidTimeError on anything that isn't 24-hour HH:MM.
    """
    out: List[str] = []
    seen = set()
    for t in times:
        if not is_hhmm(t):
            raise InvalidTimeError(t)
        if t in seen:
            continue
        seen.add(t)
        out.append(t)
    return out

def sorted_times(times: Iterable[str]) -> List[str]:
    # zero-padded HH:MM: lexical order == chronological order within a day
    return sorted(expand_times(times))
