# rx_companion/utils/clock.py
from __future__ import annotations

import re
from typing import Optional

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

def is_hhmm(value: str) -> bool:
    return bool(_HHMM_RE.match(value or ""))

def hhmm_to_minutes(hhmm: str) -> int:
    h, m = map(int, hhmm.split(":"))
    return h * 60 + m

def minutes_to_hhmm(total_minutes: int) -> str:
    total_minutes = max(0, min(23 * 60 + 59, total_minutes))
    h = total_minutes // 60
    m = total_minutes % 60
    return f"{h:02d}:{m:02d}"

def to_24h(hour: int, minute: int, meridiem: Optional[str] = None) -> Optional[str]:
    """
    Normalize a clock reading to "HH:MM".
    `meridiem` is "a"/"p" (any case) or None for a 24-hour reading.
    Returns None for readings that can't be a time of day (e.g. 14:00 pm).
    """
    if not 0 <= minute <= 59:
        return None
    if meridiem:
        m = meridiem.lower()[0]
        if not 1 <= hour <= 12:
            return None
        if m == "a":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
    elif not 0 <= hour <= 23:
        return None
    return minutes_to_hhmm(hour * 60 + minute)
