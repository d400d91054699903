import logging
import re
from typing import List, Optional, Tuple

from rx_companion.schemas.models import ExtractedFields
from rx_companion.utils.clock import to_24h

logger = logging.getLogger(__name__)

_DOSAGE_RE = re.compile(
    r"(?<![\w.,])(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)[ \t]*(mcg|mg|ml|g|units?|tablets?|capsules?)\b",
    re.IGNORECASE,
)

# first (earliest) match in the text wins; ties go to the longer phrase
FREQ_PATTERNS = [
    ("daily", re.compile(r"\bonce\s+daily\b|\bonce\s+a\s+day\b|\bevery\s+day\b|\bdaily\b", re.I)),
    ("twice-daily", re.compile(
        r"\btwice\s+(?:daily|a\s+day)\b|\b(?:two|2)\s+times\s+(?:a\s+day|daily|per\s+day)\b"
        r"|\bbid\b|\bevery\s+12\s+hours\b", re.I)),
    ("thrice-daily", re.compile(r"\b(?:three|3)\s+times\b|\bthrice\b|\btid\b|\bevery\s+8\s+hours\b", re.I)),
    ("weekly", re.compile(r"\bweekly\b|\bonce\s+a\s+week\b|\bevery\s+week\b", re.I)),
]

_TIME_RE = re.compile(
    r"(?<![\d:.])(?P<h>[01]?\d|2[0-3]):(?P<m>[0-5]\d)(?![\d:])(?:\s*(?P<mer>[ap])\.?\s?m\b\.?)?"
    r"|(?<![\d.:])(?P<h2>1[0-2]|0?[1-9])(?:\.(?P<m2>[0-5]\d))?\s*(?P<mer2>[ap])\.?\s?m\b\.?",
    re.IGNORECASE,
)

_INSTR_TRIGGER_RE = re.compile(
    r"\b(?:take\s+(?:with|on)|avoid|do\s+not|don'?t"
    r"|(?:before|after)\s+(?:meals?|food|eating|breakfast|dinner)"
    r"|with\s+(?:food|meals?|water|milk)|on\s+an?\s+empty\s+stomach|at\s+bedtime)\b",
    re.IGNORECASE,
)
_CLAUSE_END_RE = re.compile(r"[;\n]|\.(?!\d)")

_BOILERPLATE_RE = re.compile(r"^(?:rx|refills?|qty|quantity|date|dr|patient|take)\b", re.I)
_NAME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9\- ]+)")

def find_dosage(text: str) -> Optional[str]:
    m = _DOSAGE_RE.search(text)
    return f"{m.group(1)}{m.group(2)}" if m else None

def _frequency_match(text: str) -> Optional[Tuple[int, int, str]]:
    best: Optional[Tuple[int, int, str]] = None
    for freq, pattern in FREQ_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        cand = (m.start(), -(m.end() - m.start()), freq)
        if best is None or cand[:2] < best[:2]:
            best = cand
    return best

def find_frequency(text: str) -> Optional[str]:
    match = _frequency_match(text)
    return match[2] if match else None

def find_times(text: str) -> List[str]:
    """Clock times in order of appearance, normalized to HH:MM, de-duplicated."""
    out: List[str] = []
    for m in _TIME_RE.finditer(text):
        if m.group("h") is not None:
            hhmm = to_24h(int(m.group("h")), int(m.group("m")), m.group("mer"))
        else:
            hhmm = to_24h(int(m.group("h2")), int(m.group("m2") or 0), m.group("mer2"))
        if hhmm and hhmm not in out:
            out.append(hhmm)
    return out

def find_instructions(text: str) -> Optional[str]:
    clauses: List[str] = []
    consumed_until = 0
    for m in _INSTR_TRIGGER_RE.finditer(text):
        if m.start() < consumed_until:
            continue
        end_match = _CLAUSE_END_RE.search(text, m.end())
        end = end_match.start() if end_match else len(text)
        consumed_until = end

        clause = " ".join(text[m.start():end].split()).strip(" ,:-")
        if not clause:
            continue
        clause = clause[0].upper() + clause[1:]
        if clause.lower() not in (c.lower() for c in clauses):
            clauses.append(clause)
    return ". ".join(clauses) if clauses else None

def _first_structure_pos(line: str) -> int:
    positions = [len(line)]
    dm = _DOSAGE_RE.search(line)
    if dm:
        positions.append(dm.start())
    fm = _frequency_match(line)
    if fm:
        positions.append(fm[0])
    tm = _TIME_RE.search(line)
    if tm:
        positions.append(tm.start())
    return min(positions)

def find_name(text: str) -> Optional[str]:
    """
    First line that isn't label boilerplate, cut at its first dosage /
    frequency / time match. Lines yielding nothing name-like are skipped.
    """
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    for ln in lines:
        if _BOILERPLATE_RE.match(ln):
            continue
        candidate = ln[: _first_structure_pos(ln)].strip().lstrip("-*•·:#").strip()
        if not candidate or _INSTR_TRIGGER_RE.match(candidate):
            continue
        m = _NAME_RE.match(candidate)
        if not m:
            continue
        name = " ".join(m.group(1).split()).strip("- ")
        if sum(ch.isalpha() for ch in name) >= 2:
            return name
    return None

def extract_fields(raw_text: str) -> ExtractedFields:
    """
    Heuristic parse of noisy label text. Never raises: anything it can't
    recognize is left unset so the caller falls back to manual entry.
    """
    text = raw_text or ""
    if not text.strip():
        return ExtractedFields()

    try:
        dosage = find_dosage(text)
        frequency = find_frequency(text)
        times = find_times(text)

        # no dosage/frequency/time -> not a label we understand; don't guess a name
        if not (dosage or frequency or times):
            logger.info("No medication structure recognized in %d chars of text", len(text))
            return ExtractedFields()

        fields = ExtractedFields(
            name=find_name(text),
            dosage=dosage,
            frequency=frequency,
            times=times or None,
            instructions=find_instructions(text),
        )
    except Exception:
        logger.exception("Field extraction failed; falling back to manual entry")
        return ExtractedFields()

    logger.info("Extracted fields: %s", fields.set_fields())
    return fields
