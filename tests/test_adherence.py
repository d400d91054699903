import pytest

from rx_companion.schemas.models import DoseEvent
from rx_companion.services import adherence_store
from rx_companion.services.adherence import mark_taken, summarize


@pytest.fixture
def events():
    return [
        DoseEvent(medication_id="b", time="08:00", name="B", dosage="5mg"),
        DoseEvent(medication_id="a", time="09:00", name="A", dosage="10mg"),
        DoseEvent(medication_id="a", time="21:00", name="A", dosage="10mg"),
    ]


def test_mark_taken_sets_only_the_matching_event(events):
    before = [e.model_dump_json() for e in events]
    out = mark_taken(events, "a", "09:00")

    assert out is not events
    assert out[1].taken is True
    assert out[0].model_dump_json() == before[0]
    assert out[2].model_dump_json() == before[2]
    # input list untouched
    assert [e.model_dump_json() for e in events] == before


def test_mark_taken_is_idempotent(events):
    once = mark_taken(events, "a", "09:00")
    twice = mark_taken(once, "a", "09:00")
    assert [e.model_dump() for e in twice] == [e.model_dump() for e in once]


def test_mark_taken_without_match_is_noop(events):
    out = mark_taken(events, "zzz", "09:00")
    assert [e.model_dump() for e in out] == [e.model_dump() for e in events]
    assert mark_taken(events, "a", "10:00") == events


def test_summarize(events):
    s = summarize(mark_taken(events, "b", "08:00"))
    assert (s.total, s.taken, s.pending) == (3, 1, 2)
    assert s.adherence_rate == 0.333
    assert summarize([]).adherence_rate == 0.0


def test_sessions_are_independent(events):
    first = adherence_store.open_session(events, "2024-01-01")
    adherence_store.replace_events(first, mark_taken(events, "a", "09:00"))
    second = adherence_store.open_session(events, "2024-01-01")

    assert first != second
    assert any(e.taken for e in adherence_store.get_events(first))
    assert not any(e.taken for e in adherence_store.get_events(second))

    adherence_store.close_session(first)
    assert adherence_store.get_events(first) is None


def test_sessions_from_earlier_days_are_dropped(events):
    old = adherence_store.open_session(events, "2024-01-01")
    new = adherence_store.open_session(events, "2024-01-02")
    assert adherence_store.get_events(old) is None
    assert adherence_store.get_events(new) is not None


def test_session_count_is_bounded(events):
    ids = [adherence_store.open_session(events, "2024-01-01") for _ in range(50)]
    assert len(adherence_store.SCHEDULE_SESSIONS) == adherence_store.MAX_SESSIONS
    assert adherence_store.get_events(ids[-1]) is not None
    assert adherence_store.get_events(ids[0]) is None
