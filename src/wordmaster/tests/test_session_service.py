"""Tests for session recording."""
import doctest
import json
import logging
from datetime import UTC, date, datetime, timedelta

import pytest

from wordmaster import signals
from wordmaster.config import SessionSettings
from wordmaster.models.session_models import AnswerEvent
from wordmaster.services import session_service
from wordmaster.services.session_service import SessionRecorder, calculate_longest_streak, calculate_streak
from wordmaster.services.storage import SESSIONS_KEY, MemoryKeyValueStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def answer(word_key: str = "cat", is_correct: bool = True, response_time_ms: float = 1000,
           game_mode: str = "quiz") -> AnswerEvent:
    return AnswerEvent(word_key=word_key, is_correct=is_correct,
                       response_time_ms=response_time_ms, game_mode=game_mode, answered_at=NOW)


@pytest.fixture
def recorder(store: MemoryKeyValueStore) -> SessionRecorder:
    """Create a recorder over an empty store."""
    return SessionRecorder(store)


def play(recorder: SessionRecorder, day: datetime, events) -> None:
    """Run one complete session on the given day."""
    recorder.start(day)
    for event in events:
        recorder.record_event(event)
    recorder.complete(day + timedelta(minutes=10))


def test_complete_returns_summary(recorder: SessionRecorder) -> None:
    """Test the statistics of a closed session."""
    recorder.start(NOW)
    recorder.record_event(answer("cat", True, 1200))
    recorder.record_event(answer("dog", False, 3000, game_mode="listening"))
    recorder.record_event(answer("owl", True, 800))

    summary = recorder.complete(NOW + timedelta(minutes=2))

    assert summary.item_count == 3
    assert summary.correct_count == 2
    assert summary.accuracy == pytest.approx(2 / 3)
    assert summary.total_time_ms == 5000
    assert summary.duration_seconds == 120
    assert summary.game_modes == ("quiz", "listening")
    assert recorder.current is None
    assert recorder.total_sessions() == 1


def test_empty_session_has_zero_accuracy(recorder: SessionRecorder) -> None:
    """Test completing a session without answers."""
    recorder.start(NOW)
    summary = recorder.complete(NOW)

    assert summary.item_count == 0
    assert summary.accuracy == 0.0


def test_complete_without_session_is_noop(recorder: SessionRecorder, caplog) -> None:
    """Test completing when nothing is open."""
    with caplog.at_level(logging.WARNING):
        assert recorder.complete(NOW) is None

    assert "No open session" in caplog.text
    assert recorder.history == []


def test_record_without_session_is_ignored(recorder: SessionRecorder, caplog) -> None:
    """Test that answers outside a session are dropped with a warning."""
    with caplog.at_level(logging.WARNING):
        recorder.record_event(answer())

    assert "ignoring answer" in caplog.text
    assert recorder.current is None


def test_start_discards_open_session(recorder: SessionRecorder, caplog) -> None:
    """Test that starting again replaces an unfinished session."""
    first = recorder.start(NOW)
    recorder.record_event(answer())

    with caplog.at_level(logging.WARNING):
        second = recorder.start(NOW)

    assert second.session_id != first.session_id
    assert second.events == []
    assert "Discarding unfinished session" in caplog.text


def test_session_completed_signal(recorder: SessionRecorder) -> None:
    """Test that completion is announced once with the summary."""
    received = []

    def on_completed(sender, payload):
        received.append(payload)

    with signals.session_completed.connected_to(on_completed, sender=recorder):
        recorder.start(NOW)
        recorder.record_event(answer())
        summary = recorder.complete(NOW)
        recorder.complete(NOW)

    assert received == [summary]


def test_history_is_bounded(store: MemoryKeyValueStore) -> None:
    """Test that the oldest sessions are pruned."""
    recorder = SessionRecorder(store, SessionSettings(history_limit=3))
    for offset in range(5):
        play(recorder, NOW + timedelta(days=offset), [answer()])

    assert recorder.total_sessions() == 3
    assert recorder.history[0].started_at == NOW + timedelta(days=2)


def test_streak_calculation() -> None:
    """Test streaks ending today, yesterday and broken ones."""
    today = date(2024, 5, 10)
    days = [today - timedelta(days=offset) for offset in range(4)]

    assert calculate_streak(days, today) == 4
    assert calculate_streak(days[1:], today) == 3
    assert calculate_streak(days[2:], today) == 0
    assert calculate_streak([], today) == 0


def test_streak_examples() -> None:
    """Test the documented streak examples."""
    assert doctest.testmod(session_service).failed == 0


def test_current_streak_ignores_empty_sessions(recorder: SessionRecorder) -> None:
    """Test that only sessions with answers count as activity."""
    for offset in range(3):
        play(recorder, NOW - timedelta(days=offset), [answer()])
    play(recorder, NOW - timedelta(days=3), [])

    assert recorder.current_streak(NOW.date()) == 3


def test_mode_aggregates(recorder: SessionRecorder) -> None:
    """Test modes played and per-mode accuracy across sessions."""
    play(recorder, NOW, [answer(game_mode="quiz"), answer(is_correct=False, game_mode="spelling")])
    play(recorder, NOW, [answer(game_mode="quiz"), answer(game_mode="spelling")])

    assert recorder.game_modes_played() == 2
    assert recorder.played_modes() == ["quiz", "spelling"]
    assert recorder.mode_accuracy("quiz") == 1.0
    assert recorder.mode_accuracy("spelling") == 0.5
    assert recorder.mode_accuracy("conversation") is None


def test_longest_streak(recorder: SessionRecorder) -> None:
    """Test that the longest run survives a later break."""
    for offset in (10, 9, 8, 1, 0):
        play(recorder, NOW - timedelta(days=offset), [answer()])

    assert recorder.longest_streak() == 3
    assert recorder.current_streak(NOW.date()) == 2
    assert calculate_longest_streak([]) == 0


def test_naive_times_are_taken_as_utc(recorder: SessionRecorder) -> None:
    """Test that sessions opened and closed without a zone are stored as UTC."""
    recorder.start(datetime(2024, 5, 1, 12, 0))
    recorder.record_event(answer())
    summary = recorder.complete(datetime(2024, 5, 1, 12, 5))

    assert recorder.history[0].started_at == NOW
    assert summary.duration_seconds == 300


def test_round_trip(recorder: SessionRecorder, store: MemoryKeyValueStore) -> None:
    """Test that the history survives a reload."""
    play(recorder, NOW, [answer("cat"), answer("dog", False, 2500, "listening")])

    restored = SessionRecorder(store)
    assert restored.load_all() == 1
    assert restored.history == recorder.history


def test_load_skips_malformed_sessions(store: MemoryKeyValueStore) -> None:
    """Test that one broken session does not lose the rest."""
    store.set(SESSIONS_KEY, json.dumps({
        "version": 1,
        "sessions": [
            {"session_id": "a", "started_at": "2024-05-01T12:00:00+00:00", "events": []},
            {"session_id": "b"},
            {"session_id": "c", "started_at": "2024-05-02T12:00:00+00:00",
             "events": [{"word_key": "cat"}]},
        ],
    }))
    recorder = SessionRecorder(store)

    assert recorder.load_all() == 1
    assert recorder.history[0].session_id == "a"


def test_write_failure_still_completes(failing_store) -> None:
    """Test that completion works when the history cannot be saved."""
    failing_store.fail_writes = True
    recorder = SessionRecorder(failing_store)
    recorder.start(NOW)
    recorder.record_event(answer())

    assert recorder.complete(NOW).item_count == 1
    assert recorder.total_sessions() == 1


if __name__ == "__main__":
    pytest.main([__file__])
