"""Tests for the progress ledger."""
import json
import random
from datetime import UTC, datetime, timedelta

import pytest

from wordmaster.exceptions import PersistenceError
from wordmaster.models.progress_models import ProgressRecord
from wordmaster.services.progress_service import ProgressLedger
from wordmaster.services.storage import PROGRESS_KEY, MemoryKeyValueStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def ledger(store: MemoryKeyValueStore) -> ProgressLedger:
    """Create a ledger over an empty store."""
    return ProgressLedger(store)


def test_get_unknown_word_is_zero_record(ledger: ProgressLedger) -> None:
    """Test that unseen words have a zero-valued record."""
    record = ledger.get("never-seen")
    assert record == ProgressRecord()
    assert record.last_reviewed_at is None
    assert len(ledger) == 0


def test_apply_correct_answer(ledger: ProgressLedger) -> None:
    """Test that a correct answer advances mastery and counters."""
    record = ledger.apply("Cat", True, NOW)

    assert record.mastery_level == 1
    assert record.total_attempts == 1
    assert record.correct_attempts == 1
    assert record.last_reviewed_at == NOW
    assert ledger.get("cat") == record


def test_incorrect_answers_stop_at_zero(ledger: ProgressLedger) -> None:
    """Test three misses from mastery 2 end at 0, never below."""
    ledger.apply("cat", True, NOW)
    ledger.apply("cat", True, NOW)
    assert ledger.get("cat").mastery_level == 2

    for offset in range(3):
        record = ledger.apply("cat", False, NOW + timedelta(minutes=offset))

    assert record.mastery_level == 0
    assert record.total_attempts == 5
    assert record.correct_attempts == 2
    assert record.incorrect_attempts == 3


def test_mastery_is_capped(ledger: ProgressLedger) -> None:
    """Test that mastery never exceeds the maximum level."""
    for _ in range(10):
        record = ledger.apply("cat", True, NOW)
    assert record.mastery_level == ledger.max_level


def test_invariants_hold_for_random_answers(ledger: ProgressLedger) -> None:
    """Test counter and mastery bounds after arbitrary answer sequences."""
    rng = random.Random(7)
    keys = ["cat", "dog", "book"]
    for step in range(300):
        ledger.apply(rng.choice(keys), rng.random() < 0.6, NOW + timedelta(minutes=step))

    for record in ledger.records().values():
        assert 0 <= record.mastery_level <= ledger.max_level
        assert record.correct_attempts <= record.total_attempts


def test_apply_persists_ledger(ledger: ProgressLedger, store: MemoryKeyValueStore) -> None:
    """Test that every answer is written to the store."""
    ledger.apply("cat", True, NOW)

    payload = json.loads(store.get(PROGRESS_KEY))
    assert payload["version"] == 1
    assert payload["records"]["cat"]["mastery_level"] == 1


def test_round_trip(ledger: ProgressLedger, store: MemoryKeyValueStore) -> None:
    """Test that persist then load reproduces the ledger."""
    ledger.apply("cat", True, NOW)
    ledger.apply("dog", False, NOW - timedelta(days=3))
    ledger.apply("dog", True, NOW)
    ledger.persist_all()

    restored = ProgressLedger(store)
    assert restored.load_all() == 2
    assert restored.records() == ledger.records()


def test_failed_write_keeps_previous_record(failing_store) -> None:
    """Test that a failed write leaves the previous state and surfaces the error."""
    ledger = ProgressLedger(failing_store)
    ledger.apply("cat", True, NOW)
    before = ledger.get("cat")

    failing_store.fail_writes = True
    with pytest.raises(PersistenceError):
        ledger.apply("cat", True, NOW + timedelta(days=1))
    with pytest.raises(PersistenceError):
        ledger.apply("dog", True, NOW)

    assert ledger.get("cat") == before
    assert "dog" not in ledger.records()


def test_load_unreadable_payload_starts_empty(store: MemoryKeyValueStore) -> None:
    """Test that garbage in the store does not crash loading."""
    store.set(PROGRESS_KEY, "{not json")
    ledger = ProgressLedger(store)

    assert ledger.load_all() == 0
    assert ledger.get("cat") == ProgressRecord()


def test_load_unknown_version_starts_empty(store: MemoryKeyValueStore) -> None:
    """Test that a payload of another schema version degrades to defaults."""
    store.set(PROGRESS_KEY, json.dumps({"version": 99, "records": {}}))

    assert ProgressLedger(store).load_all() == 0


def test_load_skips_malformed_entries(store: MemoryKeyValueStore) -> None:
    """Test that one bad entry does not lose the others."""
    store.set(PROGRESS_KEY, json.dumps({
        "version": 1,
        "records": {
            "cat": {"mastery_level": 9, "total_attempts": 2, "correct_attempts": 5,
                    "last_reviewed_at": "2024-05-01T12:00:00"},
            "dog": {"mastery_level": "high"},
        },
    }))
    ledger = ProgressLedger(store)

    assert ledger.load_all() == 1
    cat = ledger.get("cat")
    assert cat.mastery_level == ledger.max_level
    assert cat.correct_attempts == 2
    assert cat.last_reviewed_at == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def test_load_read_failure_starts_empty(failing_store) -> None:
    """Test that a store read error is absorbed."""
    failing_store.fail_reads = True

    assert ProgressLedger(failing_store).load_all() == 0


def test_reset(ledger: ProgressLedger) -> None:
    """Test resetting one word and then the whole ledger."""
    ledger.apply("cat", True, NOW)
    ledger.apply("dog", True, NOW)

    ledger.reset("cat")
    assert set(ledger.records()) == {"dog"}

    ledger.reset()
    assert ledger.records() == {}


def test_mastered_count(ledger: ProgressLedger) -> None:
    """Test counting words at or above the mastered threshold."""
    for _ in range(4):
        ledger.apply("cat", True, NOW)
    for _ in range(3):
        ledger.apply("dog", True, NOW)

    assert ledger.mastered_count() == 1
    assert ledger.mastered_count(threshold=3) == 2


def test_load_skips_non_finite_counts(store: MemoryKeyValueStore) -> None:
    """Test that an Infinity counter is skipped like any malformed entry."""
    store.set(PROGRESS_KEY, '{"version": 1, "records": {'
                            '"cat": {"mastery_level": 1, "total_attempts": Infinity, "correct_attempts": 1}, '
                            '"dog": {"mastery_level": 1, "total_attempts": 1, "correct_attempts": 1}}}')
    ledger = ProgressLedger(store)

    assert ledger.load_all() == 1
    assert set(ledger.records()) == {"dog"}


def test_apply_treats_naive_time_as_utc(ledger: ProgressLedger) -> None:
    """Test that a timestamp without a zone is stored as UTC."""
    record = ledger.apply("cat", True, datetime(2024, 5, 1, 12, 0))

    assert record.last_reviewed_at == NOW
    assert record.last_reviewed_at.tzinfo is UTC


def test_export_then_import(ledger: ProgressLedger) -> None:
    """Test that a backup restores the ledger into a fresh store."""
    ledger.apply("cat", True, NOW)
    ledger.apply("dog", False, NOW)
    backup = ledger.export_data(NOW)

    assert json.loads(backup)["exported_at"] == "2024-05-01T12:00:00+00:00"

    restored = ProgressLedger(MemoryKeyValueStore())
    assert restored.import_data(backup) == 2
    assert restored.records() == ledger.records()
    assert json.loads(restored.store.get(PROGRESS_KEY))["records"]["cat"]["mastery_level"] == 1


@pytest.mark.parametrize("backup", ["{not json", '{"version": 1}', '{"version": 2, "records": {}}'])
def test_import_rejects_unreadable_backup(ledger: ProgressLedger, backup: str) -> None:
    """Test that a bad backup raises and leaves the ledger alone."""
    ledger.apply("cat", True, NOW)

    with pytest.raises(ValueError):
        ledger.import_data(backup)

    assert set(ledger.records()) == {"cat"}


def test_import_write_failure_keeps_ledger(failing_store) -> None:
    """Test that an import that cannot be saved is rolled back."""
    ledger = ProgressLedger(failing_store)
    ledger.apply("cat", True, NOW)
    backup = json.dumps({"version": 1, "records": {"dog": {"mastery_level": 2, "total_attempts": 2,
                                                             "correct_attempts": 2}}})

    failing_store.fail_writes = True
    with pytest.raises(PersistenceError):
        ledger.import_data(backup)

    assert set(ledger.records()) == {"cat"}


if __name__ == "__main__":
    pytest.main([__file__])
