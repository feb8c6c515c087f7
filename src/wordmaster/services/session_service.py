"""Service recording learning sessions and their history."""
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set

from wordmaster import monitoring, signals
from wordmaster.config import SessionSettings, settings
from wordmaster.exceptions import PersistenceError
from wordmaster.models.serialization import dump_payload, load_payload, resolve_now
from wordmaster.models.session_models import AnswerEvent, SessionRecord, SessionSummary
from wordmaster.services.storage import SESSIONS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


def calculate_streak(activity_dates: Iterable[date], today: date) -> int:
    """Count consecutive activity days ending today, or yesterday if today is empty.

    >>> calculate_streak([date(2024, 1, 3), date(2024, 1, 2)], today=date(2024, 1, 3))
    2
    >>> calculate_streak([date(2024, 1, 3), date(2024, 1, 1)], today=date(2024, 1, 3))
    1
    """
    days: Set[date] = set(activity_dates)
    if today in days:
        current = today
    elif today - timedelta(days=1) in days:
        current = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def calculate_longest_streak(activity_dates: Iterable[date]) -> int:
    """Length of the longest run of consecutive activity days.

    >>> calculate_longest_streak([date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 5)])
    2
    >>> calculate_longest_streak([])
    0
    """
    days = sorted(set(activity_dates))
    longest = run = 0
    previous = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


class SessionRecorder:
    """Owns the open session and the bounded, append-only session history."""

    def __init__(self, store: KeyValueStore, session_settings: Optional[SessionSettings] = None):
        self.store = store
        self.session_settings = session_settings or settings.session
        self.current: Optional[SessionRecord] = None
        self.history: List[SessionRecord] = []

    def start(self, now: Optional[datetime] = None) -> SessionRecord:
        """Open a new session, discarding an unfinished one."""
        if self.current is not None:
            logger.warning(f"Discarding unfinished session {self.current.session_id} "
                           f"with {self.current.item_count} answers")
        self.current = SessionRecord(
            session_id=uuid.uuid4().hex,
            started_at=resolve_now(now),
        )
        logger.info(f"Session {self.current.session_id} started")
        return self.current

    def record_event(self, event: AnswerEvent) -> None:
        """Append an answer to the open session."""
        if self.current is None:
            logger.warning(f"No open session, ignoring answer for {event.word_key}")
            return
        self.current.events.append(event)

    def complete(self, now: Optional[datetime] = None) -> Optional[SessionSummary]:
        """Close the open session, store it in history and return its summary."""
        if self.current is None:
            logger.warning("No open session to complete")
            return None

        record = self.current
        record.ended_at = resolve_now(now)
        self.current = None

        self.history.append(record)
        limit = self.session_settings.history_limit
        if len(self.history) > limit:
            del self.history[:len(self.history) - limit]

        try:
            self.persist_all()
        except PersistenceError as e:
            logger.error(f"Failed to persist session history: {e}")
            monitoring.persistence_errors.labels(record="sessions").inc()

        summary = SessionSummary.from_record(record)
        logger.info(f"Session {record.session_id} completed: {summary.item_count} answers, "
                    f"accuracy {summary.accuracy:.2f}")
        monitoring.sessions_completed.inc()
        signals.session_completed.send(self, payload=summary)
        return summary

    def total_sessions(self) -> int:
        return len(self.history)

    def played_modes(self) -> List[str]:
        """Distinct game modes answered across the history, sorted."""
        return sorted({mode for record in self.history for mode in record.game_modes})

    def game_modes_played(self) -> int:
        return len(self.played_modes())

    def activity_dates(self) -> Set[date]:
        return {record.started_at.date() for record in self.history if record.item_count}

    def current_streak(self, today: Optional[date] = None) -> int:
        """Consecutive days with at least one answered session."""
        return calculate_streak(self.activity_dates(), today or resolve_now().date())

    def longest_streak(self) -> int:
        return calculate_longest_streak(self.activity_dates())

    def mode_accuracy(self, game_mode: str) -> Optional[float]:
        """Accuracy of all recorded answers in a mode, None if never played."""
        events = [event for record in self.history for event in record.events_for_mode(game_mode)]
        if not events:
            return None
        return sum(1 for event in events if event.is_correct) / len(events)

    def load_all(self) -> int:
        """Load the session history; unreadable data leaves it empty."""
        self.history = []
        try:
            raw = self.store.get(SESSIONS_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to read session history: {e}")
            return 0
        if raw is None:
            return 0

        try:
            entries = load_payload(raw)["sessions"]
            if not isinstance(entries, list):
                raise ValueError("sessions is not a list")
        except (ValueError, KeyError) as e:
            logger.error(f"Stored session history is unreadable: {e}")
            return 0

        for data in entries[-self.session_settings.history_limit:]:
            try:
                self.history.append(SessionRecord.from_data(data))
            except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed session entry: {e}")
        return len(self.history)

    def persist_all(self) -> None:
        """Write the history as one value.

        Raises:
            PersistenceError: The store rejected the write.
        """
        payload = dump_payload({"sessions": [record.to_data() for record in self.history]})
        self.store.set(SESSIONS_KEY, payload)
