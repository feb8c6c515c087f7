"""Models for learning sessions."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from wordmaster.models.serialization import from_iso, to_iso


@dataclass(frozen=True)
class AnswerEvent:
    """One answered item."""
    word_key: str
    is_correct: bool
    response_time_ms: float
    game_mode: str
    answered_at: Optional[datetime] = None

    def to_data(self) -> dict[str, Any]:
        return {
            "word_key": self.word_key,
            "is_correct": self.is_correct,
            "response_time_ms": self.response_time_ms,
            "game_mode": self.game_mode,
            "answered_at": to_iso(self.answered_at),
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "AnswerEvent":
        return cls(
            word_key=str(data["word_key"]),
            is_correct=bool(data["is_correct"]),
            response_time_ms=float(data["response_time_ms"]),
            game_mode=str(data["game_mode"]),
            answered_at=from_iso(data.get("answered_at")),
        )


@dataclass
class SessionRecord:
    """A bounded sequence of answer events between start and completion.

    Aggregates are computed from ``events`` on demand rather than stored.
    """
    session_id: str
    started_at: datetime
    events: List[AnswerEvent] = field(default_factory=list)
    ended_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def item_count(self) -> int:
        return len(self.events)

    @property
    def correct_count(self) -> int:
        return sum(1 for event in self.events if event.is_correct)

    @property
    def accuracy(self) -> float:
        if not self.events:
            return 0.0
        return self.correct_count / self.item_count

    @property
    def total_time_ms(self) -> float:
        return sum(event.response_time_ms for event in self.events)

    @property
    def game_modes(self) -> List[str]:
        """Game modes in order of first appearance."""
        return list(dict.fromkeys(event.game_mode for event in self.events))

    def events_for_mode(self, game_mode: str) -> List[AnswerEvent]:
        return [event for event in self.events if event.game_mode == game_mode]

    def to_data(self) -> dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "session_id": self.session_id,
            "started_at": to_iso(self.started_at),
            "ended_at": to_iso(self.ended_at),
            "events": [event.to_data() for event in self.events],
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "SessionRecord":
        """Create a record from stored data.

        Raises:
            KeyError, TypeError, ValueError: The stored entry is malformed.
        """
        started_at = from_iso(data["started_at"])
        if started_at is None:
            raise ValueError("Session without start time")
        return cls(
            session_id=str(data["session_id"]),
            started_at=started_at,
            ended_at=from_iso(data.get("ended_at")),
            events=[AnswerEvent.from_data(event) for event in data.get("events", [])],
        )


@dataclass(frozen=True)
class SessionSummary:
    """Statistics of a completed session, also the session-completed payload."""
    session_id: str
    accuracy: float
    total_time_ms: float
    item_count: int
    correct_count: int
    duration_seconds: float
    game_modes: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionSummary":
        ended_at = record.ended_at or record.started_at
        return cls(
            session_id=record.session_id,
            accuracy=record.accuracy,
            total_time_ms=record.total_time_ms,
            item_count=record.item_count,
            correct_count=record.correct_count,
            duration_seconds=max((ended_at - record.started_at).total_seconds(), 0.0),
            game_modes=tuple(record.game_modes),
        )
