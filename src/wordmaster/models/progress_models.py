"""Models for per-word learning progress."""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from wordmaster.models.serialization import from_iso, to_iso


@dataclass(frozen=True)
class ProgressRecord:
    """Learning progress of one word.

    The next due date is not stored; the scheduler derives it from
    ``mastery_level`` and ``last_reviewed_at``.
    """
    mastery_level: int = 0
    total_attempts: int = 0
    correct_attempts: int = 0
    last_reviewed_at: Optional[datetime] = None

    @property
    def incorrect_attempts(self) -> int:
        return self.total_attempts - self.correct_attempts

    @property
    def success_rate(self) -> Optional[float]:
        """Share of correct answers, None before the first attempt."""
        if self.total_attempts == 0:
            return None
        return self.correct_attempts / self.total_attempts

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    def answered(self, is_correct: bool, timestamp: datetime, max_level: int) -> "ProgressRecord":
        """Return the record after one more answer."""
        step = 1 if is_correct else -1
        return replace(
            self,
            mastery_level=min(max(self.mastery_level + step, 0), max_level),
            total_attempts=self.total_attempts + 1,
            correct_attempts=self.correct_attempts + (1 if is_correct else 0),
            last_reviewed_at=timestamp,
        )

    def to_data(self) -> dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "mastery_level": self.mastery_level,
            "total_attempts": self.total_attempts,
            "correct_attempts": self.correct_attempts,
            "last_reviewed_at": to_iso(self.last_reviewed_at),
        }

    @classmethod
    def from_data(cls, data: dict[str, Any], max_level: int) -> "ProgressRecord":
        """Create a record from stored data, restoring the invariants.

        Raises:
            KeyError, TypeError, ValueError: The stored entry is malformed.
        """
        total = max(int(data["total_attempts"]), 0)
        correct = min(max(int(data["correct_attempts"]), 0), total)
        return cls(
            mastery_level=min(max(int(data["mastery_level"]), 0), max_level),
            total_attempts=total,
            correct_attempts=correct,
            last_reviewed_at=from_iso(data.get("last_reviewed_at")),
        )
