"""Spaced repetition scheduling: which words are due and in what order."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from wordmaster.config import LearningSettings, settings
from wordmaster.models.progress_models import ProgressRecord
from wordmaster.models.serialization import resolve_now
from wordmaster.models.vocabulary_models import WordRecord
from wordmaster.services.progress_service import ProgressLedger
from wordmaster.services.vocabulary_service import VocabularyStore

logger = logging.getLogger(__name__)

# Priority weights. Empirical values; tune here rather than in the scorer.
NEW_ITEM_BONUS = 50.0
MISSING_MASTERY_WEIGHT = 10.0  # per level below the maximum
INCORRECT_ANSWER_WEIGHT = 5.0
OVERDUE_DAY_WEIGHT = 10.0
LOW_SUCCESS_RATE_BONUS = 20.0  # success rate below LOW_SUCCESS_RATE
MEDIUM_SUCCESS_RATE_BONUS = 10.0  # success rate below MEDIUM_SUCCESS_RATE
LOW_SUCCESS_RATE = 0.5
MEDIUM_SUCCESS_RATE = 0.7
FREQUENCY_WEIGHT = 1.0

SECONDS_PER_DAY = 24 * 60 * 60


def required_gap_days(mastery_level: int, intervals: Sequence[int]) -> int:
    """Days that must pass after a review at this mastery level."""
    index = min(max(mastery_level, 0), len(intervals) - 1)
    return intervals[index]


def due_at(record: ProgressRecord, intervals: Sequence[int]) -> Optional[datetime]:
    """When the word becomes due; None for words never reviewed."""
    if record.last_reviewed_at is None:
        return None
    return record.last_reviewed_at + timedelta(days=required_gap_days(record.mastery_level, intervals))


def is_due(record: ProgressRecord, now: datetime, intervals: Sequence[int]) -> bool:
    if record.last_reviewed_at is None or record.mastery_level == 0:
        return True
    return now >= due_at(record, intervals)


def overdue_days(record: ProgressRecord, now: datetime, intervals: Sequence[int]) -> float:
    """Days past the due date; negative while the word is not yet due.

    Due words never report a negative margin.
    """
    due = due_at(record, intervals)
    if due is None:
        return 0.0
    margin = (now - due).total_seconds() / SECONDS_PER_DAY
    if is_due(record, now, intervals):
        return max(margin, 0.0)
    return margin


class PriorityScorer(ABC):
    """Policy ranking words for presentation; higher scores come first."""

    @abstractmethod
    def score(self, record: ProgressRecord, now: datetime, word: Optional[WordRecord] = None) -> float:
        """Score one word's progress at time now."""


class WeightedPriorityScorer(PriorityScorer):
    """Weighted sum favouring new, weak, often-missed and overdue words."""

    def __init__(self, learning: Optional[LearningSettings] = None):
        self.learning = learning or settings.learning

    def score(self, record: ProgressRecord, now: datetime, word: Optional[WordRecord] = None) -> float:
        score = 0.0
        if record.is_new:
            score += NEW_ITEM_BONUS
        score += (self.learning.max_mastery_level - record.mastery_level) * MISSING_MASTERY_WEIGHT
        score += record.incorrect_attempts * INCORRECT_ANSWER_WEIGHT

        success_rate = record.success_rate
        if success_rate is not None:
            if success_rate < LOW_SUCCESS_RATE:
                score += LOW_SUCCESS_RATE_BONUS
            elif success_rate < MEDIUM_SUCCESS_RATE:
                score += MEDIUM_SUCCESS_RATE_BONUS

        score += overdue_days(record, now, self.learning.review_intervals) * OVERDUE_DAY_WEIGHT
        if word is not None:
            score += word.frequency * FREQUENCY_WEIGHT
        return score


class ReviewScheduler:
    """Chooses the words of a session from the catalog and the ledger."""

    def __init__(
        self,
        vocabulary: VocabularyStore,
        ledger: ProgressLedger,
        scorer: Optional[PriorityScorer] = None,
        learning: Optional[LearningSettings] = None,
    ):
        self.vocabulary = vocabulary
        self.ledger = ledger
        self.learning = learning or settings.learning
        self.scorer = scorer or WeightedPriorityScorer(self.learning)

    @property
    def intervals(self) -> Sequence[int]:
        return self.learning.review_intervals

    def required_gap(self, mastery_level: int) -> timedelta:
        return timedelta(days=required_gap_days(mastery_level, self.intervals))

    def due_at(self, record: ProgressRecord) -> Optional[datetime]:
        return due_at(record, self.intervals)

    def is_due(self, record: ProgressRecord, now: Optional[datetime] = None) -> bool:
        return is_due(record, resolve_now(now), self.intervals)

    def _rank(self, words: List[WordRecord], now: datetime) -> List[str]:
        """Keys by descending priority, ties broken by key."""
        scored = [
            (self.scorer.score(self.ledger.get(word.key), now, word), word.key)
            for word in words
        ]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [key for _, key in scored]

    def due_items(
        self,
        now: Optional[datetime] = None,
        level: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[str]:
        """All due words, most urgent first."""
        now = resolve_now(now)
        words = [
            word for word in self.vocabulary.filter(level=level, category=category)
            if self.is_due(self.ledger.get(word.key), now)
        ]
        return self._rank(words, now)

    def select_for_session(
        self,
        count: int,
        level: Optional[str] = None,
        category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Choose up to count words for a session.

        Due words come first by descending priority; the rest is filled with
        the highest-priority words that are not due yet.
        """
        now = resolve_now(now)
        words = self.vocabulary.filter(level=level, category=category)
        if count <= 0 or not words:
            return []

        ranked = self._rank(words, now)
        due = [key for key in ranked if self.is_due(self.ledger.get(key), now)]
        if not due:
            logger.info("No words due, treating the whole catalog as eligible")

        selected = due[:count]
        if len(selected) < count:
            chosen = set(selected)
            selected.extend(
                [key for key in ranked if key not in chosen][:count - len(selected)]
            )
        logger.debug(f"Selected {len(selected)} words ({min(len(due), count)} due)")
        return selected

    def forecast(self, now: Optional[datetime] = None, days: int = 7) -> Dict[str, int]:
        """Counts of words due now, due within the next days, and never reviewed."""
        now = resolve_now(now)
        horizon = now + timedelta(days=days)
        due_now = due_this_week = new = 0
        for key in self.vocabulary.keys():
            record = self.ledger.get(key)
            if record.is_new:
                new += 1
            if self.is_due(record, now):
                due_now += 1
                due_this_week += 1
            elif self.due_at(record) <= horizon:
                due_this_week += 1
        return {"due_now": due_now, "due_this_week": due_this_week, "new": new}

    def study_statistics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Forecast plus mastered and struggling counts over the catalog.

        A word is struggling when fewer than half of its answers were correct.
        """
        forecast = self.forecast(now)
        total = len(self.vocabulary)
        mastered = struggling = 0
        for key in self.vocabulary.keys():
            record = self.ledger.get(key)
            if record.mastery_level >= self.learning.mastered_threshold:
                mastered += 1
            elif record.success_rate is not None and record.success_rate < LOW_SUCCESS_RATE:
                struggling += 1
        return {
            "total_words": total,
            **forecast,
            "mastered": mastered,
            "struggling": struggling,
            "mastery_rate": mastered / total * 100 if total else 0.0,
        }
