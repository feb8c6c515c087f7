"""Learning insights and study recommendations."""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from wordmaster.config import LearningSettings, settings
from wordmaster.models.serialization import resolve_now
from wordmaster.models.vocabulary_models import LEVELS
from wordmaster.services.progress_service import ProgressLedger
from wordmaster.services.scheduler_service import ReviewScheduler
from wordmaster.services.session_service import SessionRecorder
from wordmaster.services.vocabulary_service import VocabularyStore

SECONDS_PER_REVIEW = 30
REVIEW_FOCUS_THRESHOLD = 20  # due words above which reviewing beats learning new words
NEXT_REVIEW_WORDS = 10
STRONG_AREA_ACCURACY = 0.8
WEAK_AREA_ACCURACY = 0.6
PROGRESS_TARGET_PERCENT = 50


def percentage(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


class InsightReporter:
    """Read-only report over the catalog, the ledger and the session history."""

    def __init__(
        self,
        vocabulary: VocabularyStore,
        ledger: ProgressLedger,
        scheduler: ReviewScheduler,
        recorder: SessionRecorder,
        learning: Optional[LearningSettings] = None,
    ):
        self.vocabulary = vocabulary
        self.ledger = ledger
        self.scheduler = scheduler
        self.recorder = recorder
        self.learning = learning or settings.learning

    def _is_mastered(self, key: str) -> bool:
        return self.ledger.get(key).mastery_level >= self.learning.mastered_threshold

    def overall_progress(self) -> Dict[str, int]:
        """Mastered words out of the whole catalog."""
        total = len(self.vocabulary)
        mastered = sum(1 for key in self.vocabulary.keys() if self._is_mastered(key))
        return {"total_words": total, "mastered_words": mastered, "percentage": percentage(mastered, total)}

    def study_time(self, due_count: int) -> Dict[str, Any]:
        """Minutes needed for the due words and what to focus on."""
        return {
            "recommended_minutes": math.ceil(due_count * SECONDS_PER_REVIEW / 60),
            "words_to_review": due_count,
            "focus": "Review overdue words" if due_count > REVIEW_FOCUS_THRESHOLD else "Learn new vocabulary",
        }

    def mode_areas(self) -> Dict[str, List[str]]:
        """Game modes split into strong and weak by their accuracy."""
        strong, weak = [], []
        for game_mode in self.recorder.played_modes():
            accuracy = self.recorder.mode_accuracy(game_mode)
            if accuracy >= STRONG_AREA_ACCURACY:
                strong.append(game_mode)
            elif accuracy < WEAK_AREA_ACCURACY:
                weak.append(game_mode)
        return {"strong": strong, "weak": weak}

    def level_progression(self) -> Dict[str, Any]:
        """Mastered and total words per level, with the level being worked on.

        The current level is the easiest one that is not fully mastered; once
        every level is mastered it is the hardest level in the catalog.
        """
        by_level = {}
        for level in LEVELS:
            keys = [record.key for record in self.vocabulary.by_level(level)]
            if keys:
                by_level[level] = {
                    "mastered": sum(1 for key in keys if self._is_mastered(key)),
                    "total": len(keys),
                }

        levels = list(by_level)
        if not levels:
            return {"current_level": None, "next_level": None, "percentage": 0, "by_level": by_level}

        current = next(
            (level for level in levels if by_level[level]["mastered"] < by_level[level]["total"]),
            levels[-1],
        )
        index = levels.index(current)
        return {
            "current_level": current,
            "next_level": levels[index + 1] if index + 1 < len(levels) else None,
            "percentage": percentage(by_level[current]["mastered"], by_level[current]["total"]),
            "by_level": by_level,
        }

    def insights(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Full learning report at time now."""
        now = resolve_now(now)
        due = self.scheduler.due_items(now)
        areas = self.mode_areas()
        return {
            "overall_progress": self.overall_progress(),
            "strongest_areas": areas["strong"],
            "areas_for_improvement": areas["weak"],
            "recommended_study_time": self.study_time(len(due)),
            "next_review_words": due[:NEXT_REVIEW_WORDS],
            "due_count": len(due),
            "streak": {
                "current": self.recorder.current_streak(now.date()),
                "longest": self.recorder.longest_streak(),
            },
            "level_progression": self.level_progression(),
            "statistics": self.scheduler.study_statistics(now),
        }

    def recommendations(self, now: Optional[datetime] = None) -> List[Dict[str, str]]:
        """Suggested next steps, most urgent first."""
        insights = self.insights(now)
        recommendations = []
        if insights["due_count"] > NEXT_REVIEW_WORDS:
            recommendations.append({
                "type": "review",
                "priority": "high",
                "message": f"You have {insights['due_count']} words ready for review. "
                           "Focus on reviewing before learning new words.",
                "action": "Start Review Session",
            })
        if insights["overall_progress"]["percentage"] < PROGRESS_TARGET_PERCENT:
            recommendations.append({
                "type": "practice",
                "priority": "medium",
                "message": "Increase your practice frequency to improve vocabulary retention.",
                "action": "Set Daily Goal",
            })
        if insights["areas_for_improvement"]:
            recommendations.append({
                "type": "focus",
                "priority": "medium",
                "message": f"Focus on improving: {', '.join(insights['areas_for_improvement'])}",
                "action": "Practice Weak Areas",
            })
        return recommendations
