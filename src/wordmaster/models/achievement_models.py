"""Models for achievements and the statistics they are checked against."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from wordmaster.exceptions import PredicateError
from wordmaster.models.session_models import SessionRecord


@dataclass(frozen=True)
class AggregateStats:
    """Statistics aggregated across sessions and the progress ledger.

    A None field means the value is unknown; requirements reading it are
    not satisfied.
    """
    total_sessions: Optional[int] = None
    mastered_words: Optional[int] = None
    current_streak: Optional[int] = None
    game_modes_played: Optional[int] = None


def _require(value, name: str):
    if value is None:
        raise PredicateError(f"Missing aggregate value: {name}")
    return value


def _require_session(session: Optional[SessionRecord]) -> SessionRecord:
    if session is None:
        raise PredicateError("Requirement needs a session record")
    return session


class Requirement(ABC):
    """Unlock condition of an achievement."""
    kind: ClassVar[str]

    @abstractmethod
    def is_satisfied(self, session: Optional[SessionRecord], stats: AggregateStats) -> bool:
        """Check the condition.

        Raises:
            PredicateError: Data needed by the condition is missing.
        """


@dataclass(frozen=True)
class SessionsCompleted(Requirement):
    count: int
    kind: ClassVar[str] = "sessions"

    def is_satisfied(self, session, stats):
        return _require(stats.total_sessions, "total_sessions") >= self.count


@dataclass(frozen=True)
class WordsMastered(Requirement):
    count: int
    kind: ClassVar[str] = "wordsMastered"

    def is_satisfied(self, session, stats):
        return _require(stats.mastered_words, "mastered_words") >= self.count


@dataclass(frozen=True)
class FastAnswers(Requirement):
    """At least ``count`` answers in one session faster than ``time_ms``."""
    count: int
    time_ms: float
    kind: ClassVar[str] = "fastAnswers"

    def is_satisfied(self, session, stats):
        events = _require_session(session).events
        return sum(1 for event in events if event.response_time_ms < self.time_ms) >= self.count


@dataclass(frozen=True)
class PerfectSession(Requirement):
    """A session of at least ``questions`` answers, all correct."""
    questions: int
    kind: ClassVar[str] = "perfectSession"

    def is_satisfied(self, session, stats):
        session = _require_session(session)
        return session.item_count >= self.questions and session.correct_count == session.item_count


@dataclass(frozen=True)
class DailyStreak(Requirement):
    days: int
    kind: ClassVar[str] = "dailyStreak"

    def is_satisfied(self, session, stats):
        return _require(stats.current_streak, "current_streak") >= self.days


@dataclass(frozen=True)
class GameModesPlayed(Requirement):
    count: int
    kind: ClassVar[str] = "gameModesPlayed"

    def is_satisfied(self, session, stats):
        return _require(stats.game_modes_played, "game_modes_played") >= self.count


@dataclass(frozen=True)
class ModeAccuracy(Requirement):
    """Accuracy of the session's answers in one game mode."""
    mode: str
    accuracy: float
    kind: ClassVar[str] = "gameModeAccuracy"

    def is_satisfied(self, session, stats):
        events = _require_session(session).events_for_mode(self.mode)
        if not events:
            return False
        correct = sum(1 for event in events if event.is_correct)
        return correct / len(events) >= self.accuracy


@dataclass(frozen=True)
class AchievementDefinition:
    """Catalog entry of an achievement."""
    id: str
    title: str
    description: str
    requirement: Requirement
    category: str = "milestone"


@dataclass(frozen=True)
class AchievementUnlock:
    """An unlocked achievement id with the time it was unlocked."""
    id: str
    unlocked_at: datetime


@dataclass(frozen=True)
class AchievementUnlocked:
    """Payload of the achievement-unlocked signal."""
    achievement: AchievementDefinition
    unlocked_at: datetime


DEFAULT_ACHIEVEMENTS = (
    AchievementDefinition(
        id="first_steps",
        title="First Steps",
        description="Complete your first game session",
        category="milestone",
        requirement=SessionsCompleted(count=1),
    ),
    AchievementDefinition(
        id="words_10",
        title="Word Explorer",
        description="Master 10 words",
        category="vocabulary",
        requirement=WordsMastered(count=10),
    ),
    AchievementDefinition(
        id="word_warrior",
        title="Word Warrior",
        description="Master 50 words",
        category="vocabulary",
        requirement=WordsMastered(count=50),
    ),
    AchievementDefinition(
        id="words_100",
        title="Word Master",
        description="Master 100 words",
        category="vocabulary",
        requirement=WordsMastered(count=100),
    ),
    AchievementDefinition(
        id="words_250",
        title="Vocabulary Expert",
        description="Master 250 words",
        category="vocabulary",
        requirement=WordsMastered(count=250),
    ),
    AchievementDefinition(
        id="speed_demon",
        title="Speed Demon",
        description="Answer 10 questions in under 2 seconds each",
        category="performance",
        requirement=FastAnswers(count=10, time_ms=2000),
    ),
    AchievementDefinition(
        id="perfectionist",
        title="Perfectionist",
        description="Get 100% accuracy in a 10-question session",
        category="performance",
        requirement=PerfectSession(questions=10),
    ),
    AchievementDefinition(
        id="streak_master",
        title="Streak Master",
        description="Maintain a 7-day study streak",
        category="consistency",
        requirement=DailyStreak(days=7),
    ),
    AchievementDefinition(
        id="game_explorer",
        title="Game Explorer",
        description="Try all available game modes",
        category="exploration",
        requirement=GameModesPlayed(count=8),
    ),
    AchievementDefinition(
        id="time_master",
        title="Time Master",
        description="Complete Time Telling mode with 90% accuracy",
        category="mastery",
        requirement=ModeAccuracy(mode="timeTelling", accuracy=0.9),
    ),
    AchievementDefinition(
        id="conversation_expert",
        title="Conversation Expert",
        description="Excel in Conversation Practice mode",
        category="mastery",
        requirement=ModeAccuracy(mode="conversation", accuracy=0.85),
    ),
)
