"""Models for per-mode difficulty adaptation."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class DifficultyTier(Enum):
    """Presentation difficulty, ordered from easiest to hardest."""
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    def promoted(self) -> "DifficultyTier":
        """One tier up, capped at expert."""
        return TIER_ORDER[min(self.rank + 1, len(TIER_ORDER) - 1)]

    def demoted(self) -> "DifficultyTier":
        """One tier down, floored at easy."""
        return TIER_ORDER[max(self.rank - 1, 0)]


TIER_ORDER = (
    DifficultyTier.EASY,
    DifficultyTier.NORMAL,
    DifficultyTier.HARD,
    DifficultyTier.EXPERT,
)

DEFAULT_TIER = DifficultyTier.NORMAL


@dataclass(frozen=True)
class TierProfile:
    """Presentation parameters the game modes read for a tier."""
    time_bonus: float
    hint_available: bool
    options_count: int


TIER_PROFILES = {
    DifficultyTier.EASY: TierProfile(time_bonus=1.5, hint_available=True, options_count=3),
    DifficultyTier.NORMAL: TierProfile(time_bonus=1.0, hint_available=True, options_count=4),
    DifficultyTier.HARD: TierProfile(time_bonus=0.8, hint_available=False, options_count=4),
    DifficultyTier.EXPERT: TierProfile(time_bonus=0.6, hint_available=False, options_count=5),
}


@dataclass(frozen=True)
class PerformanceSample:
    """One answer as seen by the difficulty adapter."""
    is_correct: bool
    response_time_ms: float


@dataclass(frozen=True)
class DifficultyChanged:
    """Payload of the difficulty-changed signal."""
    game_mode: str
    previous: DifficultyTier
    current: DifficultyTier
    accuracy: float
    average_response_ms: float
    changed_at: Optional[datetime] = None
