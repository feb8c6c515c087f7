"""Per-mode difficulty adaptation from rolling performance."""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Deque, Dict, Iterable, Optional

from wordmaster import monitoring, signals
from wordmaster.config import AdaptationSettings, settings
from wordmaster.exceptions import PersistenceError
from wordmaster.models.difficulty_models import (
    DEFAULT_TIER,
    TIER_PROFILES,
    DifficultyChanged,
    DifficultyTier,
    PerformanceSample,
    TierProfile,
)
from wordmaster.models.serialization import dump_payload, load_payload
from wordmaster.services.storage import DIFFICULTY_KEY, KeyValueStore

logger = logging.getLogger(__name__)

# Used when a window has no samples
NEUTRAL_ACCURACY = 0.7
NEUTRAL_RESPONSE_MS = 5000.0


@dataclass
class DifficultyState:
    """Tier of one game mode plus the samples collected since the last step."""
    tier: DifficultyTier = DEFAULT_TIER
    window: Deque[PerformanceSample] = field(default_factory=deque)


def accuracy_of(samples: Iterable[PerformanceSample]) -> float:
    samples = list(samples)
    if not samples:
        return NEUTRAL_ACCURACY
    return sum(1 for sample in samples if sample.is_correct) / len(samples)


def average_response_of(samples: Iterable[PerformanceSample]) -> float:
    samples = list(samples)
    if not samples:
        return NEUTRAL_RESPONSE_MS
    return sum(sample.response_time_ms for sample in samples) / len(samples)


class DifficultyAdapter:
    """Moves each game mode along easy < normal < hard < expert."""

    def __init__(self, store: KeyValueStore, adaptation: Optional[AdaptationSettings] = None):
        self.store = store
        self.adaptation = adaptation or settings.adaptation
        self._states: Dict[str, DifficultyState] = {}

    def _state(self, game_mode: str) -> DifficultyState:
        state = self._states.get(game_mode)
        if state is None:
            state = DifficultyState(window=deque(maxlen=self.adaptation.window_size))
            self._states[game_mode] = state
        return state

    def get_difficulty(self, game_mode: str) -> DifficultyTier:
        state = self._states.get(game_mode)
        return state.tier if state else DEFAULT_TIER

    def get_profile(self, game_mode: str) -> TierProfile:
        """Presentation parameters for the mode's current tier."""
        return TIER_PROFILES[self.get_difficulty(game_mode)]

    def modes(self) -> Dict[str, DifficultyTier]:
        return {mode: state.tier for mode, state in self._states.items()}

    def record_sample(
        self, game_mode: str, is_correct: bool, response_time_ms: float
    ) -> Optional[DifficultyChanged]:
        """Add an answer to the mode's window; adapt once the window is full."""
        state = self._state(game_mode)
        state.window.append(PerformanceSample(is_correct, float(response_time_ms)))
        if len(state.window) < self.adaptation.window_size:
            self._persist_quietly()
            return None

        samples = list(state.window)
        state.window.clear()
        return self.adapt(game_mode, samples)

    def adapt(self, game_mode: str, samples: Iterable[PerformanceSample]) -> Optional[DifficultyChanged]:
        """Step the mode's tier by at most one from the given samples.

        Returns the change, or None when the tier stays the same.
        """
        samples = list(samples)
        accuracy = accuracy_of(samples)
        average_ms = average_response_of(samples)

        state = self._state(game_mode)
        previous = state.tier
        if accuracy > self.adaptation.promote_accuracy and average_ms < self.adaptation.promote_response_ms:
            state.tier = previous.promoted()
        elif accuracy < self.adaptation.demote_accuracy or average_ms > self.adaptation.demote_response_ms:
            state.tier = previous.demoted()

        self._persist_quietly()
        if state.tier == previous:
            return None

        change = DifficultyChanged(
            game_mode=game_mode,
            previous=previous,
            current=state.tier,
            accuracy=accuracy,
            average_response_ms=average_ms,
            changed_at=datetime.now(UTC),
        )
        direction = "up" if state.tier.rank > previous.rank else "down"
        logger.info(f"Difficulty for {game_mode}: {previous.value} -> {state.tier.value} "
                    f"(accuracy {accuracy:.2f}, {average_ms:.0f} ms)")
        monitoring.difficulty_changes.labels(game_mode=game_mode, direction=direction).inc()
        signals.difficulty_changed.send(self, payload=change)
        return change

    def _persist_quietly(self) -> None:
        try:
            self.persist_all()
        except PersistenceError as e:
            logger.error(f"Failed to persist difficulty state: {e}")
            monitoring.persistence_errors.labels(record="difficulty").inc()

    def load_all(self) -> int:
        """Load every mode's state; unreadable data leaves the defaults."""
        self._states = {}
        try:
            raw = self.store.get(DIFFICULTY_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to read difficulty state: {e}")
            return 0
        if raw is None:
            return 0

        try:
            modes = load_payload(raw)["modes"]
            if not isinstance(modes, dict):
                raise ValueError("modes is not a mapping")
        except (ValueError, KeyError) as e:
            logger.error(f"Stored difficulty state is unreadable: {e}")
            return 0

        for game_mode, data in modes.items():
            try:
                state = self._state(game_mode)
                state.tier = DifficultyTier(data["tier"])
                for sample in data.get("window", []):
                    state.window.append(PerformanceSample(bool(sample[0]), float(sample[1])))
            except (AttributeError, IndexError, KeyError, OverflowError, TypeError, ValueError) as e:
                logger.warning(f"Resetting malformed difficulty state for {game_mode!r}: {e}")
                self._states.pop(game_mode, None)
        return len(self._states)

    def persist_all(self) -> None:
        """Write every mode's state as one value.

        Raises:
            PersistenceError: The store rejected the write.
        """
        payload = dump_payload({
            "modes": {
                game_mode: {
                    "tier": state.tier.value,
                    "window": [[sample.is_correct, sample.response_time_ms] for sample in state.window],
                }
                for game_mode, state in self._states.items()
            },
        })
        self.store.set(DIFFICULTY_KEY, payload)
