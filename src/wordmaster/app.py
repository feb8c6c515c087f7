"""Application context wiring the learning engine components together."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from wordmaster import monitoring
from wordmaster.config import settings
from wordmaster.exceptions import PersistenceError
from wordmaster.models.achievement_models import AchievementUnlock, AggregateStats
from wordmaster.models.base import SessionLocal, init_db
from wordmaster.models.difficulty_models import DifficultyTier, TierProfile
from wordmaster.models.progress_models import ProgressRecord
from wordmaster.models.serialization import resolve_now
from wordmaster.models.session_models import SessionRecord, SessionSummary
from wordmaster.services.achievement_service import AchievementEvaluator
from wordmaster.services.difficulty_service import DifficultyAdapter
from wordmaster.services.insight_service import InsightReporter
from wordmaster.services.mastery_service import MasteryUpdater
from wordmaster.services.progress_service import ProgressLedger
from wordmaster.services.scheduler_service import PriorityScorer, ReviewScheduler
from wordmaster.services.session_service import SessionRecorder
from wordmaster.services.storage import KeyValueStore, SqlKeyValueStore
from wordmaster.services.vocabulary_service import (
    ContentSource,
    FileContentSource,
    VocabularyStore,
)


class LearningEngine:
    """Builds each component once and exposes the caller-facing API."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        source: Optional[ContentSource] = None,
        scorer: Optional[PriorityScorer] = None,
    ):
        """Initialize the engine.

        Without a store, start() opens the configured database and keeps
        state in its key-value table.
        """
        self.source = source or FileContentSource(settings.content.vocabulary_path)
        self.scorer = scorer
        self.vocabulary = VocabularyStore()
        self.db = None
        self.running = False
        self.logger = logging.getLogger(__name__)
        self.store: Optional[KeyValueStore] = None
        if store is not None:
            self._build(store)

    def _build(self, store: KeyValueStore) -> None:
        self.store = store
        self.ledger = ProgressLedger(store, settings.learning)
        self.scheduler = ReviewScheduler(self.vocabulary, self.ledger, self.scorer, settings.learning)
        self.recorder = SessionRecorder(store, settings.session)
        self.adapter = DifficultyAdapter(store, settings.adaptation)
        self.evaluator = AchievementEvaluator(store)
        self.updater = MasteryUpdater(self.ledger, self.recorder, self.adapter, self.vocabulary)
        self.reporter = InsightReporter(
            self.vocabulary, self.ledger, self.scheduler, self.recorder, settings.learning
        )

    async def start(self) -> None:
        """Load vocabulary and persisted state."""
        if self.running:
            return

        if self.store is None:
            init_db()
            self.db = SessionLocal()
            self._build(SqlKeyValueStore(self.db))
            self.logger.info("Database initialized")

        count = await self.vocabulary.load(self.source)
        if self.vocabulary.used_fallback:
            self.logger.warning("Vocabulary content unavailable, using built-in words")
        self.logger.info(f"Vocabulary ready with {count} words")

        self.ledger.load_all()
        self.adapter.load_all()
        self.evaluator.load_all()
        self.recorder.load_all()
        self.running = True
        self.logger.info("Learning engine started")

    def stop(self) -> None:
        """Release the database session."""
        if not self.running:
            return
        self.running = False
        if self.db is not None:
            self.db.close()
            self.db = None
        self.logger.info("Learning engine stopped")

    def select_for_session(
        self,
        count: Optional[int] = None,
        level: Optional[str] = None,
        category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Words to present next, most urgent first."""
        if count is None:
            count = settings.learning.session_size
        return self.scheduler.select_for_session(count, level=level, category=category, now=now)

    def start_session(self, now: Optional[datetime] = None) -> SessionRecord:
        return self.recorder.start(now)

    def record_answer(
        self,
        word_key: str,
        is_correct: bool,
        response_time_ms: float,
        game_mode: str,
        now: Optional[datetime] = None,
    ) -> ProgressRecord:
        """Record an answer, opening a session if none is open."""
        if self.recorder.current is None:
            self.recorder.start(now)
        return self.updater.record_answer(word_key, is_correct, response_time_ms, game_mode, now)

    def get_difficulty(self, game_mode: str) -> DifficultyTier:
        return self.adapter.get_difficulty(game_mode)

    def get_profile(self, game_mode: str) -> TierProfile:
        return self.adapter.get_profile(game_mode)

    def get_unlocked_achievements(self) -> List[AchievementUnlock]:
        return self.evaluator.get_unlocked()

    def aggregate_stats(self, now: Optional[datetime] = None) -> AggregateStats:
        """Statistics the achievement rules are checked against."""
        today = resolve_now(now).date()
        return AggregateStats(
            total_sessions=self.recorder.total_sessions(),
            mastered_words=self.ledger.mastered_count(),
            current_streak=self.recorder.current_streak(today),
            game_modes_played=self.recorder.game_modes_played(),
        )

    def complete_session(self, now: Optional[datetime] = None) -> Optional[SessionSummary]:
        """Close the open session and evaluate achievements against it."""
        now = resolve_now(now)
        summary = self.recorder.complete(now)
        if summary is None:
            return None
        session = self.recorder.history[-1]
        self.evaluator.evaluate(session, self.aggregate_stats(now), now)
        return summary

    def study_statistics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.scheduler.study_statistics(now)

    def insights(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Progress, streaks, level progression and the words to review next."""
        return self.reporter.insights(now)

    def recommendations(self, now: Optional[datetime] = None) -> List[Dict[str, str]]:
        return self.reporter.recommendations(now)

    def export_progress(self, now: Optional[datetime] = None) -> str:
        """Backup of the progress ledger as JSON text."""
        return self.ledger.export_data(now)

    def import_progress(self, raw: str) -> bool:
        """Restore the progress ledger from a backup.

        Returns False, keeping the current progress, when the backup is
        unreadable or cannot be stored.
        """
        try:
            count = self.ledger.import_data(raw)
        except ValueError as e:
            self.logger.error(f"Progress backup is unreadable: {e}")
            return False
        except PersistenceError as e:
            self.logger.error(f"Failed to store imported progress: {e}")
            monitoring.persistence_errors.labels(record="progress").inc()
            return False
        self.logger.info(f"Progress restored for {count} words")
        return True
