"""Write path of an answered item."""
import logging
from datetime import datetime
from typing import Optional

from wordmaster import monitoring
from wordmaster.exceptions import PersistenceError
from wordmaster.models.progress_models import ProgressRecord
from wordmaster.models.serialization import resolve_now
from wordmaster.models.session_models import AnswerEvent
from wordmaster.services.difficulty_service import DifficultyAdapter
from wordmaster.services.progress_service import ProgressLedger
from wordmaster.services.session_service import SessionRecorder
from wordmaster.services.vocabulary_service import VocabularyStore

logger = logging.getLogger(__name__)


class MasteryUpdater:
    """Single entry point for answers.

    Applies the answer to the ledger, then forwards it to the session
    recorder and the difficulty adapter in that order.
    """

    def __init__(
        self,
        ledger: ProgressLedger,
        recorder: SessionRecorder,
        adapter: DifficultyAdapter,
        vocabulary: Optional[VocabularyStore] = None,
    ):
        """Initialize the updater.

        With a vocabulary, answers for words outside the catalog are ignored.
        """
        self.ledger = ledger
        self.recorder = recorder
        self.adapter = adapter
        self.vocabulary = vocabulary

    def record_answer(
        self,
        word_key: str,
        is_correct: bool,
        response_time_ms: float,
        game_mode: str,
        now: Optional[datetime] = None,
    ) -> ProgressRecord:
        """Apply one answer and return the word's resulting progress.

        When the word is not in the catalog, or the ledger cannot be
        persisted, the answer is dropped entirely and the last stored record
        is returned.
        """
        now = resolve_now(now)
        word_key = word_key.lower()
        if self.vocabulary is not None and word_key not in self.vocabulary:
            logger.warning(f"Ignoring answer for unknown word {word_key}")
            monitoring.answers_recorded.labels(game_mode=game_mode, outcome="ignored").inc()
            return self.ledger.get(word_key)
        try:
            record = self.ledger.apply(word_key, is_correct, now)
        except PersistenceError as e:
            logger.error(f"Answer for {word_key} not recorded: {e}")
            monitoring.persistence_errors.labels(record="progress").inc()
            return self.ledger.get(word_key)

        monitoring.answers_recorded.labels(
            game_mode=game_mode, outcome="correct" if is_correct else "incorrect"
        ).inc()
        self.recorder.record_event(AnswerEvent(
            word_key=word_key,
            is_correct=is_correct,
            response_time_ms=float(response_time_ms),
            game_mode=game_mode,
            answered_at=now,
        ))
        self.adapter.record_sample(game_mode, is_correct, response_time_ms)
        return record
