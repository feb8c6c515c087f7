"""Ledger of per-word learning progress."""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from wordmaster.config import LearningSettings, settings
from wordmaster.exceptions import PersistenceError
from wordmaster.models.progress_models import ProgressRecord
from wordmaster.models.serialization import as_utc, dump_payload, load_payload, resolve_now, to_iso
from wordmaster.services.storage import PROGRESS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class ProgressLedger:
    """Owns every ProgressRecord and keeps the durable copy in sync."""

    def __init__(self, store: KeyValueStore, learning: Optional[LearningSettings] = None):
        """Initialize the ledger with a durable store."""
        self.store = store
        self.learning = learning or settings.learning
        self._records: Dict[str, ProgressRecord] = {}

    @property
    def max_level(self) -> int:
        return self.learning.max_mastery_level

    def get(self, key: str) -> ProgressRecord:
        """Get the record for a word, zero-valued if it was never answered."""
        return self._records.get(key.lower(), ProgressRecord())

    def records(self) -> Dict[str, ProgressRecord]:
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def mastered_count(self, threshold: Optional[int] = None) -> int:
        """Count words whose mastery reached the threshold."""
        if threshold is None:
            threshold = self.learning.mastered_threshold
        return sum(1 for record in self._records.values() if record.mastery_level >= threshold)

    def apply(self, key: str, is_correct: bool, timestamp: datetime) -> ProgressRecord:
        """Apply one answer to a word's record and persist the ledger.

        Raises:
            PersistenceError: The ledger could not be written; the previous
                record is kept in memory.
        """
        key = key.lower()
        previous = self._records.get(key)
        updated = self.get(key).answered(is_correct, as_utc(timestamp), self.max_level)
        self._records[key] = updated
        try:
            self.persist_all()
        except PersistenceError:
            if previous is None:
                del self._records[key]
            else:
                self._records[key] = previous
            raise
        logger.debug(f"Progress for {key}: mastery {updated.mastery_level}, "
                     f"{updated.correct_attempts}/{updated.total_attempts} correct")
        return updated

    def reset(self, key: Optional[str] = None) -> None:
        """Forget the progress of one word, or of every word.

        Raises:
            PersistenceError: The reset could not be written.
        """
        snapshot = dict(self._records)
        if key is None:
            self._records.clear()
        else:
            self._records.pop(key.lower(), None)
        try:
            self.persist_all()
        except PersistenceError:
            self._records = snapshot
            raise
        logger.info(f"Progress reset for {key or 'all words'}")

    def _decode(self, raw: str) -> Dict[str, ProgressRecord]:
        """Decode a ledger payload, skipping malformed entries.

        Raises:
            ValueError, KeyError: The payload as a whole is unreadable.
        """
        entries = load_payload(raw)["records"]
        if not isinstance(entries, dict):
            raise ValueError("records is not a mapping")

        records = {}
        for key, data in entries.items():
            try:
                records[key.lower()] = ProgressRecord.from_data(data, self.max_level)
            except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed progress entry {key!r}: {e}")
        return records

    def load_all(self) -> int:
        """Load the ledger from the store and return the number of records.

        A missing or unreadable payload leaves the ledger empty.
        """
        self._records = {}
        try:
            raw = self.store.get(PROGRESS_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to read progress, starting empty: {e}")
            return 0
        if raw is None:
            return 0

        try:
            self._records = self._decode(raw)
        except (ValueError, KeyError) as e:
            logger.error(f"Stored progress is unreadable, starting empty: {e}")
            return 0
        logger.info(f"Loaded progress for {len(self._records)} words")
        return len(self._records)

    def persist_all(self) -> None:
        """Write the whole ledger as one value.

        Raises:
            PersistenceError: The store rejected the write.
        """
        self.store.set(PROGRESS_KEY, dump_payload(self._body()))

    def _body(self) -> Dict[str, Any]:
        return {"records": {key: record.to_data() for key, record in self._records.items()}}

    def export_data(self, now: Optional[datetime] = None) -> str:
        """Serialize the ledger as a backup that import_data accepts."""
        return dump_payload({**self._body(), "exported_at": to_iso(resolve_now(now))})

    def import_data(self, raw: str) -> int:
        """Replace the ledger with a backup and return the number of records.

        Raises:
            ValueError: The backup is not a readable ledger payload; the
                current ledger is kept.
            PersistenceError: The imported ledger could not be written; the
                current ledger is kept.
        """
        try:
            records = self._decode(raw)
        except KeyError as e:
            raise ValueError(f"Backup has no {e} section") from e

        snapshot = self._records
        self._records = records
        try:
            self.persist_all()
        except PersistenceError:
            self._records = snapshot
            raise
        logger.info(f"Imported progress for {len(records)} words")
        return len(records)
