"""Achievement rules checked against session and aggregate statistics."""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from wordmaster import monitoring, signals
from wordmaster.exceptions import PersistenceError, PredicateError
from wordmaster.models.achievement_models import (
    DEFAULT_ACHIEVEMENTS,
    AchievementDefinition,
    AchievementUnlock,
    AchievementUnlocked,
    AggregateStats,
)
from wordmaster.models.serialization import dump_payload, from_iso, load_payload, resolve_now, to_iso
from wordmaster.models.session_models import SessionRecord
from wordmaster.services.storage import ACHIEVEMENTS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class AchievementEvaluator:
    """Owns the unlocked set; unlocks are never revoked."""

    def __init__(
        self,
        store: KeyValueStore,
        catalog: Iterable[AchievementDefinition] = DEFAULT_ACHIEVEMENTS,
    ):
        self.store = store
        self.catalog: Dict[str, AchievementDefinition] = {
            definition.id: definition for definition in catalog
        }
        self._unlocked: Dict[str, AchievementUnlock] = {}

    def is_unlocked(self, achievement_id: str) -> bool:
        return achievement_id in self._unlocked

    def get_unlocked(self) -> List[AchievementUnlock]:
        """Unlocked achievements, oldest first."""
        return sorted(self._unlocked.values(), key=lambda unlock: (unlock.unlocked_at, unlock.id))

    def _check(
        self,
        definition: AchievementDefinition,
        session: Optional[SessionRecord],
        stats: AggregateStats,
    ) -> bool:
        try:
            return bool(definition.requirement.is_satisfied(session, stats))
        except PredicateError as e:
            logger.debug(f"Achievement {definition.id} not satisfied: {e}")
            return False

    def evaluate(
        self,
        session: Optional[SessionRecord],
        stats: AggregateStats,
        now: Optional[datetime] = None,
    ) -> List[AchievementDefinition]:
        """Unlock every satisfied achievement and return the new ones."""
        now = resolve_now(now)
        newly_unlocked = []
        for achievement_id, definition in self.catalog.items():
            if achievement_id in self._unlocked:
                continue
            if self._check(definition, session, stats):
                self._unlocked[achievement_id] = AchievementUnlock(id=achievement_id, unlocked_at=now)
                newly_unlocked.append(definition)

        if not newly_unlocked:
            return []

        try:
            self.persist_all()
        except PersistenceError as e:
            logger.error(f"Failed to persist unlocked achievements: {e}")
            monitoring.persistence_errors.labels(record="achievements").inc()

        for definition in newly_unlocked:
            logger.info(f"Achievement unlocked: {definition.id} ({definition.title})")
            monitoring.achievements_unlocked.labels(achievement_id=definition.id).inc()
            signals.achievement_unlocked.send(
                self, payload=AchievementUnlocked(achievement=definition, unlocked_at=now)
            )
        return newly_unlocked

    def progress(self) -> Dict[str, Any]:
        """Catalog overview with an unlocked flag per achievement."""
        return {
            "total": len(self.catalog),
            "unlocked": sum(1 for achievement_id in self.catalog if achievement_id in self._unlocked),
            "achievements": [
                {
                    "id": definition.id,
                    "title": definition.title,
                    "description": definition.description,
                    "category": definition.category,
                    "unlocked": definition.id in self._unlocked,
                }
                for definition in self.catalog.values()
            ],
        }

    def load_all(self) -> int:
        """Load the unlocked set; unreadable data leaves it empty."""
        self._unlocked = {}
        try:
            raw = self.store.get(ACHIEVEMENTS_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to read achievements: {e}")
            return 0
        if raw is None:
            return 0

        try:
            entries = load_payload(raw)["unlocked"]
            if not isinstance(entries, list):
                raise ValueError("unlocked is not a list")
        except (ValueError, KeyError) as e:
            logger.error(f"Stored achievements are unreadable: {e}")
            return 0

        for data in entries:
            try:
                unlocked_at = from_iso(data["unlocked_at"])
                if unlocked_at is None:
                    raise ValueError("missing unlock time")
                unlock = AchievementUnlock(id=str(data["id"]), unlocked_at=unlocked_at)
            except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed achievement entry: {e}")
                continue
            self._unlocked.setdefault(unlock.id, unlock)
        return len(self._unlocked)

    def persist_all(self) -> None:
        """Write the unlocked set as one value.

        Raises:
            PersistenceError: The store rejected the write.
        """
        payload = dump_payload({
            "unlocked": [
                {"id": unlock.id, "unlocked_at": to_iso(unlock.unlocked_at)}
                for unlock in self.get_unlocked()
            ],
        })
        self.store.set(ACHIEVEMENTS_KEY, payload)
