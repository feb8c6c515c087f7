"""Key-value durable store used to persist engine state."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordmaster.exceptions import PersistenceError
from wordmaster.models.models import StoredValue

logger = logging.getLogger(__name__)

# Namespaced keys, one logical record per component
PROGRESS_KEY = "wordmaster.progress"
DIFFICULTY_KEY = "wordmaster.difficulty"
ACHIEVEMENTS_KEY = "wordmaster.achievements"
SESSIONS_KEY = "wordmaster.sessions"


class KeyValueStore(ABC):
    """String keys mapped to string values.

    Implementations raise PersistenceError when the backend fails.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value stored under key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key; missing keys are ignored."""


class MemoryKeyValueStore(KeyValueStore):
    """Store kept in a dictionary, for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the ``key_value_store`` table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            row = self.db.query(StoredValue).filter(StoredValue.key == key).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read {key}: {e}")
            raise PersistenceError(f"Failed to read {key}") from e
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        try:
            row = self.db.query(StoredValue).filter(StoredValue.key == key).first()
            if row:
                row.value = value
            else:
                self.db.add(StoredValue(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to write {key}: {e}")
            raise PersistenceError(f"Failed to write {key}") from e

    def remove(self, key: str) -> None:
        try:
            self.db.query(StoredValue).filter(StoredValue.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove {key}: {e}")
            raise PersistenceError(f"Failed to remove {key}") from e
