"""Test configuration."""
import os
from typing import Callable, Dict, Iterable, Optional

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

# Import after environment setup
from wordmaster.exceptions import PersistenceError
from wordmaster.models.vocabulary_models import WordRecord
from wordmaster.services.storage import MemoryKeyValueStore
from wordmaster.services.vocabulary_service import VocabularyStore

fake = Faker()


class FailingStore(MemoryKeyValueStore):
    """Memory store whose writes can be switched to fail."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.fail_writes = False
        self.fail_reads = False

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise PersistenceError(f"read of {key} failed")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError(f"write of {key} failed")
        super().set(key, value)


@pytest.fixture
def store() -> MemoryKeyValueStore:
    """Create an empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def failing_store() -> FailingStore:
    """Create a store whose failures can be toggled."""
    return FailingStore()


@pytest.fixture
def make_vocabulary() -> Callable[..., VocabularyStore]:
    """Build a vocabulary store holding the given words."""

    def _make(keys: Iterable[str], level: str = "A1", category: str = "General") -> VocabularyStore:
        vocabulary = VocabularyStore()
        vocabulary.words = {
            key: WordRecord(key=key, word=key, level=level, category=category)
            for key in keys
        }
        return vocabulary

    return _make


@pytest.fixture
def random_words() -> Callable[[int], list]:
    """Generate distinct lowercase words."""

    def _words(count: int) -> list:
        fake.unique.clear()
        return [fake.unique.word().lower() for _ in range(count)]

    return _words
