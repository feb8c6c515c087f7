"""Service holding the catalog of learnable words."""
import asyncio
import csv
import io
import logging
import random
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Union

from wordmaster import monitoring
from wordmaster.exceptions import LoadError
from wordmaster.models.vocabulary_models import LEVELS, WordRecord

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("word", "level")
EXAMPLE_COLUMNS = ("example1", "example2", "example3")

LEVEL_DIFFICULTY = {level: index + 1 for index, level in enumerate(LEVELS)}
COMPLEX_AFFIXES = ("un", "dis", "pre", "tion", "ness", "ment")

CATEGORY_KEYWORDS = {
    "Animals": ("animal", "pet", "cat", "dog", "bird", "fish", "zoo"),
    "Food": ("food", "eat", "drink", "meal", "cook", "restaurant", "kitchen"),
    "Travel": ("travel", "trip", "hotel", "airport", "train", "car", "vacation"),
    "Daily Life": ("home", "house", "work", "school", "family", "friend", "time"),
    "Body": ("body", "head", "hand", "foot", "health", "doctor", "hospital"),
    "Nature": ("tree", "flower", "water", "sun", "moon", "weather", "season"),
    "Technology": ("computer", "phone", "internet", "digital", "online", "app"),
    "Sports": ("sport", "game", "play", "run", "swim", "ball", "team"),
    "Education": ("learn", "study", "school", "teacher", "book", "test", "exam"),
    "Emotions": ("happy", "sad", "angry", "love", "fear", "excited", "worried"),
}
DEFAULT_CATEGORY = "General"

# Offline vocabulary used when the content source cannot be loaded
SEED_WORDS = (
    ("cat", "A1", ("A small furry animal that says meow", "Pet that catches mice", "Animal with whiskers")),
    ("dog", "A1", ("Loyal animal that barks", "Man's best friend", "Pet that wags its tail")),
    ("book", "A1", ("You read this to learn", "Paper with words and pictures", "Stories and information inside")),
    ("house", "A1", ("Building where people live", "Place with rooms and roof", "Your home where you sleep")),
    ("water", "A1", ("Clear liquid you drink", "Comes from taps and rivers", "Falls from clouds as rain")),
)


class ContentSource(ABC):
    """Where the delimited vocabulary text comes from."""

    @abstractmethod
    async def read(self) -> str:
        """Return the raw text.

        Raises:
            LoadError: The content is unreachable.
        """


class FileContentSource(ContentSource):
    """Vocabulary file on disk, read off the event loop thread."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def read(self) -> str:
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Cannot read vocabulary file {self.path}: {e}") from e


class TextContentSource(ContentSource):
    """Vocabulary text already held in memory."""

    def __init__(self, text: str):
        self.text = text

    async def read(self) -> str:
        return self.text


def calculate_difficulty(level: str, word: str) -> float:
    """Estimate difficulty from level, word length and common affixes."""
    difficulty = float(LEVEL_DIFFICULTY.get(level, 1))
    if len(word) > 8:
        difficulty += 0.5
    if len(word) > 12:
        difficulty += 0.5
    if any(affix in word for affix in COMPLEX_AFFIXES):
        difficulty += 0.3
    return min(6.0, difficulty)


def determine_category(word: str, examples: tuple[str, ...]) -> str:
    """Pick the first category whose keywords appear in the word or examples."""
    text = " ".join((word, *examples)).lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


class VocabularyStore:
    """In-memory catalog mapping lowercased words to WordRecords."""

    def __init__(self):
        self.words: Dict[str, WordRecord] = {}
        self.skipped_rows = 0
        self.used_fallback = False

    async def load(self, source: ContentSource) -> int:
        """Load the catalog from source and return the number of words.

        Never leaves the store empty: when the source is unreachable or has
        no usable rows the built-in seed words are loaded instead.
        """
        logger.info("Loading vocabulary...")
        try:
            text = await source.read()
            words, skipped = self._parse(text)
        except LoadError as e:
            logger.warning(f"Loading vocabulary failed, using fallback data: {e}")
            monitoring.vocabulary_fallbacks.inc()
            self.words = self._seed_words()
            self.skipped_rows = 0
            self.used_fallback = True
            return len(self.words)

        self.words = words
        self.skipped_rows = skipped
        self.used_fallback = False
        if skipped:
            logger.warning(f"Skipped {skipped} malformed vocabulary rows")
            monitoring.vocabulary_rows_skipped.inc(skipped)
        logger.info(f"Loaded {len(words)} vocabulary words")
        return len(words)

    def _parse(self, text: str) -> tuple[Dict[str, WordRecord], int]:
        """Parse delimited text into records, counting malformed rows.

        Raises:
            LoadError: The header is missing required columns or no row is usable.
        """
        try:
            return self._read_rows(csv.reader(io.StringIO(text)))
        except csv.Error as e:
            raise LoadError(f"Vocabulary content is not valid delimited text: {e}") from e

    def _read_rows(self, reader) -> tuple[Dict[str, WordRecord], int]:
        header = next(reader, None)
        if not header:
            raise LoadError("Vocabulary content is empty")
        columns = [name.strip().lower() for name in header]
        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise LoadError(f"Vocabulary header is missing columns: {', '.join(missing)}")

        words: Dict[str, WordRecord] = {}
        skipped = 0
        for values in reader:
            if not any(value.strip() for value in values):
                continue
            record = self._parse_row(columns, values)
            if record is None:
                skipped += 1
                continue
            if record.key in words:
                logger.warning(f"Duplicate vocabulary word {record.word!r}, keeping the first row")
                skipped += 1
                continue
            words[record.key] = record

        if not words:
            raise LoadError("Vocabulary content has no usable rows")
        return words, skipped

    def _parse_row(self, columns: List[str], values: List[str]) -> Optional[WordRecord]:
        if len(values) > len(columns):
            return None
        row = {name: value.strip() for name, value in zip(columns, values)}

        word = row.get("word", "")
        level = row.get("level", "").upper()
        if not word or level not in LEVEL_DIFFICULTY:
            return None

        frequency = 1.0
        if row.get("frequency"):
            try:
                frequency = float(row["frequency"])
            except ValueError:
                return None

        examples = tuple(row[name] for name in EXAMPLE_COLUMNS if row.get(name))
        return WordRecord(
            key=word.lower(),
            word=word,
            level=level,
            category=row.get("category") or determine_category(word, examples),
            examples=examples,
            frequency=frequency,
            part_of_speech=row.get("part_of_speech") or None,
            difficulty=calculate_difficulty(level, word),
        )

    def _seed_words(self) -> Dict[str, WordRecord]:
        return {
            word: WordRecord(
                key=word,
                word=word,
                level=level,
                category=determine_category(word, examples),
                examples=examples,
                difficulty=calculate_difficulty(level, word),
            )
            for word, level, examples in SEED_WORDS
        }

    def get(self, key: str) -> Optional[WordRecord]:
        """Get a word by its text, case-insensitively."""
        return self.words.get(key.lower())

    def keys(self) -> List[str]:
        return list(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def __contains__(self, key: str) -> bool:
        return key.lower() in self.words

    def filter(self, level: Optional[str] = None, category: Optional[str] = None) -> List[WordRecord]:
        """Words matching the optional level and category."""
        return [
            record for record in self.words.values()
            if (level is None or record.level == level)
            and (category is None or record.category == category)
        ]

    def random_sample(
        self,
        count: int,
        level: Optional[str] = None,
        category: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> List[WordRecord]:
        """Get up to count random words, optionally filtered."""
        pool = self.filter(level=level, category=category)
        return (rng or random).sample(pool, min(count, len(pool)))

    def by_level(self, level: str) -> List[WordRecord]:
        """Words of one level, easiest first."""
        return sorted(self.filter(level=level), key=lambda record: (record.difficulty, record.key))

    def by_category(self, category: str) -> List[WordRecord]:
        return self.filter(category=category)

    def categories(self) -> List[str]:
        return sorted({record.category for record in self.words.values()})

    def related_words(self, key: str, count: int = 5) -> List[WordRecord]:
        """Words sharing the category or with similar difficulty."""
        record = self.get(key)
        if record is None:
            return []
        related = [
            other for other in self.words.values()
            if other.key != record.key
            and (other.category == record.category or abs(other.difficulty - record.difficulty) < 0.5)
        ]
        related.sort(key=lambda other: (other.category != record.category, other.key))
        return related[:count]

    def statistics(self) -> Dict[str, Dict[str, int]]:
        """Word counts by level and by category."""
        return {
            "by_level": dict(Counter(record.level for record in self.words.values())),
            "by_category": dict(Counter(record.category for record in self.words.values())),
        }
