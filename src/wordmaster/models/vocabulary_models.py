"""Models for vocabulary items."""
from dataclasses import dataclass
from typing import Optional

# Proficiency levels in ascending order
LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")


@dataclass(frozen=True)
class WordRecord:
    """A learnable vocabulary item, created once at load time."""
    key: str  # lowercased word, unique in the catalog
    word: str
    level: str
    category: str
    examples: tuple[str, ...] = ()
    frequency: float = 1.0
    part_of_speech: Optional[str] = None
    difficulty: float = 1.0  # 1 (easiest) to 6
