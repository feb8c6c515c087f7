"""Configuration settings for the learning engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
VOCABULARY_FILE = DATA_DIR / "words.csv"

# Learning settings
REVIEW_INTERVALS = [1, 3, 7, 14, 30, 60, 120]  # days between reviews, indexed by mastery level
MAX_MASTERY_LEVEL = 6
MASTERED_THRESHOLD = 4  # mastery level from which a word counts as mastered


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordmaster.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ContentSettings:
    """Vocabulary content settings."""
    vocabulary_path: Path = Path(os.getenv("VOCABULARY_PATH", str(VOCABULARY_FILE)))


@dataclass
class LearningSettings:
    """Spaced repetition settings."""
    review_intervals: list[int] = field(default_factory=lambda: list(REVIEW_INTERVALS))
    max_mastery_level: int = int(os.getenv("MAX_MASTERY_LEVEL", str(MAX_MASTERY_LEVEL)))
    mastered_threshold: int = int(os.getenv("MASTERED_THRESHOLD", str(MASTERED_THRESHOLD)))
    session_size: int = int(os.getenv("SESSION_SIZE", "10"))


@dataclass
class AdaptationSettings:
    """Difficulty adaptation settings."""
    window_size: int = int(os.getenv("ADAPTATION_WINDOW_SIZE", "20"))
    promote_accuracy: float = 0.85
    promote_response_ms: float = 3000.0
    demote_accuracy: float = 0.6
    demote_response_ms: float = 8000.0


@dataclass
class SessionSettings:
    """Session history settings."""
    history_limit: int = int(os.getenv("SESSION_HISTORY_LIMIT", "100"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_content_settings() -> ContentSettings:
    """Get content settings."""
    return ContentSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_adaptation_settings() -> AdaptationSettings:
    """Get adaptation settings."""
    return AdaptationSettings()


def get_session_settings() -> SessionSettings:
    """Get session settings."""
    return SessionSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    content: ContentSettings = field(default_factory=get_content_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    adaptation: AdaptationSettings = field(default_factory=get_adaptation_settings)
    session: SessionSettings = field(default_factory=get_session_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.learning.review_intervals:
            raise ValueError("REVIEW_INTERVALS must not be empty")

        if any(days <= 0 for days in self.learning.review_intervals):
            raise ValueError("REVIEW_INTERVALS must be positive")

        if self.learning.max_mastery_level < 1:
            raise ValueError("MAX_MASTERY_LEVEL must be positive")

        if not 0 < self.learning.mastered_threshold <= self.learning.max_mastery_level:
            raise ValueError("MASTERED_THRESHOLD must be between 1 and MAX_MASTERY_LEVEL")

        if self.learning.session_size < 1:
            raise ValueError("SESSION_SIZE must be positive")

        if self.adaptation.window_size < 1:
            raise ValueError("ADAPTATION_WINDOW_SIZE must be positive")

        if self.adaptation.demote_accuracy > self.adaptation.promote_accuracy:
            raise ValueError("Demote accuracy cannot be greater than promote accuracy")

        if self.session.history_limit < 1:
            raise ValueError("SESSION_HISTORY_LIMIT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
