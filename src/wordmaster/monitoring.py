"""Monitoring configuration for the learning engine."""
from prometheus_client import Counter, start_http_server

# Learning metrics
answers_recorded = Counter(
    "wordmaster_answers_recorded_total",
    "Total number of answers applied to the progress ledger",
    ["game_mode", "outcome"],
)

sessions_completed = Counter(
    "wordmaster_sessions_completed_total",
    "Total number of learning sessions completed",
)

# Adaptation metrics
difficulty_changes = Counter(
    "wordmaster_difficulty_changes_total",
    "Total number of difficulty tier transitions",
    ["game_mode", "direction"],
)

achievements_unlocked = Counter(
    "wordmaster_achievements_unlocked_total",
    "Total number of achievements unlocked",
    ["achievement_id"],
)

# Content metrics
vocabulary_rows_skipped = Counter(
    "wordmaster_vocabulary_rows_skipped_total",
    "Total number of malformed vocabulary rows skipped at load time",
)

vocabulary_fallbacks = Counter(
    "wordmaster_vocabulary_fallbacks_total",
    "Total number of times the built-in seed vocabulary was used",
)

# Storage metrics
persistence_errors = Counter(
    "wordmaster_persistence_errors_total",
    "Total number of durable store failures",
    ["record"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
