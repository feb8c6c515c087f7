from blinker import Namespace

# Signals emitted by the learning engine for the presentation layer.
_signals = Namespace()

# Sent once per newly unlocked achievement.
# Arguments:
# - sender: The AchievementEvaluator instance
# - payload: AchievementUnlocked
achievement_unlocked = _signals.signal("achievement-unlocked")

# Sent when a game mode moves to another difficulty tier.
# Arguments:
# - sender: The DifficultyAdapter instance
# - payload: DifficultyChanged
difficulty_changed = _signals.signal("difficulty-changed")

# Sent when a session is closed.
# Arguments:
# - sender: The SessionRecorder instance
# - payload: SessionSummary
session_completed = _signals.signal("session-completed")
