"""Configuration constants for lingua application."""

# Storage keys (one record per engine)
SCHEDULER_STORAGE_KEY = 'lingua_spaced_repetition'
ACHIEVEMENTS_STORAGE_KEY = 'lingua_achievements'
PERSONALIZATION_STORAGE_KEY = 'lingua_personalization'
PREFERENCES_STORAGE_KEY = 'lingua_preferences'

# SM-2 scheduling
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3           # Answers below this count as a failed recall
SECOND_INTERVAL_DAYS = 6      # Interval after the second successful review
SESSION_LOG_LIMIT = 100       # Practice sessions kept for auditing
MAX_INTERVAL_DAYS = 36500     # Review intervals are capped at about 100 years

# Mastery thresholds (by consecutive successful repetitions)
MASTERED_REPETITIONS = 5
LEARNING_REPETITIONS = 3
REVIEWING_REPETITIONS = 1

# Achievement points per rarity
RARITY_POINTS = {
    'common': 10,
    'rare': 25,
    'epic': 50,
    'legendary': 100,
}

# Time-of-day achievement windows (local hour, end exclusive)
NIGHT_OWL_HOURS = (0, 5)
EARLY_BIRD_HOURS = (4, 6)

# Personalization
LEARNING_LEVELS = ('beginner', 'intermediate', 'advanced')
UI_MODES = {
    'beginner': 'simple',
    'intermediate': 'standard',
    'advanced': 'advanced',
}
TONES = ('friendly', 'professional', 'encouraging')
ERROR_RATE_DECAY = 0.9        # errorRate multiplier on a successful translation
ERROR_RATE_PENALTY = 10       # errorRate increase on a failed translation
MOBILE_MAX_WIDTH = 768        # Viewport widths below this are mobile
TABLET_MAX_WIDTH = 1024       # Viewport widths below this are tablets

# Learning level scoring
ADVANCED_SCORE = 7
INTERMEDIATE_SCORE = 3

# Preferences and translation history
DEFAULT_SOURCE_LANGUAGE = 'en'
DEFAULT_TARGET_LANGUAGE = 'es'
DEFAULT_DAILY_GOAL = 10
MAX_DAILY_GOAL = 100
HISTORY_LIMIT = 50
RECENT_LANGUAGES_LIMIT = 5
FAVORITE_LANGUAGES_LIMIT = 5
NEW_SESSION_GAP_HOURS = 1     # Visits further apart than this start a new session
TRANSLATION_MILESTONES = [10, 25, 50, 100, 250, 500, 1000]

# Review answer buttons (Hard / Good / Easy) and the SM-2 quality they submit
ANSWER_QUALITIES = {
    '1': ('Hard', 1),
    '2': ('Good', 3),
    '3': ('Easy', 5),
}
