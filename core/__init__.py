from .interfaces import Storage, TranslationProvider, TranslationError
from .scheduler import PracticeItem, PracticeSession, Scheduler, calculate_sm2, get_mastery_level
from .achievements import (
    Achievement, AchievementTracker, ACHIEVEMENT_DEFINITIONS, merge_achievements
)
from .personalization import (
    BehaviorMetrics, PersonalizationState, PersonalizationEngine, assess_learning_level
)
from .preferences import Preferences
from .config import RARITY_POINTS, LEARNING_LEVELS, UI_MODES

__all__ = [
    'Storage', 'TranslationProvider', 'TranslationError',
    'PracticeItem', 'PracticeSession', 'Scheduler', 'calculate_sm2', 'get_mastery_level',
    'Achievement', 'AchievementTracker', 'ACHIEVEMENT_DEFINITIONS', 'merge_achievements',
    'BehaviorMetrics', 'PersonalizationState', 'PersonalizationEngine', 'assess_learning_level',
    'Preferences',
    'RARITY_POINTS', 'LEARNING_LEVELS', 'UI_MODES'
]
