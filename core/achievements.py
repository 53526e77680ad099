"""Achievement catalog and unlock tracking."""

import logging
from datetime import datetime
from typing import Callable

from .config import (
    ACHIEVEMENTS_STORAGE_KEY, RARITY_POINTS,
    NIGHT_OWL_HOURS, EARLY_BIRD_HOURS
)
from .interfaces import Storage
from .store import RecordStore
from .utils import local_now, to_iso, parse_iso, in_hour_window

logger = logging.getLogger(__name__)

CATEGORIES = ('milestone', 'streak', 'explorer', 'mastery', 'special')

ACHIEVEMENT_DEFINITIONS = [
    # Milestones
    {'id': 'first_translation', 'title': 'First Words', 'description': 'Complete your first translation',
     'icon': 'Baby', 'category': 'milestone', 'requirement': 1, 'rarity': 'common'},
    {'id': 'ten_translations', 'title': 'Getting Started', 'description': 'Complete 10 translations',
     'icon': 'Rocket', 'category': 'milestone', 'requirement': 10, 'rarity': 'common'},
    {'id': 'fifty_translations', 'title': 'Dedicated Learner', 'description': 'Complete 50 translations',
     'icon': 'BookOpen', 'category': 'milestone', 'requirement': 50, 'rarity': 'rare'},
    {'id': 'hundred_translations', 'title': 'Century Club', 'description': 'Complete 100 translations',
     'icon': 'Award', 'category': 'milestone', 'requirement': 100, 'rarity': 'rare'},
    {'id': 'five_hundred_translations', 'title': 'Language Enthusiast', 'description': 'Complete 500 translations',
     'icon': 'Star', 'category': 'milestone', 'requirement': 500, 'rarity': 'epic'},
    {'id': 'thousand_translations', 'title': 'Polyglot Master', 'description': 'Complete 1000 translations',
     'icon': 'Crown', 'category': 'milestone', 'requirement': 1000, 'rarity': 'legendary'},
    # Streaks
    {'id': 'streak_3', 'title': 'Consistent', 'description': 'Maintain a 3-day streak',
     'icon': 'Flame', 'category': 'streak', 'requirement': 3, 'rarity': 'common'},
    {'id': 'streak_7', 'title': 'Week Warrior', 'description': 'Maintain a 7-day streak',
     'icon': 'Flame', 'category': 'streak', 'requirement': 7, 'rarity': 'rare'},
    {'id': 'streak_14', 'title': 'Fortnight Fighter', 'description': 'Maintain a 14-day streak',
     'icon': 'Flame', 'category': 'streak', 'requirement': 14, 'rarity': 'rare'},
    {'id': 'streak_30', 'title': 'Monthly Master', 'description': 'Maintain a 30-day streak',
     'icon': 'Flame', 'category': 'streak', 'requirement': 30, 'rarity': 'epic'},
    {'id': 'streak_100', 'title': 'Unstoppable', 'description': 'Maintain a 100-day streak',
     'icon': 'Flame', 'category': 'streak', 'requirement': 100, 'rarity': 'legendary'},
    # Explorer
    {'id': 'explorer_2', 'title': 'Curious Mind', 'description': 'Learn 2 different languages',
     'icon': 'Globe', 'category': 'explorer', 'requirement': 2, 'rarity': 'common'},
    {'id': 'explorer_5', 'title': 'World Traveler', 'description': 'Learn 5 different languages',
     'icon': 'Globe', 'category': 'explorer', 'requirement': 5, 'rarity': 'rare'},
    {'id': 'explorer_10', 'title': 'Global Citizen', 'description': 'Learn 10 different languages',
     'icon': 'Globe', 'category': 'explorer', 'requirement': 10, 'rarity': 'epic'},
    # Mastery
    {'id': 'daily_goal_1', 'title': 'Goal Getter', 'description': 'Complete your daily goal once',
     'icon': 'Target', 'category': 'mastery', 'requirement': 1, 'rarity': 'common'},
    {'id': 'daily_goal_7', 'title': 'Goal Crusher', 'description': 'Complete your daily goal 7 times',
     'icon': 'Target', 'category': 'mastery', 'requirement': 7, 'rarity': 'rare'},
    {'id': 'daily_goal_30', 'title': 'Goal Legend', 'description': 'Complete your daily goal 30 times',
     'icon': 'Target', 'category': 'mastery', 'requirement': 30, 'rarity': 'epic'},
    # Special
    {'id': 'night_owl', 'title': 'Night Owl', 'description': 'Practice after midnight',
     'icon': 'Moon', 'category': 'special', 'requirement': 1, 'rarity': 'rare'},
    {'id': 'early_bird', 'title': 'Early Bird', 'description': 'Practice before 6 AM',
     'icon': 'Sunrise', 'category': 'special', 'requirement': 1, 'rarity': 'rare'},
    {'id': 'practice_master', 'title': 'Practice Master', 'description': 'Complete 50 practice sessions',
     'icon': 'Brain', 'category': 'special', 'requirement': 50, 'rarity': 'epic'},
]

# Counter name -> achievements it feeds, as accepted by check_achievements()
COUNTER_ACHIEVEMENTS = {
    'total_translations': ['first_translation', 'ten_translations', 'fifty_translations',
                           'hundred_translations', 'five_hundred_translations', 'thousand_translations'],
    'streak': ['streak_3', 'streak_7', 'streak_14', 'streak_30', 'streak_100'],
    'languages_used': ['explorer_2', 'explorer_5', 'explorer_10'],
    'daily_goals_completed': ['daily_goal_1', 'daily_goal_7', 'daily_goal_30'],
    'practice_sessions': ['practice_master'],
}


class Achievement:
    """A catalog entry plus the user's progress towards it."""

    def __init__(self, id: str, title: str, description: str, icon: str,
                 category: str, requirement: int, rarity: str):
        self.id = id
        self.title = title
        self.description = description
        self.icon = icon
        self.category = category
        self.requirement = requirement
        self.rarity = rarity
        self.progress = 0
        self.unlocked = False
        self.unlocked_at = None

    @property
    def points(self) -> int:
        return RARITY_POINTS[self.rarity]

    @classmethod
    def from_definition(cls, definition: dict) -> 'Achievement':
        return cls(
            definition['id'], definition['title'], definition['description'], definition['icon'],
            definition['category'], definition['requirement'], definition['rarity']
        )

    def to_dict(self) -> dict:
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'category': self.category,
            'requirement': self.requirement,
            'rarity': self.rarity,
            'progress': self.progress,
            'unlocked': self.unlocked,
        }
        if self.unlocked_at is not None:
            data['unlockedAt'] = to_iso(self.unlocked_at)
        return data


def merge_achievements(definitions: list[dict], persisted: list[dict] | None) -> list[Achievement]:
    """Reconcile the catalog with stored progress.

    Catalog fields always come from the definitions; only progress and
    unlock state are taken from storage. Stored entries that are no longer
    in the catalog are dropped, new catalog entries start locked at zero.
    """
    stored_by_id = {}
    for entry in persisted or []:
        if isinstance(entry, dict) and 'id' in entry:
            stored_by_id[entry['id']] = entry

    merged = []
    for definition in definitions:
        achievement = Achievement.from_definition(definition)
        stored = stored_by_id.get(achievement.id)
        if stored:
            achievement.progress = max(0, int(stored.get('progress', 0)))
            achievement.unlocked = bool(stored.get('unlocked', False))
            if achievement.unlocked:
                achievement.unlocked_at = parse_iso(stored.get('unlockedAt'))
                # An unlock never reverts, even if the requirement was raised since
                achievement.progress = max(achievement.progress, achievement.requirement)
        merged.append(achievement)
    return merged


def total_points(achievements: list[Achievement]) -> int:
    """Sum of rarity points over unlocked achievements."""
    return sum(a.points for a in achievements if a.unlocked)


class AchievementTracker:
    """Tracks progress on the achievement catalog for one user."""

    def __init__(self, storage: Storage, user_id: str = "default",
                 clock: Callable[[], datetime] = local_now,
                 definitions: list[dict] = None):
        self.store = RecordStore(storage, ACHIEVEMENTS_STORAGE_KEY, user_id)
        self.clock = clock
        self.definitions = definitions if definitions is not None else ACHIEVEMENT_DEFINITIONS
        self.achievements = []
        self.last_checked = None
        self.newly_unlocked = []
        self._load()

    def _load(self) -> None:
        data = self.store.load() or {}
        try:
            self.achievements = merge_achievements(self.definitions, data.get('achievements'))
            self.last_checked = parse_iso(data.get('lastChecked')) or self.clock()
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed achievement state for {self.store.user_id}: {e}")
            self.achievements = merge_achievements(self.definitions, None)
            self.last_checked = self.clock()
        self._by_id = {a.id: a for a in self.achievements}

    def _save(self) -> bool:
        return self.store.save(self.to_dict())

    def to_dict(self) -> dict:
        return {
            'achievements': [a.to_dict() for a in self.achievements],
            'totalPoints': self.total_points,
            'lastChecked': to_iso(self.last_checked)
        }

    @property
    def total_points(self) -> int:
        return total_points(self.achievements)

    @property
    def unlocked_count(self) -> int:
        return sum(1 for a in self.achievements if a.unlocked)

    @property
    def total_count(self) -> int:
        return len(self.achievements)

    def get_achievement(self, achievement_id: str) -> Achievement | None:
        return self._by_id.get(achievement_id)

    def get_by_category(self) -> dict[str, list[Achievement]]:
        grouped = {category: [] for category in CATEGORIES}
        for achievement in self.achievements:
            grouped.setdefault(achievement.category, []).append(achievement)
        return grouped

    def _apply_progress(self, achievement_id: str, progress: int, now: datetime) -> Achievement | None:
        """Raise progress without saving. Returns the achievement if it just unlocked."""
        achievement = self._by_id.get(achievement_id)
        if achievement is None:
            logger.debug(f"Ignoring progress for unknown achievement {achievement_id}")
            return None
        achievement.progress = max(achievement.progress, int(progress))
        if not achievement.unlocked and achievement.progress >= achievement.requirement:
            achievement.unlocked = True
            achievement.unlocked_at = now
            self.newly_unlocked.append(achievement)
            logger.info(f"Achievement unlocked for {self.store.user_id}: {achievement.id}")
            return achievement
        return None

    def update_progress(self, achievement_id: str, progress: int) -> Achievement | None:
        """Record progress on one achievement.

        Progress only moves up; the first time it reaches the requirement
        the achievement unlocks and is queued in newly_unlocked.
        Returns the achievement if this call unlocked it.
        """
        if achievement_id not in self._by_id:
            return None
        unlocked = self._apply_progress(achievement_id, progress, self.clock())
        self._save()
        return unlocked

    def check_achievements(self, total_translations: int = None, streak: int = None,
                           languages_used: int = None, daily_goals_completed: int = None,
                           practice_sessions: int = None) -> list[Achievement]:
        """Feed a snapshot of counters into every related achievement.

        Counters left as None are skipped. The night owl and early bird
        achievements are fed from the current hour on every call.
        Returns the achievements unlocked by this call.
        """
        now = self.clock()
        counters = {
            'total_translations': total_translations,
            'streak': streak,
            'languages_used': languages_used,
            'daily_goals_completed': daily_goals_completed,
            'practice_sessions': practice_sessions,
        }

        unlocked = []
        # Both windows include 4 AM, so both can register from one call
        if in_hour_window(now.hour, NIGHT_OWL_HOURS):
            unlocked.append(self._apply_progress('night_owl', 1, now))
        if in_hour_window(now.hour, EARLY_BIRD_HOURS):
            unlocked.append(self._apply_progress('early_bird', 1, now))

        for counter, value in counters.items():
            if value is None:
                continue
            for achievement_id in COUNTER_ACHIEVEMENTS[counter]:
                unlocked.append(self._apply_progress(achievement_id, value, now))

        self.last_checked = now
        self._save()
        return [a for a in unlocked if a is not None]

    def pop_newly_unlocked(self) -> list[Achievement]:
        """Return and clear the queue of achievements awaiting notification."""
        pending = self.newly_unlocked
        self.newly_unlocked = []
        return pending

    def clear_newly_unlocked(self) -> None:
        self.newly_unlocked = []

    def reset(self) -> None:
        """Forget all progress."""
        self.achievements = merge_achievements(self.definitions, None)
        self._by_id = {a.id: a for a in self.achievements}
        self.newly_unlocked = []
        self.last_checked = self.clock()
        self.store.clear()
