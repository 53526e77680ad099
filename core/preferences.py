"""Language preferences, translation history and daily goal tracking."""

import logging
import uuid
from datetime import datetime
from typing import Callable

from .config import (
    PREFERENCES_STORAGE_KEY,
    DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE,
    DEFAULT_DAILY_GOAL, MAX_DAILY_GOAL,
    HISTORY_LIMIT, RECENT_LANGUAGES_LIMIT, FAVORITE_LANGUAGES_LIMIT,
    NEW_SESSION_GAP_HOURS, TRANSLATION_MILESTONES
)
from .interfaces import Storage
from .store import RecordStore
from .utils import local_now, to_iso, parse_iso, day_key, list_value

logger = logging.getLogger(__name__)


class PreferencesState:
    """Everything the user chose or produced outside of practice."""

    def __init__(self):
        self.source_language = DEFAULT_SOURCE_LANGUAGE
        self.target_language = DEFAULT_TARGET_LANGUAGE
        self.recent_languages = []
        self.favorite_languages = []
        self.total_translations = 0
        self.today_translations = 0
        self.daily_goal = DEFAULT_DAILY_GOAL
        self.daily_goals_completed = 0
        self.session_count = 0
        self.last_visit = None
        self.last_day_reset = ''
        self.last_goal_day = ''
        # Newest first: [{id, original, translated, phonetic, sourceLang, targetLang, timestamp}]
        self.translation_history = []

    def to_dict(self) -> dict:
        return {
            'sourceLanguage': self.source_language,
            'targetLanguage': self.target_language,
            'recentLanguages': list(self.recent_languages),
            'favoriteLanguages': list(self.favorite_languages),
            'totalTranslations': self.total_translations,
            'todayTranslations': self.today_translations,
            'dailyGoal': self.daily_goal,
            'dailyGoalsCompleted': self.daily_goals_completed,
            'sessionCount': self.session_count,
            'lastVisit': to_iso(self.last_visit),
            'lastDayReset': self.last_day_reset,
            'lastGoalDay': self.last_goal_day,
            'translationHistory': [dict(entry) for entry in self.translation_history]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PreferencesState':
        state = cls()
        state.source_language = data.get('sourceLanguage', DEFAULT_SOURCE_LANGUAGE)
        state.target_language = data.get('targetLanguage', DEFAULT_TARGET_LANGUAGE)
        state.recent_languages = list_value(data.get('recentLanguages'))[:RECENT_LANGUAGES_LIMIT]
        state.favorite_languages = list_value(data.get('favoriteLanguages'))[:FAVORITE_LANGUAGES_LIMIT]
        state.total_translations = int(data.get('totalTranslations', 0))
        state.today_translations = int(data.get('todayTranslations', 0))
        state.daily_goal = min(max(int(data.get('dailyGoal', DEFAULT_DAILY_GOAL)), 1), MAX_DAILY_GOAL)
        state.daily_goals_completed = int(data.get('dailyGoalsCompleted', 0))
        state.session_count = int(data.get('sessionCount', 0))
        state.last_visit = parse_iso(data.get('lastVisit'))
        state.last_day_reset = data.get('lastDayReset', '') or ''
        state.last_goal_day = data.get('lastGoalDay', '') or ''
        state.translation_history = [
            dict(entry) for entry in list_value(data.get('translationHistory'))
            if isinstance(entry, dict) and 'id' in entry
        ][:HISTORY_LIMIT]
        return state


class Preferences:
    """Owns the translation history and related counters for one user.

    The history doubles as the source of candidates for practice import.
    """

    def __init__(self, storage: Storage, user_id: str = "default",
                 clock: Callable[[], datetime] = local_now):
        self.store = RecordStore(storage, PREFERENCES_STORAGE_KEY, user_id)
        self.clock = clock
        self.is_new = False
        self.state = self._load()

    def _load(self) -> PreferencesState:
        data = self.store.load()
        if data is None:
            self.is_new = True
            return PreferencesState()
        try:
            return PreferencesState.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding malformed preferences for {self.store.user_id}: {e}")
            self.is_new = True
            return PreferencesState()

    def _save(self) -> bool:
        return self.store.save(self.state.to_dict())

    @property
    def history(self) -> list[dict]:
        return [dict(entry) for entry in self.state.translation_history]

    @property
    def total_translations(self) -> int:
        return self.state.total_translations

    @property
    def daily_goals_completed(self) -> int:
        return self.state.daily_goals_completed

    def begin_session(self) -> None:
        """Count the visit and roll the daily counter over on a new day."""
        now = self.clock()
        state = self.state
        if self.is_new:
            state.session_count = 1
            self.is_new = False
        elif state.last_visit is None or (now - state.last_visit).total_seconds() > NEW_SESSION_GAP_HOURS * 3600:
            state.session_count += 1
        today = day_key(now)
        if state.last_day_reset != today:
            state.today_translations = 0
        state.last_visit = now
        state.last_day_reset = today
        self._save()

    def add_to_history(self, original: str, translated: str, phonetic: str,
                       source_lang: str, target_lang: str) -> dict:
        """Prepend a translation to the history. Returns the new entry."""
        entry = {
            'id': str(uuid.uuid4()),
            'original': original,
            'translated': translated,
            'phonetic': phonetic,
            'sourceLang': source_lang,
            'targetLang': target_lang,
            'timestamp': to_iso(self.clock())
        }
        self.state.translation_history = [entry] + self.state.translation_history[:HISTORY_LIMIT - 1]
        self._save()
        return entry

    def record_translation(self) -> bool:
        """Count a completed translation.
        Returns True when this translation completed the daily goal.
        The goal counts at most once per calendar day, even if it is raised
        after being met."""
        state = self.state
        today = day_key(self.clock())
        state.total_translations += 1
        state.today_translations += 1
        goal_reached = state.today_translations == state.daily_goal and state.last_goal_day != today
        if goal_reached:
            state.daily_goals_completed += 1
            state.last_goal_day = today
            logger.info(f"Daily goal of {state.daily_goal} reached for {self.store.user_id}")
        self._save()
        return goal_reached

    def clear_history(self) -> None:
        self.state.translation_history = []
        self._save()

    def set_source_language(self, language: str) -> None:
        self.state.source_language = language
        self._save()

    def set_target_language(self, language: str) -> None:
        state = self.state
        state.target_language = language
        others = [lang for lang in state.recent_languages if lang != language]
        state.recent_languages = [language] + others[:RECENT_LANGUAGES_LIMIT - 1]
        self._save()

    def set_daily_goal(self, goal: int) -> None:
        if not 1 <= goal <= MAX_DAILY_GOAL:
            raise ValueError(f"Daily goal must be between 1 and {MAX_DAILY_GOAL}, got {goal}")
        self.state.daily_goal = goal
        self._save()

    def add_favorite_language(self, language: str) -> None:
        favorites = self.state.favorite_languages
        if language in favorites or len(favorites) >= FAVORITE_LANGUAGES_LIMIT:
            return
        favorites.append(language)
        self._save()

    def languages_used(self) -> list[str]:
        """Distinct languages seen in the history, recent picks and current pair."""
        seen = []
        candidates = [self.state.source_language, self.state.target_language] + self.state.recent_languages
        for entry in self.state.translation_history:
            candidates.extend([entry.get('sourceLang'), entry.get('targetLang')])
        for lang in candidates:
            if lang and lang not in seen:
                seen.append(lang)
        return seen

    def get_progress_percentage(self) -> float:
        state = self.state
        return min(state.today_translations / state.daily_goal * 100, 100)

    def get_welcome_message(self) -> str:
        state = self.state
        hour = self.clock().hour
        if hour < 12:
            time_greeting = 'Good morning'
        elif hour < 18:
            time_greeting = 'Good afternoon'
        else:
            time_greeting = 'Good evening'

        if state.session_count <= 1:
            return f"{time_greeting}! Welcome to Lingua. Start speaking to translate."
        if state.session_count <= 5:
            return f"{time_greeting}! You've translated {state.total_translations} phrases so far."
        if state.today_translations >= state.daily_goal:
            return f"Amazing! You've hit your daily goal of {state.daily_goal} translations!"
        remaining = state.daily_goal - state.today_translations
        return f"{time_greeting}! {remaining} more translations to reach today's goal."

    def get_milestone_message(self) -> str:
        total = self.state.total_translations
        for milestone in TRANSLATION_MILESTONES:
            if milestone > total:
                return f"{milestone - total} more to reach {milestone} translations!"
        return "You're a Lingua master!"

    def reset(self) -> None:
        self.state = PreferencesState()
        self.is_new = True
        self.store.clear()
