"""Behavioural personalization: learning level, tips, recommendations and UI hints."""

import logging
from datetime import datetime
from typing import Callable

from .config import (
    PERSONALIZATION_STORAGE_KEY,
    LEARNING_LEVELS, UI_MODES, TONES,
    ERROR_RATE_DECAY, ERROR_RATE_PENALTY,
    MOBILE_MAX_WIDTH, TABLET_MAX_WIDTH,
    ADVANCED_SCORE, INTERMEDIATE_SCORE
)
from .interfaces import Storage
from .store import RecordStore
from .utils import local_now, to_iso, parse_iso, day_key, previous_day_key, round_half_up, list_value

logger = logging.getLogger(__name__)

TIMES_OF_DAY = ('morning', 'afternoon', 'evening', 'night')
DEVICE_TYPES = ('mobile', 'tablet', 'desktop')

# Features with a dedicated usage counter
COUNTED_FEATURES = ('speak', 'history', 'swap')


def detect_time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return 'morning'
    if 12 <= hour < 17:
        return 'afternoon'
    if 17 <= hour < 21:
        return 'evening'
    return 'night'


def detect_device_type(viewport_width: int) -> str:
    if viewport_width < MOBILE_MAX_WIDTH:
        return 'mobile'
    if viewport_width < TABLET_MAX_WIDTH:
        return 'tablet'
    return 'desktop'


def next_consecutive_days(consecutive_days: int, last_active_date: str, now: datetime) -> int:
    """Streak of active days after a visit at `now`.

    A visit the day after the last one extends the streak, a visit on the
    same day keeps it and anything else starts a new streak of one.
    """
    if last_active_date == previous_day_key(now):
        return consecutive_days + 1
    if last_active_date != day_key(now):
        return 1
    return consecutive_days


class BehaviorMetrics:
    """Accumulated usage signals for one user."""

    def __init__(self):
        self.avg_session_duration = 0       # minutes
        self.translations_per_session = 0
        self.unique_languages_used = 0
        self.consecutive_days = 0
        self.last_active_date = ''          # YYYY-MM-DD
        self.features_used = []
        self.preferred_time_of_day = 'morning'
        self.device_type = 'desktop'
        self.total_time_spent = 0           # minutes
        self.error_rate = 0                 # percent
        self.speak_feature_usage = 0
        self.history_feature_usage = 0
        self.swap_feature_usage = 0

    def to_dict(self) -> dict:
        return {
            'avgSessionDuration': self.avg_session_duration,
            'translationsPerSession': self.translations_per_session,
            'uniqueLanguagesUsed': self.unique_languages_used,
            'consecutiveDays': self.consecutive_days,
            'lastActiveDate': self.last_active_date,
            'featuresUsed': list(self.features_used),
            'preferredTimeOfDay': self.preferred_time_of_day,
            'deviceType': self.device_type,
            'totalTimeSpent': self.total_time_spent,
            'errorRate': self.error_rate,
            'speakFeatureUsage': self.speak_feature_usage,
            'historyFeatureUsage': self.history_feature_usage,
            'swapFeatureUsage': self.swap_feature_usage
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BehaviorMetrics':
        metrics = cls()
        metrics.avg_session_duration = float(data.get('avgSessionDuration', 0))
        metrics.translations_per_session = int(data.get('translationsPerSession', 0))
        metrics.unique_languages_used = int(data.get('uniqueLanguagesUsed', 0))
        metrics.consecutive_days = int(data.get('consecutiveDays', 0))
        metrics.last_active_date = data.get('lastActiveDate', '') or ''
        # Deduplicate while keeping first-use order
        features = []
        for feature in list_value(data.get('featuresUsed')):
            if feature not in features:
                features.append(feature)
        metrics.features_used = features
        if data.get('preferredTimeOfDay') in TIMES_OF_DAY:
            metrics.preferred_time_of_day = data['preferredTimeOfDay']
        if data.get('deviceType') in DEVICE_TYPES:
            metrics.device_type = data['deviceType']
        metrics.total_time_spent = float(data.get('totalTimeSpent', 0))
        metrics.error_rate = min(max(float(data.get('errorRate', 0)), 0), 100)
        metrics.speak_feature_usage = int(data.get('speakFeatureUsage', 0))
        metrics.history_feature_usage = int(data.get('historyFeatureUsage', 0))
        metrics.swap_feature_usage = int(data.get('swapFeatureUsage', 0))
        return metrics


class PersonalizationState:
    """Learning level, behaviour and what the user has already seen."""

    def __init__(self):
        self.learning_level = 'beginner'
        self.behavior = BehaviorMetrics()
        self.onboarding_complete = False
        self.tips_shown = []
        self.dismissed_recommendations = []
        self.preferred_tone = 'friendly'
        self.last_level_assessment = None

    @property
    def adaptive_ui_mode(self) -> str:
        return UI_MODES[self.learning_level]

    def to_dict(self) -> dict:
        return {
            'learningLevel': self.learning_level,
            'behavior': self.behavior.to_dict(),
            'onboardingComplete': self.onboarding_complete,
            'tipsShown': list(self.tips_shown),
            'dismissedRecommendations': list(self.dismissed_recommendations),
            'adaptiveUIMode': self.adaptive_ui_mode,
            'preferredTone': self.preferred_tone,
            'lastLevelAssessment': to_iso(self.last_level_assessment) or ''
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PersonalizationState':
        state = cls()
        if data.get('learningLevel') in LEARNING_LEVELS:
            state.learning_level = data['learningLevel']
        state.behavior = BehaviorMetrics.from_dict(data.get('behavior') or {})
        state.onboarding_complete = bool(data.get('onboardingComplete', False))
        state.tips_shown = list(dict.fromkeys(list_value(data.get('tipsShown'))))
        state.dismissed_recommendations = list(dict.fromkeys(list_value(data.get('dismissedRecommendations'))))
        if data.get('preferredTone') in TONES:
            state.preferred_tone = data['preferredTone']
        state.last_level_assessment = parse_iso(data.get('lastLevelAssessment'))
        return state


def assess_learning_level(behavior: BehaviorMetrics) -> str:
    """Score behaviour into a suggested learning level. Advisory only."""
    score = 0

    if behavior.total_time_spent > 120:
        score += 2
    elif behavior.total_time_spent > 30:
        score += 1

    if behavior.unique_languages_used >= 4:
        score += 2
    elif behavior.unique_languages_used >= 2:
        score += 1

    if behavior.translations_per_session > 20:
        score += 2
    elif behavior.translations_per_session > 10:
        score += 1

    if behavior.consecutive_days >= 7:
        score += 2
    elif behavior.consecutive_days >= 3:
        score += 1

    if len(behavior.features_used) >= 5:
        score += 1

    if score >= ADVANCED_SCORE:
        return 'advanced'
    if score >= INTERMEDIATE_SCORE:
        return 'intermediate'
    return 'beginner'


# Tip rules in evaluation order: (tip, condition)
TIP_RULES = [
    ({'id': 'first_translation', 'title': 'Getting Started',
      'message': 'Tap the microphone and speak clearly. Your words will be translated instantly!',
      'trigger': 'first_visit', 'priority': 1},
     lambda s: s.learning_level == 'beginner'),
    ({'id': 'speak_feature', 'title': 'Listen & Learn',
      'message': 'Tap the speaker icon on any translation to hear the correct pronunciation.',
      'trigger': 'after_first_translation', 'priority': 2},
     lambda s: s.behavior.speak_feature_usage == 0),
    ({'id': 'swap_feature', 'title': 'Quick Swap',
      'message': 'Use the swap button to quickly reverse your language pair!',
      'trigger': 'multiple_translations', 'priority': 3},
     lambda s: s.behavior.swap_feature_usage == 0 and s.behavior.translations_per_session > 3),
    ({'id': 'streak_tip', 'title': 'Keep It Up!',
      'message': "You're on a {consecutive_days}-day streak! Consistency is key to language learning.",
      'trigger': 'streak', 'priority': 2},
     lambda s: s.behavior.consecutive_days >= 3),
    ({'id': 'advanced_features', 'title': 'Level Up',
      'message': 'Try practicing with longer sentences to improve your fluency!',
      'trigger': 'intermediate_level', 'priority': 3},
     lambda s: s.learning_level == 'intermediate'),
    ({'id': 'night_study', 'title': 'Night Owl Mode',
      'message': 'Studies show learning before sleep helps retention. Great time to practice!',
      'trigger': 'night_session', 'priority': 4},
     lambda s: s.behavior.preferred_time_of_day == 'night'),
]

# Recommendation rules in evaluation order: (recommendation, condition)
RECOMMENDATION_RULES = [
    ({'id': 'try_new_language', 'type': 'language', 'title': 'Explore New Languages',
      'description': 'Try translating to a different language to expand your horizons!', 'priority': 1},
     lambda s: s.behavior.unique_languages_used < 2),
    ({'id': 'set_goal', 'type': 'goal', 'title': 'Set a Daily Goal',
      'description': 'Challenge yourself with 10 translations per day to build a habit.', 'priority': 2},
     lambda s: s.behavior.translations_per_session < 5),
    ({'id': 'practice_basics', 'type': 'practice', 'title': 'Start with Common Phrases',
      'description': 'Try greetings like "Hello", "Thank you", and "Goodbye" to build confidence.', 'priority': 1},
     lambda s: s.learning_level == 'beginner'),
    ({'id': 'practice_sentences', 'type': 'practice', 'title': 'Practice Full Sentences',
      'description': 'Move beyond words to complete sentences for better fluency.', 'priority': 2},
     lambda s: s.learning_level == 'intermediate'),
    ({'id': 'practice_complex', 'type': 'practice', 'title': 'Master Complex Expressions',
      'description': 'Try idioms and complex phrases to sound like a native speaker.', 'priority': 2},
     lambda s: s.learning_level == 'advanced'),
    ({'id': 'use_history', 'type': 'feature', 'title': 'Review Your History',
      'description': "Check your translation history to reinforce what you've learned.", 'priority': 3},
     lambda s: s.behavior.history_feature_usage == 0 and s.behavior.translations_per_session > 5),
    ({'id': 'start_streak', 'type': 'goal', 'title': 'Start a Learning Streak',
      'description': 'Visit daily to build a streak and accelerate your learning!', 'priority': 2},
     lambda s: s.behavior.consecutive_days == 0),
]

PERSONALIZED_COPY = {
    'welcome_title': {
        'beginner': 'Start Your Journey',
        'intermediate': 'Keep Growing',
        'advanced': 'Master New Languages',
    },
    'record_prompt': {
        'beginner': 'Tap to speak (try simple words first!)',
        'intermediate': 'Tap to speak your sentence',
        'advanced': 'Tap to translate complex phrases',
    },
    'empty_state': {
        'beginner': 'Say "Hello" to get started!',
        'intermediate': 'Try a full sentence like "How are you?"',
        'advanced': 'Challenge yourself with idioms or technical terms',
    },
    'progress_message': {
        'beginner': "You're doing great! Every word counts.",
        'intermediate': 'Solid progress! Keep pushing your limits.',
        'advanced': "Impressive dedication! You're almost fluent.",
    },
}

TIME_GREETINGS = {
    'morning': 'Good morning',
    'afternoon': 'Good afternoon',
    'evening': 'Good evening',
    'night': 'Burning the midnight oil',
}


def contextual_tips(state: PersonalizationState) -> list[dict]:
    """Tips whose trigger holds and that were not shown yet, most urgent first."""
    tips = []
    for tip, condition in TIP_RULES:
        if tip['id'] in state.tips_shown or not condition(state):
            continue
        tip = dict(tip)
        tip['message'] = tip['message'].format(consecutive_days=state.behavior.consecutive_days)
        tips.append(tip)
    return sorted(tips, key=lambda t: t['priority'])


def recommendations(state: PersonalizationState) -> list[dict]:
    """Recommendations whose trigger holds and that were not dismissed, most urgent first."""
    recs = [
        dict(rec) for rec, condition in RECOMMENDATION_RULES
        if rec['id'] not in state.dismissed_recommendations and condition(state)
    ]
    return sorted(recs, key=lambda r: r['priority'])


def personalized_copy(state: PersonalizationState, key: str) -> str:
    return PERSONALIZED_COPY.get(key, {}).get(state.learning_level, '')


def ui_visibility(state: PersonalizationState) -> dict[str, bool]:
    mode = state.adaptive_ui_mode
    behavior = state.behavior
    return {
        'show_advanced_options': mode == 'advanced',
        'show_tutorial_hints': mode == 'simple',
        'show_detailed_stats': mode != 'simple',
        'show_recommendations': True,
        'show_streak_badge': behavior.consecutive_days >= 2,
        'show_progress_ring': True,
        'simplified_layout': mode == 'simple',
        'show_history_panel': behavior.history_feature_usage > 0 or behavior.translations_per_session > 3,
    }


def smart_greeting(state: PersonalizationState) -> str:
    behavior = state.behavior
    streak = behavior.consecutive_days
    greeting = TIME_GREETINGS.get(behavior.preferred_time_of_day, 'Hello')
    if streak >= 7:
        return f"{greeting}! {streak}-day streak!"
    if streak >= 3:
        return f"{greeting}! {streak} days strong!"
    if state.learning_level == 'beginner':
        return f"{greeting}! Ready to learn?"
    return f"{greeting}!"


class PersonalizationEngine:
    """Tracks behaviour for one user and derives personalised views."""

    def __init__(self, storage: Storage, user_id: str = "default",
                 clock: Callable[[], datetime] = local_now):
        self.store = RecordStore(storage, PERSONALIZATION_STORAGE_KEY, user_id)
        self.clock = clock
        self.session_started_at = None
        self.state = self._load()

    def _load(self) -> PersonalizationState:
        data = self.store.load()
        if data is None:
            return PersonalizationState()
        try:
            return PersonalizationState.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding malformed personalization state for {self.store.user_id}: {e}")
            return PersonalizationState()

    def _save(self) -> bool:
        return self.store.save(self.state.to_dict())

    @property
    def learning_level(self) -> str:
        return self.state.learning_level

    @property
    def adaptive_ui_mode(self) -> str:
        return self.state.adaptive_ui_mode

    @property
    def behavior(self) -> BehaviorMetrics:
        return self.state.behavior

    def begin_session(self, viewport_width: int = None) -> None:
        """Start a session: update the day streak and context signals.

        Only the first call of a session has an effect, so re-rendering
        callers cannot advance the streak twice.
        """
        if self.session_started_at is not None:
            return
        now = self.clock()
        behavior = self.state.behavior
        behavior.consecutive_days = next_consecutive_days(
            behavior.consecutive_days, behavior.last_active_date, now
        )
        behavior.last_active_date = day_key(now)
        behavior.preferred_time_of_day = detect_time_of_day(now.hour)
        if viewport_width is not None:
            behavior.device_type = detect_device_type(viewport_width)
        self.session_started_at = now
        logger.info(f"Session started for {self.store.user_id}: day streak {behavior.consecutive_days}")
        self._save()

    def end_session(self) -> float | None:
        """Close the session and fold its duration into the time metrics.
        Returns the duration in minutes, or None if no session was open."""
        if self.session_started_at is None:
            return None
        duration = (self.clock() - self.session_started_at).total_seconds() / 60
        behavior = self.state.behavior
        if behavior.avg_session_duration > 0:
            behavior.avg_session_duration = round_half_up((behavior.avg_session_duration + duration) / 2)
        else:
            behavior.avg_session_duration = duration
        behavior.total_time_spent += duration
        self.session_started_at = None
        self._save()
        return duration

    def assess_learning_level(self) -> str:
        return assess_learning_level(self.state.behavior)

    def update_learning_level(self, level: str) -> None:
        if level not in LEARNING_LEVELS:
            raise ValueError(f"Unknown learning level: {level}")
        self.state.learning_level = level
        self.state.last_level_assessment = self.clock()
        logger.info(f"Learning level for {self.store.user_id} set to {level}")
        self._save()

    def set_preferred_tone(self, tone: str) -> None:
        if tone not in TONES:
            raise ValueError(f"Unknown tone: {tone}")
        self.state.preferred_tone = tone
        self._save()

    def track_feature_usage(self, feature: str) -> None:
        behavior = self.state.behavior
        if feature not in behavior.features_used:
            behavior.features_used.append(feature)
        if feature in COUNTED_FEATURES:
            counter = f'{feature}_feature_usage'
            setattr(behavior, counter, getattr(behavior, counter) + 1)
        self._save()

    def track_translation(self, success: bool, language: str = None) -> None:
        behavior = self.state.behavior
        behavior.translations_per_session += 1
        if success:
            behavior.error_rate = behavior.error_rate * ERROR_RATE_DECAY
        else:
            behavior.error_rate = min(behavior.error_rate + ERROR_RATE_PENALTY, 100)
        logger.debug(f"Tracked {'successful' if success else 'failed'} translation to {language}")
        self._save()

    def track_language_usage(self, languages: list[str]) -> None:
        behavior = self.state.behavior
        behavior.unique_languages_used = max(behavior.unique_languages_used, len(set(languages)))
        self._save()

    def complete_onboarding(self) -> None:
        self.state.onboarding_complete = True
        self._save()

    def mark_tip_shown(self, tip_id: str) -> None:
        if tip_id in self.state.tips_shown:
            return
        self.state.tips_shown.append(tip_id)
        self._save()

    def dismiss_recommendation(self, recommendation_id: str) -> None:
        if recommendation_id in self.state.dismissed_recommendations:
            return
        self.state.dismissed_recommendations.append(recommendation_id)
        self._save()

    def get_contextual_tips(self) -> list[dict]:
        return contextual_tips(self.state)

    def get_recommendations(self) -> list[dict]:
        return recommendations(self.state)

    def get_personalized_copy(self, key: str) -> str:
        return personalized_copy(self.state, key)

    def get_ui_visibility(self) -> dict[str, bool]:
        return ui_visibility(self.state)

    def get_smart_greeting(self) -> str:
        return smart_greeting(self.state)

    def reset(self) -> None:
        """Forget all behaviour and preferences; the open session stays open."""
        self.state = PersonalizationState()
        self.store.clear()
