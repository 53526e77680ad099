"""Spaced-repetition scheduling of practice items (SM-2)."""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable

from .config import (
    SCHEDULER_STORAGE_KEY,
    DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR,
    MIN_QUALITY, MAX_QUALITY, PASSING_QUALITY,
    SECOND_INTERVAL_DAYS, MAX_INTERVAL_DAYS, SESSION_LOG_LIMIT,
    MASTERED_REPETITIONS, LEARNING_REPETITIONS, REVIEWING_REPETITIONS
)
from .interfaces import Storage
from .store import RecordStore
from .utils import local_now, to_iso, parse_iso, round_half_up

logger = logging.getLogger(__name__)


def calculate_sm2(repetitions: int, interval: int, ease_factor: float, quality: int) -> tuple[int, int, float]:
    """Apply one SM-2 step.

    Args:
        repetitions: Consecutive successful reviews so far
        interval: Current interval in days
        ease_factor: Current ease factor
        quality: Recall quality (0-5, below 3 is a failure)

    Returns:
        (repetitions, interval, ease_factor) after the review
    """
    if quality < PASSING_QUALITY:
        repetitions = 0
        interval = 1
    else:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = min(round_half_up(interval * ease_factor), MAX_INTERVAL_DAYS)
        repetitions += 1

    miss = 5 - quality
    ease_factor = max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))
    return repetitions, interval, ease_factor


class PracticeItem:
    """A phrase pair scheduled for review."""

    def __init__(self, id: str, original: str, translated: str, phonetic: str = '',
                 source_lang: str = '', target_lang: str = '',
                 next_review: datetime | None = None):
        self.id = id
        self.original = original
        self.translated = translated
        self.phonetic = phonetic
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.ease_factor = DEFAULT_EASE_FACTOR
        self.interval = 0
        self.repetitions = 0
        self.next_review = next_review or local_now()
        self.last_review = None

    def review(self, quality: int, now: datetime) -> None:
        """Reschedule the item after an answer of the given quality."""
        repetitions, interval, ease_factor = calculate_sm2(
            self.repetitions, self.interval, self.ease_factor, quality
        )
        next_review = now + timedelta(days=interval)
        self.repetitions, self.interval, self.ease_factor = repetitions, interval, ease_factor
        self.next_review = next_review
        self.last_review = now

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= now

    def to_dict(self) -> dict:
        data = {
            'id': self.id,
            'original': self.original,
            'translated': self.translated,
            'phonetic': self.phonetic,
            'sourceLang': self.source_lang,
            'targetLang': self.target_lang,
            'easeFactor': self.ease_factor,
            'interval': self.interval,
            'repetitions': self.repetitions,
            'nextReview': to_iso(self.next_review),
        }
        if self.last_review is not None:
            data['lastReview'] = to_iso(self.last_review)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'PracticeItem':
        item = cls(
            str(data['id']),
            data.get('original', ''),
            data.get('translated', ''),
            data.get('phonetic', ''),
            data.get('sourceLang', ''),
            data.get('targetLang', ''),
            next_review=parse_iso(data.get('nextReview')),
        )
        item.ease_factor = max(MIN_EASE_FACTOR, float(data.get('easeFactor', DEFAULT_EASE_FACTOR)))
        item.interval = min(max(0, int(data.get('interval', 0))), MAX_INTERVAL_DAYS)
        item.repetitions = max(0, int(data.get('repetitions', 0)))
        item.last_review = parse_iso(data.get('lastReview'))
        return item


class PracticeSession:
    """One answered review, kept for auditing only."""

    def __init__(self, item_id: str, quality: int, timestamp: datetime):
        self.item_id = item_id
        self.quality = quality
        self.timestamp = timestamp

    def to_dict(self) -> dict:
        return {
            'itemId': self.item_id,
            'quality': self.quality,
            'timestamp': to_iso(self.timestamp)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PracticeSession':
        return cls(str(data['itemId']), int(data['quality']), parse_iso(data['timestamp']))


def get_mastery_level(item: PracticeItem) -> str:
    """Classify an item by its run of successful reviews."""
    if item.repetitions >= MASTERED_REPETITIONS:
        return 'mastered'
    if item.repetitions >= LEARNING_REPETITIONS:
        return 'learning'
    if item.repetitions >= REVIEWING_REPETITIONS:
        return 'reviewing'
    return 'new'


class SchedulerState:
    """Practice items plus review counters."""

    def __init__(self):
        self.items = {}  # id -> PracticeItem, in import order
        self.sessions = []
        self.total_sessions = 0
        self.correct_answers = 0
        self.current_streak = 0
        self.best_streak = 0

    def to_dict(self) -> dict:
        return {
            'items': [item.to_dict() for item in self.items.values()],
            'sessions': [s.to_dict() for s in self.sessions],
            'totalSessions': self.total_sessions,
            'correctAnswers': self.correct_answers,
            'currentStreak': self.current_streak,
            'bestStreak': self.best_streak
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SchedulerState':
        state = cls()
        for item_data in data.get('items', []):
            item = PracticeItem.from_dict(item_data)
            if item.id not in state.items:
                state.items[item.id] = item
        state.sessions = [PracticeSession.from_dict(s) for s in data.get('sessions', [])][-SESSION_LOG_LIMIT:]
        state.total_sessions = int(data.get('totalSessions', 0))
        state.correct_answers = int(data.get('correctAnswers', 0))
        state.current_streak = int(data.get('currentStreak', 0))
        state.best_streak = max(int(data.get('bestStreak', 0)), state.current_streak)
        return state


class Scheduler:
    """Owns the practice items of one user and schedules their reviews."""

    def __init__(self, storage: Storage, user_id: str = "default",
                 clock: Callable[[], datetime] = local_now):
        self.store = RecordStore(storage, SCHEDULER_STORAGE_KEY, user_id)
        self.clock = clock
        self.state = self._load()

    def _load(self) -> SchedulerState:
        data = self.store.load()
        if data is None:
            return SchedulerState()
        try:
            return SchedulerState.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding malformed practice state for {self.store.user_id}: {e}")
            return SchedulerState()

    def _save(self) -> bool:
        return self.store.save(self.state.to_dict())

    @property
    def items(self) -> list[PracticeItem]:
        return list(self.state.items.values())

    @property
    def total_sessions(self) -> int:
        return self.state.total_sessions

    @property
    def correct_answers(self) -> int:
        return self.state.correct_answers

    @property
    def current_streak(self) -> int:
        return self.state.current_streak

    @property
    def best_streak(self) -> int:
        return self.state.best_streak

    @property
    def sessions(self) -> list[PracticeSession]:
        return list(self.state.sessions)

    def get_item(self, item_id: str) -> PracticeItem | None:
        return self.state.items.get(item_id)

    def import_items(self, candidates: Iterable[dict]) -> list[PracticeItem]:
        """Create practice items for candidates whose id is not known yet.

        Candidates are dicts with id, original, translated, phonetic,
        sourceLang and targetLang. Existing items are never overwritten.
        Returns the newly created items.
        """
        now = self.clock()
        created = []
        for candidate in candidates:
            item_id = str(candidate['id'])
            if item_id in self.state.items:
                continue
            item = PracticeItem(
                item_id,
                candidate.get('original', ''),
                candidate.get('translated', ''),
                candidate.get('phonetic', ''),
                candidate.get('sourceLang', ''),
                candidate.get('targetLang', ''),
                next_review=now,
            )
            self.state.items[item_id] = item
            created.append(item)
        if created:
            logger.info(f"Imported {len(created)} practice items for {self.store.user_id}")
        self._save()
        return created

    def get_due_items(self) -> list[PracticeItem]:
        """Items whose review time has passed, earliest first."""
        now = self.clock()
        due = [item for item in self.state.items.values() if item.is_due(now)]
        return sorted(due, key=lambda item: item.next_review)

    def get_upcoming_items(self) -> list[PracticeItem]:
        """Items not yet due, soonest first."""
        now = self.clock()
        upcoming = [item for item in self.state.items.values() if not item.is_due(now)]
        return sorted(upcoming, key=lambda item: item.next_review)

    def submit_answer(self, item_id: str, quality: int) -> PracticeItem | None:
        """Record an answer and reschedule the item.

        Unknown ids are ignored (the item may have been removed meanwhile).
        Returns the updated item, or None if nothing was recorded.
        """
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise ValueError(f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}")
        item = self.state.items.get(item_id)
        if item is None:
            logger.debug(f"Ignoring answer for unknown item {item_id}")
            return None

        now = self.clock()
        item.review(quality, now)

        state = self.state
        state.sessions.append(PracticeSession(item_id, quality, now))
        if len(state.sessions) > SESSION_LOG_LIMIT:
            state.sessions = state.sessions[-SESSION_LOG_LIMIT:]

        is_correct = quality >= PASSING_QUALITY
        state.total_sessions += 1
        if is_correct:
            state.correct_answers += 1
            state.current_streak += 1
        else:
            state.current_streak = 0
        state.best_streak = max(state.best_streak, state.current_streak)

        self._save()
        return item

    def remove_item(self, item_id: str) -> bool:
        """Delete an item. Returns False if it was not present."""
        if self.state.items.pop(item_id, None) is None:
            return False
        self._save()
        return True

    def get_accuracy(self) -> int:
        """Share of correct answers as a whole percentage."""
        if self.state.total_sessions == 0:
            return 0
        return round_half_up(self.state.correct_answers / self.state.total_sessions * 100)

    def get_mastery_level(self, item: PracticeItem) -> str:
        return get_mastery_level(item)

    def get_stats(self) -> dict:
        mastery = {'new': 0, 'reviewing': 0, 'learning': 0, 'mastered': 0}
        for item in self.state.items.values():
            mastery[get_mastery_level(item)] += 1
        due_count = len(self.get_due_items())
        return {
            'total_items': len(self.state.items),
            'due_count': due_count,
            'upcoming_count': len(self.state.items) - due_count,
            'total_sessions': self.state.total_sessions,
            'correct_answers': self.state.correct_answers,
            'accuracy': self.get_accuracy(),
            'current_streak': self.state.current_streak,
            'best_streak': self.state.best_streak,
            'mastery': mastery
        }

    def reset(self) -> None:
        """Forget all items and counters."""
        self.state = SchedulerState()
        self.store.clear()
