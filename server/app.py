"""FastAPI server for lingua application."""

import logging
import os

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Optional

logger = logging.getLogger(__name__)

from core.interfaces import Storage, TranslationProvider, TranslationError
from core.scheduler import Scheduler, PracticeItem, get_mastery_level
from core.achievements import AchievementTracker, Achievement
from core.personalization import PersonalizationEngine, PERSONALIZED_COPY
from core.preferences import Preferences

from server.gemini_provider import GeminiProvider
from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage


# Pydantic models for API
class SessionRequest(BaseModel):
    user_id: str = "default"
    viewport_width: Optional[int] = None


class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    source_lang: Optional[str] = None
    target_lang: Optional[str] = None
    user_id: str = "default"


class AnswerRequest(BaseModel):
    item_id: str
    quality: int
    user_id: str = "default"


class PreferencesRequest(BaseModel):
    user_id: str = "default"
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    daily_goal: Optional[int] = None
    favorite_language: Optional[str] = None


class LevelRequest(BaseModel):
    level: str
    user_id: str = "default"


class FeatureRequest(BaseModel):
    feature: str
    user_id: str = "default"


class ToneRequest(BaseModel):
    tone: str
    user_id: str = "default"


class UserRequest(BaseModel):
    user_id: str = "default"


class TranslateResponse(BaseModel):
    id: str
    original: str
    translated_text: str
    phonetic: str
    source_lang: str
    target_lang: str
    translate_ms: int
    total_translations: int
    daily_goal_reached: bool
    newly_unlocked: list[dict]


class AnswerResponse(BaseModel):
    updated: bool
    item: Optional[dict]
    mastery: Optional[str]
    accuracy: int
    current_streak: int
    best_streak: int
    newly_unlocked: list[dict]


class StatusResponse(BaseModel):
    user_id: str
    learning_level: str
    adaptive_ui_mode: str
    greeting: str
    welcome_message: str
    milestone_message: str
    total_translations: int
    today_progress: float
    consecutive_days: int
    due_count: int
    accuracy: int
    total_points: int
    unlocked_count: int
    total_count: int


class Learner:
    """The engines of one user, composed the way the UI layer uses them."""

    def __init__(self, storage: Storage, user_id: str):
        self.user_id = user_id
        self.scheduler = Scheduler(storage, user_id)
        self.achievements = AchievementTracker(storage, user_id)
        self.personalization = PersonalizationEngine(storage, user_id)
        self.preferences = Preferences(storage, user_id)

    def begin_session(self, viewport_width: int = None) -> None:
        self.personalization.begin_session(viewport_width)
        self.preferences.begin_session()

    def sync_practice_items(self) -> list[PracticeItem]:
        """Seed the scheduler with the translation history."""
        return self.scheduler.import_items(self.preferences.history)

    def check_achievements(self, **counters) -> list[Achievement]:
        snapshot = {
            'total_translations': self.preferences.total_translations,
            'streak': self.personalization.behavior.consecutive_days,
            'languages_used': self.personalization.behavior.unique_languages_used,
            'daily_goals_completed': self.preferences.daily_goals_completed,
        }
        snapshot.update(counters)
        return self.achievements.check_achievements(**snapshot)

    def reset(self) -> None:
        self.scheduler.reset()
        self.achievements.reset()
        self.personalization.reset()
        self.preferences.reset()


# Global state (in production, use proper DI)
storage: Storage = None
translation_provider: TranslationProvider = None
learners: dict[str, Learner] = {}


def get_learner(user_id: str = "default") -> Learner:
    """Get or create the engines for a user. A new learner starts a session."""
    if user_id not in learners:
        learner = Learner(storage, user_id)
        learner.begin_session()
        learners[user_id] = learner
    return learners[user_id]


def item_to_dict(item: PracticeItem) -> dict:
    data = item.to_dict()
    data['mastery'] = get_mastery_level(item)
    return data


def achievements_to_list(achievements: list[Achievement]) -> list[dict]:
    return [a.to_dict() for a in achievements]


app = FastAPI(title="Lingua API", description="Phrase review, achievements and personalization API")


@app.on_event("startup")
async def startup():
    """Initialize storage and translation provider on startup."""
    global storage, translation_provider

    # Use PostgreSQL by default, set LINGUA_STORAGE=file to use file storage
    storage_type = os.environ.get('LINGUA_STORAGE', 'postgres')
    if storage_type == 'file':
        storage = FileStorage()
        logger.info("Using file storage")
    else:
        storage = PostgresStorage()
        logger.info("Using PostgreSQL storage")

    api_key = os.environ.get('GEMINI_API_KEY')
    if not api_key:
        try:
            api_key = storage.load_config().get('gemini_api_key')
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"No translation config: {e}")
    if api_key:
        translation_provider = GeminiProvider(api_key)
    else:
        logger.warning("GEMINI_API_KEY not set, translation is disabled")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "lingua"}


@app.get("/api/status", response_model=StatusResponse)
async def get_status(user_id: str = "default"):
    """Get a summary of the user's progress."""
    learner = get_learner(user_id)
    personalization = learner.personalization
    preferences = learner.preferences
    achievements = learner.achievements
    return StatusResponse(
        user_id=user_id,
        learning_level=personalization.learning_level,
        adaptive_ui_mode=personalization.adaptive_ui_mode,
        greeting=personalization.get_smart_greeting(),
        welcome_message=preferences.get_welcome_message(),
        milestone_message=preferences.get_milestone_message(),
        total_translations=preferences.total_translations,
        today_progress=preferences.get_progress_percentage(),
        consecutive_days=personalization.behavior.consecutive_days,
        due_count=len(learner.scheduler.get_due_items()),
        accuracy=learner.scheduler.get_accuracy(),
        total_points=achievements.total_points,
        unlocked_count=achievements.unlocked_count,
        total_count=achievements.total_count
    )


@app.post("/api/session/begin")
async def begin_session(request: SessionRequest):
    """Start a session explicitly (e.g. with the client's viewport width)."""
    if request.user_id in learners:
        learner = learners[request.user_id]
        learner.begin_session(request.viewport_width)
    else:
        learner = Learner(storage, request.user_id)
        learner.begin_session(request.viewport_width)
        learners[request.user_id] = learner
    return {
        "consecutive_days": learner.personalization.behavior.consecutive_days,
        "greeting": learner.personalization.get_smart_greeting()
    }


@app.post("/api/session/end")
async def end_session(request: UserRequest):
    """Close the session and record its duration."""
    learner = learners.pop(request.user_id, None)
    if learner is None:
        return {"duration_minutes": None}
    duration = learner.personalization.end_session()
    return {"duration_minutes": duration}


@app.post("/api/translate", response_model=TranslateResponse)
async def translate(request: TranslateRequest):
    """Translate a phrase and feed the result to every engine."""
    learner = get_learner(request.user_id)
    preferences = learner.preferences
    source_lang = request.source_lang or preferences.state.source_language
    target_lang = request.target_lang or preferences.state.target_language

    if translation_provider is None:
        raise HTTPException(status_code=503, detail="Translation provider not configured")

    try:
        result, ms = translation_provider.translate(request.text, source_lang, target_lang)
    except TranslationError as e:
        logger.warning(f"Translation failed for {request.user_id}: {e}")
        learner.personalization.track_translation(False, target_lang)
        raise HTTPException(status_code=502, detail=str(e))

    entry = preferences.add_to_history(
        request.text, result['translated_text'], result['phonetic'], source_lang, target_lang
    )
    goal_reached = preferences.record_translation()
    learner.personalization.track_translation(True, target_lang)
    learner.personalization.track_language_usage(preferences.languages_used())
    unlocked = learner.check_achievements()

    return TranslateResponse(
        id=entry['id'],
        original=request.text,
        translated_text=result['translated_text'],
        phonetic=result['phonetic'],
        source_lang=source_lang,
        target_lang=target_lang,
        translate_ms=ms,
        total_translations=preferences.total_translations,
        daily_goal_reached=goal_reached,
        newly_unlocked=achievements_to_list(unlocked)
    )


@app.get("/api/history")
async def get_history(user_id: str = "default"):
    """Get the translation history, newest first."""
    learner = get_learner(user_id)
    learner.personalization.track_feature_usage('history')
    history = learner.preferences.history
    return {"total": len(history), "history": history}


@app.delete("/api/history")
async def clear_history(user_id: str = "default"):
    """Clear the translation history. Practice items are kept."""
    get_learner(user_id).preferences.clear_history()
    return {"cleared": True}


@app.post("/api/preferences")
async def update_preferences(request: PreferencesRequest):
    """Update language pair, daily goal or favourites."""
    learner = get_learner(request.user_id)
    preferences = learner.preferences
    if request.source_language is not None:
        preferences.set_source_language(request.source_language)
    if request.target_language is not None:
        preferences.set_target_language(request.target_language)
        learner.personalization.track_language_usage(preferences.languages_used())
    if request.daily_goal is not None:
        try:
            preferences.set_daily_goal(request.daily_goal)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if request.favorite_language is not None:
        preferences.add_favorite_language(request.favorite_language)
    return preferences.state.to_dict()


@app.post("/api/preferences/swap")
async def swap_languages(request: UserRequest):
    """Swap the source and target languages."""
    learner = get_learner(request.user_id)
    preferences = learner.preferences
    source, target = preferences.state.source_language, preferences.state.target_language
    preferences.set_source_language(target)
    preferences.set_target_language(source)
    learner.personalization.track_feature_usage('swap')
    return {"source_language": target, "target_language": source}


@app.get("/api/practice/due")
async def get_due_items(user_id: str = "default"):
    """Get items due for review, importing new history entries first."""
    learner = get_learner(user_id)
    learner.sync_practice_items()
    items = learner.scheduler.get_due_items()
    return {"total": len(items), "items": [item_to_dict(i) for i in items]}


@app.get("/api/practice/upcoming")
async def get_upcoming_items(user_id: str = "default"):
    """Get items scheduled for later, soonest first."""
    items = get_learner(user_id).scheduler.get_upcoming_items()
    return {"total": len(items), "items": [item_to_dict(i) for i in items]}


@app.post("/api/practice/answer", response_model=AnswerResponse)
async def submit_answer(request: AnswerRequest):
    """Grade a review and reschedule the item."""
    learner = get_learner(request.user_id)
    scheduler = learner.scheduler
    try:
        item = scheduler.submit_answer(request.item_id, request.quality)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    unlocked = []
    if item is not None:
        unlocked = learner.check_achievements(practice_sessions=scheduler.total_sessions)
    return AnswerResponse(
        updated=item is not None,
        item=item_to_dict(item) if item else None,
        mastery=get_mastery_level(item) if item else None,
        accuracy=scheduler.get_accuracy(),
        current_streak=scheduler.current_streak,
        best_streak=scheduler.best_streak,
        newly_unlocked=achievements_to_list(unlocked)
    )


@app.delete("/api/practice/items/{item_id}")
async def remove_item(item_id: str, user_id: str = "default"):
    """Remove an item from practice."""
    removed = get_learner(user_id).scheduler.remove_item(item_id)
    return {"removed": removed}


@app.get("/api/practice/stats")
async def get_practice_stats(user_id: str = "default"):
    """Get review counters and mastery breakdown."""
    return get_learner(user_id).scheduler.get_stats()


@app.get("/api/achievements")
async def get_achievements(user_id: str = "default"):
    """Get the achievement catalog with progress, grouped by category."""
    tracker = get_learner(user_id).achievements
    return {
        "total_points": tracker.total_points,
        "unlocked_count": tracker.unlocked_count,
        "total_count": tracker.total_count,
        "categories": {
            category: achievements_to_list(items)
            for category, items in tracker.get_by_category().items()
        }
    }


@app.post("/api/achievements/check")
async def check_achievements(request: UserRequest):
    """Re-evaluate achievements from the current counters."""
    learner = get_learner(request.user_id)
    unlocked = learner.check_achievements(practice_sessions=learner.scheduler.total_sessions)
    return {"newly_unlocked": achievements_to_list(unlocked)}


@app.get("/api/achievements/unlocked")
async def pop_unlocked(user_id: str = "default"):
    """Get and clear achievements waiting to be announced."""
    unlocked = get_learner(user_id).achievements.pop_newly_unlocked()
    return {"newly_unlocked": achievements_to_list(unlocked)}


@app.get("/api/personalization")
async def get_personalization(user_id: str = "default"):
    """Get the derived personalization views."""
    engine = get_learner(user_id).personalization
    return {
        "learning_level": engine.learning_level,
        "assessed_level": engine.assess_learning_level(),
        "adaptive_ui_mode": engine.adaptive_ui_mode,
        "onboarding_complete": engine.state.onboarding_complete,
        "preferred_tone": engine.state.preferred_tone,
        "greeting": engine.get_smart_greeting(),
        "ui_visibility": engine.get_ui_visibility(),
        "tips": engine.get_contextual_tips(),
        "recommendations": engine.get_recommendations(),
        "copy": {key: engine.get_personalized_copy(key) for key in PERSONALIZED_COPY}
    }


@app.post("/api/personalization/level")
async def update_level(request: LevelRequest):
    """Commit a learning level chosen by the user."""
    engine = get_learner(request.user_id).personalization
    try:
        engine.update_learning_level(request.level)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"learning_level": engine.learning_level, "adaptive_ui_mode": engine.adaptive_ui_mode}


@app.post("/api/personalization/tone")
async def update_tone(request: ToneRequest):
    engine = get_learner(request.user_id).personalization
    try:
        engine.set_preferred_tone(request.tone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"preferred_tone": engine.state.preferred_tone}


@app.post("/api/personalization/feature")
async def track_feature(request: FeatureRequest):
    """Record use of a client-side feature (speak, swap, history, ...)."""
    engine = get_learner(request.user_id).personalization
    engine.track_feature_usage(request.feature)
    return {"features_used": list(engine.behavior.features_used)}


@app.post("/api/personalization/tips/{tip_id}/shown")
async def mark_tip_shown(tip_id: str, request: UserRequest):
    get_learner(request.user_id).personalization.mark_tip_shown(tip_id)
    return {"tip_id": tip_id, "shown": True}


@app.post("/api/personalization/recommendations/{rec_id}/dismiss")
async def dismiss_recommendation(rec_id: str, request: UserRequest):
    get_learner(request.user_id).personalization.dismiss_recommendation(rec_id)
    return {"recommendation_id": rec_id, "dismissed": True}


@app.post("/api/personalization/onboarding")
async def complete_onboarding(request: UserRequest):
    get_learner(request.user_id).personalization.complete_onboarding()
    return {"onboarding_complete": True}


@app.delete("/api/data")
async def reset_data(user_id: str = "default"):
    """Erase all progress, history and achievements for a user."""
    get_learner(user_id).reset()
    learners.pop(user_id, None)
    return {"reset": True}


@app.get("/api/stats")
async def get_api_stats():
    """Get translation provider usage statistics."""
    if translation_provider is None or not hasattr(translation_provider, 'get_stats'):
        return {"error": "Translation provider not configured"}
    return translation_provider.get_stats()


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
