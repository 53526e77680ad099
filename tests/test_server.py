"""Tests for lingua server: HTTP API and file storage."""

import copy
import json
import os
import tempfile
import unittest

from fastapi.testclient import TestClient

import server.app as app_module
from core.interfaces import Storage, TranslationProvider, TranslationError
from core.config import PREFERENCES_STORAGE_KEY
from server.file_storage import FileStorage


# ============================================================================
# Mock Implementations
# ============================================================================

class MockStorage(Storage):
    """In-memory storage for API tests."""

    def __init__(self):
        self.records = {}

    def load_config(self) -> dict:
        return {}

    def get(self, key: str, user_id: str = "default") -> dict | None:
        return copy.deepcopy(self.records.get((user_id, key)))

    def set(self, key: str, value: dict, user_id: str = "default") -> None:
        self.records[(user_id, key)] = copy.deepcopy(value)

    def remove(self, key: str, user_id: str = "default") -> None:
        self.records.pop((user_id, key), None)


class MockTranslationProvider(TranslationProvider):
    """Translation provider that answers from a fixed table."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def translate(self, text: str, source_lang: str, target_lang: str) -> tuple[dict, int]:
        self.calls.append((text, source_lang, target_lang))
        if self.fail:
            raise TranslationError("service unavailable")
        return ({'translated_text': f'{text} ({target_lang})', 'phonetic': 'fuh-NET-ik'}, 42)


# ============================================================================
# Test Cases
# ============================================================================

class APITestCase(unittest.TestCase):
    """Base class wiring the app to in-memory dependencies."""

    def setUp(self):
        self.storage = MockStorage()
        self.provider = MockTranslationProvider()
        app_module.storage = self.storage
        app_module.translation_provider = self.provider
        app_module.learners.clear()
        # Startup hooks only run inside a `with` block, so this client skips them
        self.client = TestClient(app_module.create_app())

    def tearDown(self):
        app_module.learners.clear()
        app_module.storage = None
        app_module.translation_provider = None

    def translate(self, text='Hello', user_id='default', **kwargs):
        response = self.client.post('/api/translate', json={'text': text, 'user_id': user_id, **kwargs})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()


class TestHealthAndStatus(APITestCase):

    def test_health(self):
        response = self.client.get('/')
        self.assertEqual(response.json(), {'status': 'ok', 'service': 'lingua'})

    def test_status_for_new_user(self):
        data = self.client.get('/api/status').json()

        self.assertEqual(data['learning_level'], 'beginner')
        self.assertEqual(data['adaptive_ui_mode'], 'simple')
        self.assertEqual(data['total_translations'], 0)
        self.assertEqual(data['consecutive_days'], 1)
        self.assertEqual(data['total_count'], 20)
        self.assertIn('Welcome to Lingua', data['welcome_message'])


class TestTranslateEndpoint(APITestCase):

    def test_translate_uses_saved_language_pair(self):
        data = self.translate('Good morning')

        self.assertEqual(data['translated_text'], 'Good morning (es)')
        self.assertEqual(data['phonetic'], 'fuh-NET-ik')
        self.assertEqual((data['source_lang'], data['target_lang']), ('en', 'es'))
        self.assertEqual(data['translate_ms'], 42)
        self.assertEqual(data['total_translations'], 1)
        self.assertEqual(self.provider.calls, [('Good morning', 'en', 'es')])

    def test_first_translation_unlocks_achievement_once(self):
        first = self.translate()
        second = self.translate()

        self.assertIn('first_translation', [a['id'] for a in first['newly_unlocked']])
        self.assertNotIn('first_translation', [a['id'] for a in second['newly_unlocked']])

    def test_translation_added_to_history(self):
        data = self.translate('Thank you', target_lang='fr')

        history = self.client.get('/api/history').json()

        self.assertEqual(history['total'], 1)
        entry = history['history'][0]
        self.assertEqual(entry['id'], data['id'])
        self.assertEqual(entry['original'], 'Thank you')
        self.assertEqual(entry['targetLang'], 'fr')

    def test_no_provider_returns_503(self):
        app_module.translation_provider = None

        response = self.client.post('/api/translate', json={'text': 'Hello'})

        self.assertEqual(response.status_code, 503)

    def test_provider_failure_returns_502_and_counts_error(self):
        app_module.translation_provider = MockTranslationProvider(fail=True)

        response = self.client.post('/api/translate', json={'text': 'Hello'})

        self.assertEqual(response.status_code, 502)
        learner = app_module.learners['default']
        self.assertEqual(learner.personalization.behavior.error_rate, 10)
        self.assertEqual(learner.preferences.total_translations, 0)

    def test_empty_text_rejected(self):
        response = self.client.post('/api/translate', json={'text': ''})
        self.assertEqual(response.status_code, 422)

    def test_users_are_isolated(self):
        self.translate(user_id='alice')

        bob = self.client.get('/api/status', params={'user_id': 'bob'}).json()

        self.assertEqual(bob['total_translations'], 0)

    def test_daily_goal_reached(self):
        self.client.post('/api/preferences', json={'daily_goal': 2})

        self.assertFalse(self.translate()['daily_goal_reached'])
        self.assertTrue(self.translate()['daily_goal_reached'])
        self.assertEqual(self.storage.get(PREFERENCES_STORAGE_KEY)['dailyGoalsCompleted'], 1)


class TestPracticeEndpoints(APITestCase):

    def test_due_items_imported_from_history(self):
        self.translate('Hello')
        self.translate('Goodbye')

        data = self.client.get('/api/practice/due').json()

        self.assertEqual(data['total'], 2)
        self.assertEqual(sorted(i['original'] for i in data['items']), ['Goodbye', 'Hello'])
        self.assertEqual(data['items'][0]['mastery'], 'new')

    def test_answer_reschedules_item(self):
        self.translate('Hello')
        item_id = self.client.get('/api/practice/due').json()['items'][0]['id']

        response = self.client.post('/api/practice/answer', json={'item_id': item_id, 'quality': 4})

        data = response.json()
        self.assertTrue(data['updated'])
        self.assertEqual(data['item']['interval'], 1)
        self.assertEqual(data['mastery'], 'reviewing')
        self.assertEqual(data['accuracy'], 100)
        self.assertEqual(data['current_streak'], 1)
        self.assertEqual(self.client.get('/api/practice/due').json()['total'], 0)
        self.assertEqual(self.client.get('/api/practice/upcoming').json()['total'], 1)

    def test_answer_unknown_item(self):
        response = self.client.post('/api/practice/answer', json={'item_id': 'missing', 'quality': 4})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['updated'])

    def test_answer_invalid_quality(self):
        self.translate('Hello')
        item_id = self.client.get('/api/practice/due').json()['items'][0]['id']

        response = self.client.post('/api/practice/answer', json={'item_id': item_id, 'quality': 7})

        self.assertEqual(response.status_code, 400)

    def test_remove_item(self):
        self.translate('Hello')
        item_id = self.client.get('/api/practice/due').json()['items'][0]['id']

        first = self.client.delete(f'/api/practice/items/{item_id}').json()
        second = self.client.delete(f'/api/practice/items/{item_id}').json()

        self.assertTrue(first['removed'])
        self.assertFalse(second['removed'])

    def test_stats(self):
        self.translate('Hello')
        self.client.get('/api/practice/due')

        stats = self.client.get('/api/practice/stats').json()

        self.assertEqual(stats['total_items'], 1)
        self.assertEqual(stats['mastery']['new'], 1)


class TestAchievementEndpoints(APITestCase):

    def test_catalog_grouped_by_category(self):
        data = self.client.get('/api/achievements').json()

        self.assertEqual(data['total_count'], 20)
        self.assertEqual(len(data['categories']['milestone']), 6)

    def test_unlocked_queue_drains(self):
        self.translate()

        first = self.client.get('/api/achievements/unlocked').json()
        second = self.client.get('/api/achievements/unlocked').json()

        self.assertIn('first_translation', [a['id'] for a in first['newly_unlocked']])
        self.assertEqual(second['newly_unlocked'], [])

    def test_check_is_idempotent(self):
        self.translate()

        data = self.client.post('/api/achievements/check', json={}).json()

        self.assertNotIn('first_translation', [a['id'] for a in data['newly_unlocked']])


class TestPersonalizationEndpoints(APITestCase):

    def test_personalization_views(self):
        data = self.client.get('/api/personalization').json()

        self.assertEqual(data['learning_level'], 'beginner')
        self.assertIn('first_translation', [t['id'] for t in data['tips']])
        self.assertEqual(data['copy']['welcome_title'], 'Start Your Journey')
        self.assertTrue(data['ui_visibility']['simplified_layout'])

    def test_update_level(self):
        response = self.client.post('/api/personalization/level', json={'level': 'advanced'})

        self.assertEqual(response.json(), {'learning_level': 'advanced', 'adaptive_ui_mode': 'advanced'})

    def test_invalid_level(self):
        response = self.client.post('/api/personalization/level', json={'level': 'expert'})
        self.assertEqual(response.status_code, 400)

    def test_invalid_tone(self):
        response = self.client.post('/api/personalization/tone', json={'tone': 'grumpy'})
        self.assertEqual(response.status_code, 400)

    def test_tip_shown_is_hidden(self):
        self.client.post('/api/personalization/tips/first_translation/shown', json={})

        tips = self.client.get('/api/personalization').json()['tips']

        self.assertNotIn('first_translation', [t['id'] for t in tips])

    def test_dismiss_recommendation(self):
        self.client.post('/api/personalization/recommendations/set_goal/dismiss', json={})

        recs = self.client.get('/api/personalization').json()['recommendations']

        self.assertNotIn('set_goal', [r['id'] for r in recs])

    def test_feature_tracking(self):
        self.client.post('/api/personalization/feature', json={'feature': 'speak'})
        data = self.client.post('/api/personalization/feature', json={'feature': 'speak'}).json()

        self.assertEqual(data['features_used'], ['speak'])


class TestPreferencesAndSession(APITestCase):

    def test_update_preferences(self):
        data = self.client.post('/api/preferences', json={
            'source_language': 'de', 'target_language': 'it', 'favorite_language': 'it'
        }).json()

        self.assertEqual(data['sourceLanguage'], 'de')
        self.assertEqual(data['targetLanguage'], 'it')
        self.assertEqual(data['favoriteLanguages'], ['it'])

    def test_invalid_daily_goal(self):
        response = self.client.post('/api/preferences', json={'daily_goal': 500})
        self.assertEqual(response.status_code, 400)

    def test_swap_languages(self):
        data = self.client.post('/api/preferences/swap', json={}).json()
        self.assertEqual(data, {'source_language': 'es', 'target_language': 'en'})

    def test_clear_history(self):
        self.translate()

        self.client.delete('/api/history')

        self.assertEqual(self.client.get('/api/history').json()['total'], 0)

    def test_session_lifecycle(self):
        begin = self.client.post('/api/session/begin', json={'viewport_width': 500}).json()
        self.assertEqual(begin['consecutive_days'], 1)
        self.assertEqual(app_module.learners['default'].personalization.behavior.device_type, 'mobile')

        end = self.client.post('/api/session/end', json={}).json()

        self.assertIsNotNone(end['duration_minutes'])
        self.assertNotIn('default', app_module.learners)

    def test_end_without_session(self):
        data = self.client.post('/api/session/end', json={'user_id': 'nobody'}).json()
        self.assertIsNone(data['duration_minutes'])

    def test_reset_data(self):
        self.translate()
        self.client.get('/api/practice/due')

        self.client.delete('/api/data')

        status = self.client.get('/api/status').json()
        self.assertEqual(status['total_translations'], 0)
        self.assertEqual(status['unlocked_count'], 0)
        self.assertEqual(self.client.get('/api/practice/stats').json()['total_items'], 0)


class TestFileStorage(unittest.TestCase):
    """Tests for the JSON file storage backend."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.state_dir = self.tmp.name
        self.storage = FileStorage(
            config_file=os.path.join(self.state_dir, 'config.json'),
            state_dir=self.state_dir
        )

    def tearDown(self):
        self.tmp.cleanup()

    def test_get_missing(self):
        self.assertIsNone(self.storage.get('lingua_preferences'))

    def test_set_and_get(self):
        self.storage.set('lingua_preferences', {'dailyGoal': 5})

        self.assertEqual(self.storage.get('lingua_preferences'), {'dailyGoal': 5})
        self.assertTrue(os.path.exists(os.path.join(self.state_dir, 'lingua_preferences.json')))

    def test_user_files_are_separate(self):
        self.storage.set('lingua_preferences', {'owner': 'default'})
        self.storage.set('lingua_preferences', {'owner': 'alice'}, user_id='alice')

        self.assertEqual(self.storage.get('lingua_preferences')['owner'], 'default')
        self.assertEqual(self.storage.get('lingua_preferences', 'alice')['owner'], 'alice')
        self.assertTrue(os.path.exists(os.path.join(self.state_dir, 'lingua_preferences_alice.json')))

    def test_unsafe_user_id_is_sanitized(self):
        self.storage.set('k', {'a': 1}, user_id='../evil')

        self.assertEqual(self.storage.get('k', '../evil'), {'a': 1})
        self.assertEqual(sorted(os.listdir(self.state_dir)), ['k_.._evil.json'])

    def test_unreadable_record_returns_none(self):
        with open(os.path.join(self.state_dir, 'k.json'), 'w') as f:
            f.write('{not json')

        self.assertIsNone(self.storage.get('k'))

    def test_remove(self):
        self.storage.set('k', {'a': 1})
        self.storage.remove('k')
        self.storage.remove('k')

        self.assertIsNone(self.storage.get('k'))

    def test_load_config(self):
        with self.assertRaises(FileNotFoundError):
            self.storage.load_config()

        with open(os.path.join(self.state_dir, 'config.json'), 'w') as f:
            json.dump({'gemini_api_key': 'abc'}, f)

        self.assertEqual(self.storage.load_config()['gemini_api_key'], 'abc')


if __name__ == '__main__':
    unittest.main()
