"""REST API client for lingua server."""

import requests


class LinguaAPIClient:
    """Client for communicating with the lingua REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        if data is None:
            data = {}
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def _delete(self, endpoint: str) -> dict:
        """Make a DELETE request."""
        response = self.session.delete(f"{self.base_url}{endpoint}", params={'user_id': self.user_id})
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/")
        response.raise_for_status()
        return response.json()

    def begin_session(self) -> dict:
        return self._post("/api/session/begin")

    def end_session(self) -> dict:
        return self._post("/api/session/end")

    def get_status(self) -> dict:
        """Get user status and progress."""
        return self._get("/api/status")

    def translate(self, text: str, source_lang: str = None, target_lang: str = None) -> dict:
        """Translate a phrase. The server falls back to the saved language pair."""
        data = {'text': text}
        if source_lang:
            data['source_lang'] = source_lang
        if target_lang:
            data['target_lang'] = target_lang
        return self._post("/api/translate", data)

    def get_history(self) -> dict:
        return self._get("/api/history")

    def set_languages(self, source_lang: str, target_lang: str) -> dict:
        return self._post("/api/preferences", {
            'source_language': source_lang,
            'target_language': target_lang
        })

    def swap_languages(self) -> dict:
        return self._post("/api/preferences/swap")

    def set_daily_goal(self, goal: int) -> dict:
        return self._post("/api/preferences", {'daily_goal': goal})

    def get_due_items(self) -> dict:
        """Get phrases due for review."""
        return self._get("/api/practice/due")

    def submit_answer(self, item_id: str, quality: int) -> dict:
        """Grade a review (quality 0-5)."""
        return self._post("/api/practice/answer", {
            'item_id': item_id,
            'quality': quality
        })

    def get_practice_stats(self) -> dict:
        return self._get("/api/practice/stats")

    def get_achievements(self) -> dict:
        return self._get("/api/achievements")

    def get_personalization(self) -> dict:
        """Get tips, recommendations, greeting and UI flags."""
        return self._get("/api/personalization")

    def track_feature(self, feature: str) -> dict:
        return self._post("/api/personalization/feature", {'feature': feature})

    def mark_tip_shown(self, tip_id: str) -> dict:
        return self._post(f"/api/personalization/tips/{tip_id}/shown")

    def reset_data(self) -> dict:
        """Erase all of the user's progress."""
        return self._delete("/api/data")
