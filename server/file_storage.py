"""File-based storage implementation."""

import json
import logging
import os
import re

from core.interfaces import Storage

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9_.-]')


class FileStorage(Storage):
    """Stores each record as a JSON file in a state directory."""

    def __init__(self, config_file: str = None, state_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/lingua/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or os.environ.get('LINGUA_STATE_DIR', project_root)

    def _get_record_file(self, key: str, user_id: str) -> str:
        """Get the file path for a user's record."""
        key = _UNSAFE_CHARS.sub('_', key)
        if user_id == "default":
            return os.path.join(self.state_dir, f'{key}.json')
        user_id = _UNSAFE_CHARS.sub('_', user_id)
        return os.path.join(self.state_dir, f'{key}_{user_id}.json')

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def get(self, key: str, user_id: str = "default") -> dict | None:
        record_file = self._get_record_file(key, user_id)
        if os.path.exists(record_file):
            try:
                with open(record_file, 'r') as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Unreadable record {record_file}: {e}")
                return None
        return None

    def set(self, key: str, value: dict, user_id: str = "default") -> None:
        os.makedirs(self.state_dir, exist_ok=True)
        record_file = self._get_record_file(key, user_id)
        # Write to a temp file first so a crash never leaves half a record
        tmp_file = f'{record_file}.tmp'
        with open(tmp_file, 'w') as f:
            json.dump(value, f, indent=2)
        os.replace(tmp_file, record_file)

    def remove(self, key: str, user_id: str = "default") -> None:
        record_file = self._get_record_file(key, user_id)
        if os.path.exists(record_file):
            os.remove(record_file)
