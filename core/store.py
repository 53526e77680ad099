"""Per-engine access to a single stored record."""

import logging

from .interfaces import Storage

logger = logging.getLogger(__name__)


class RecordStore:
    """Loads and saves one engine's record under its own key.

    Storage failures never propagate: loads fall back to None and saves
    report a warning, leaving the caller's in-memory state authoritative.
    """

    def __init__(self, storage: Storage, key: str, user_id: str = "default"):
        self.storage = storage
        self.key = key
        self.user_id = user_id
        self.last_error = None

    def load(self) -> dict | None:
        try:
            record = self.storage.get(self.key, self.user_id)
        except Exception as e:
            logger.warning(f"Could not load {self.key} for {self.user_id}: {e}")
            return None
        if record is not None and not isinstance(record, dict):
            logger.warning(f"Ignoring malformed {self.key} record for {self.user_id}")
            return None
        return record

    def save(self, record: dict) -> bool:
        """Write the record. Returns False if the store rejected it."""
        try:
            self.storage.set(self.key, record, self.user_id)
        except Exception as e:
            self.last_error = e
            logger.warning(f"Could not save {self.key} for {self.user_id}: {e}")
            return False
        self.last_error = None
        return True

    def clear(self) -> bool:
        try:
            self.storage.remove(self.key, self.user_id)
        except Exception as e:
            self.last_error = e
            logger.warning(f"Could not remove {self.key} for {self.user_id}: {e}")
            return False
        return True
