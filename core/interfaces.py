"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class TranslationError(Exception):
    """Raised when a translation provider cannot produce a translation."""


class TranslationProvider(ABC):
    """Abstract base class for the remote translation service."""

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str) -> tuple[dict, int]:
        """Translate text. Returns ({translated_text, phonetic}, elapsed_ms).
        Raises TranslationError on failure."""
        pass


class Storage(ABC):
    """Abstract base class for a key-value store of JSON records.

    Records are addressed by a key and scoped to a user id.
    """

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def get(self, key: str, user_id: str = "default") -> dict | None:
        """Load the record stored under key. Returns None if not found."""
        pass

    @abstractmethod
    def set(self, key: str, value: dict, user_id: str = "default") -> None:
        """Store a record under key, replacing any previous value."""
        pass

    @abstractmethod
    def remove(self, key: str, user_id: str = "default") -> None:
        """Delete the record stored under key. Missing keys are ignored."""
        pass
