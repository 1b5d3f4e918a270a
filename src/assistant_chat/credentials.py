"""Pass-through storage for the single API key record."""

import logging

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "apiKey"


def looks_like_gemini_key(key: str) -> bool:
    """Gemini API keys typically start with "AIza"."""
    return key.strip().startswith("AIza")


class CredentialStore:
    """Stores and returns the API key verbatim."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def get(self) -> str | None:
        return self.storage.get(STORAGE_KEY) or None

    def save(self, key: str) -> None:
        key = key.strip()
        if not key:
            raise ValueError("Please enter your API key.")
        self.storage.set(STORAGE_KEY, key)
        logger.info("API key saved")

    def clear(self) -> None:
        self.storage.clear(STORAGE_KEY)
        logger.info("API key cleared")
