"""Bounded, persisted collection of recent chat sessions.

The collection is kept in touch order: the most recently saved session sits
at the tail and the head is evicted first once more than ``MAX_RECENT_CHATS``
entries exist. The order shown to users is a separate projection sorted by
``last_updated`` (see ``SessionStore.list``).
"""

import json
import logging
import time
from collections.abc import Sequence

from .core import Message, Role, Session
from .storage import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)

STORAGE_KEY = "recentChats"
MAX_RECENT_CHATS = 8
TITLE_LENGTH = 30
PLACEHOLDER_TITLE = "New Chat"


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_title(history: Sequence[Message]) -> str:
    """Derive a session title from the first user message."""
    first = next((m for m in history if m.role == Role.USER), None)
    if first is None:
        return PLACEHOLDER_TITLE
    title = first.content[:TITLE_LENGTH]
    if len(first.content) > TITLE_LENGTH:
        title += "..."
    return title


def qualifies_for_save(history: Sequence[Message]) -> bool:
    """Return True if a transcript is worth persisting.

    Lone greetings and assistant-only transcripts are never saved.
    """
    if len(history) <= 1:
        return False
    return any(m.role == Role.USER for m in history)


def new_session_id(collection: Sequence[Session], now: int | None = None) -> int:
    """Return an id greater than every id in ``collection``."""
    candidate = now_ms() if now is None else now
    if collection:
        candidate = max(candidate, max(s.id for s in collection) + 1)
    return candidate


def next_timestamp(previous: int | None, now: int | None = None) -> int:
    """Return a timestamp strictly after ``previous``."""
    ts = now_ms() if now is None else now
    if previous is not None and ts <= previous:
        ts = previous + 1
    return ts


class SessionStore:
    """Loads and persists the recent-session collection through ``storage``."""

    def __init__(self, storage: KeyValueStorage, capacity: int = MAX_RECENT_CHATS):
        self.storage = storage
        self.capacity = capacity

    def load(self) -> list[Session]:
        """Read the persisted collection. Never raises.

        An absent or unreadable record yields an empty collection. Malformed
        entries are dropped, and when an id appears twice the later (more
        recently touched) entry wins.
        """
        try:
            raw = self.storage.get(STORAGE_KEY)
        except StorageError as e:
            logger.warning("Failed to read sessions record: %s", e)
            return []

        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Sessions record is not valid JSON, starting empty: %s", e)
            return []

        if not isinstance(data, list):
            logger.warning("Sessions record is not a list, starting empty")
            return []

        sessions: list[Session] = []
        for index, entry in enumerate(data):
            try:
                session = Session.from_dict(entry)
            except ValueError as e:
                logger.warning("Dropping malformed session entry %d: %s", index, e)
                continue
            sessions = [s for s in sessions if s.id != session.id]
            sessions.append(session)

        return sessions[-self.capacity:]

    def upsert(self, collection: Sequence[Session], session: Session) -> list[Session]:
        """Insert or replace ``session`` and move it to the most recent slot.

        Returns the new collection, trimmed to capacity. The collection is
        persisted as one write; a failed write is logged and the returned
        collection stays authoritative for this process.
        """
        updated = [s for s in collection if s.id != session.id]
        updated.append(session)
        updated = updated[-self.capacity:]

        payload = json.dumps([s.to_dict() for s in updated], ensure_ascii=False)
        try:
            self.storage.set(STORAGE_KEY, payload)
        except StorageError as e:
            logger.warning("Failed to persist sessions, keeping in-memory copy: %s", e)

        return updated

    def list(self, collection: Sequence[Session]) -> list[Session]:
        """Return sessions newest first, leaving ``collection`` untouched."""
        return sorted(collection, key=lambda s: s.last_updated, reverse=True)
