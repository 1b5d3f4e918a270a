"""Shared test fixtures for assistant-chat."""

import asyncio
import itertools
import json

import pytest

from assistant_chat.controller import ConversationController
from assistant_chat.core import Message, Role, Session
from assistant_chat.provider import CompletionProvider
from assistant_chat.session_store import STORAGE_KEY, SessionStore
from assistant_chat.storage import MemoryStorage, StorageError


class FakeProvider(CompletionProvider):
    """Scripted completion provider.

    ``replies`` are consumed in order; an Exception instance is raised instead
    of returned. When ``gate`` is set, every call blocks until it is released.
    """

    name = "fake"

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def complete(self, system_directive, prior_turns, newest_user_text):
        self.calls.append((system_directive, list(prior_turns), newest_user_text))
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


class FailingWriteStorage(MemoryStorage):
    """Storage whose writes always fail."""

    def set(self, key, value):
        raise StorageError("disk full")


def user(text: str) -> Message:
    return Message(role=Role.USER, content=text)


def assistant(text: str) -> Message:
    return Message(role=Role.ASSISTANT, content=text)


def make_session(session_id: int, last_updated: int, prompt: str = "hello") -> Session:
    return Session(
        id=session_id,
        title=prompt[:30],
        history=(assistant("Hi!"), user(prompt), assistant(f"Reply to {prompt}")),
        last_updated=last_updated,
    )


def seed(storage, sessions) -> None:
    """Write sessions to storage in the given (touch) order."""
    storage.set(STORAGE_KEY, json.dumps([s.to_dict() for s in sessions]))


def stored(storage) -> list[dict]:
    raw = storage.get(STORAGE_KEY)
    return json.loads(raw) if raw else []


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return SessionStore(storage)


@pytest.fixture
def clock():
    """Deterministic millisecond clock advancing one second per call."""
    counter = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(counter)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def controller(store, provider, clock):
    ctrl = ConversationController(store, provider, clock=clock)
    ctrl.initialize()
    return ctrl
