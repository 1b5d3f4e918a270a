"""Conversation controller: the single owner of the active transcript.

Responsibilities:
- Hold the active transcript and the id of the session it belongs to.
- Take turns: append the user message, ask the completion provider for a
  reply, append it and persist.
- Switch sessions (new chat, load a past chat), saving the current transcript
  first whenever it is worth keeping.

The transcript is only ever mutated through these operations and is handed out
as an immutable tuple.

Every switch advances an internal epoch. A completion that was requested under
an older epoch belongs to a conversation that is no longer on screen; its
result is dropped instead of being appended to whatever is active now.
"""

import logging
from collections.abc import Callable

from .core import Message, Role, Session
from .prompts import ReplyLength, build_system_directive
from .provider import CompletionProvider, InvalidCredentialError
from .session_store import (
    SessionStore,
    generate_title,
    new_session_id,
    next_timestamp,
    now_ms,
    qualifies_for_save,
)

logger = logging.getLogger(__name__)

GREETING = "Hello! I'm Gemini, your AI assistant from Google. How can I help you today?"
INVALID_CREDENTIAL_MESSAGE = "Invalid API key. Please check your API key in settings."
GENERIC_ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."

# Number of prior messages sent along with each new user message.
HISTORY_WINDOW = 10


class ConversationBusyError(Exception):
    """A reply is still outstanding for the active conversation."""


class SessionNotFoundError(LookupError):
    """No stored session has the requested id."""


def greeting() -> Message:
    return Message(role=Role.ASSISTANT, content=GREETING)


class ConversationController:
    def __init__(
        self,
        store: SessionStore,
        provider: CompletionProvider,
        *,
        reply_length: ReplyLength = ReplyLength.DEFAULT,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.provider = provider
        self.reply_length = reply_length
        self._clock = clock

        self._collection: list[Session] = []
        self._transcript: list[Message] = [greeting()]
        self._active_id: int | None = None
        self._epoch = 0
        self._pending_epoch: int | None = None

    # ── State accessors ──────────────────────────────────────────────

    @property
    def transcript(self) -> tuple[Message, ...]:
        return tuple(self._transcript)

    @property
    def active_id(self) -> int | None:
        return self._active_id

    @property
    def awaiting_reply(self) -> bool:
        """True while a reply is outstanding for the active conversation."""
        return self._pending_epoch == self._epoch

    @property
    def sessions(self) -> list[Session]:
        """Stored sessions in display order, newest first."""
        return self.store.list(self._collection)

    def get_session(self, session_id: int) -> Session | None:
        return next((s for s in self._collection if s.id == session_id), None)

    # ── Lifecycle ────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Load stored sessions and open the most recently updated one."""
        self._collection = self.store.load()
        listing = self.store.list(self._collection)
        if listing:
            latest = listing[0]
            self._switch(latest.id, list(latest.history))
            logger.debug("Resumed session %d (%s)", latest.id, latest.title)
        else:
            self._switch(None, [greeting()])

    def start_new_chat(self) -> None:
        """Save the current conversation if worthwhile and start a blank one."""
        self._persist()
        self._switch(None, [greeting()])

    def load_session(self, session_id: int) -> None:
        """Switch to a stored session, saving the current conversation first.

        Loading the already-active session does nothing. Raises
        SessionNotFoundError, without touching any state, for unknown ids.
        """
        if session_id == self._active_id:
            return

        # Taken before saving: the save may evict the target when the
        # collection is full, and its history is still what the user asked for.
        target = self.get_session(session_id)
        if target is None:
            raise SessionNotFoundError(session_id)

        self._persist()
        self._switch(target.id, list(target.history))
        logger.debug("Loaded session %d (%s)", target.id, target.title)

    async def record_turn(self, user_text: str) -> Message | None:
        """Send ``user_text`` and append the assistant reply.

        Returns the appended reply, or None when the conversation was switched
        away from while the request was outstanding. Provider failures never
        propagate: they become an assistant message in the transcript.
        """
        if not user_text.strip():
            raise ValueError("Message text must not be empty")
        if self.awaiting_reply:
            raise ConversationBusyError("Still waiting for the previous reply")

        prior_turns = self._transcript[-HISTORY_WINDOW:]
        self._transcript.append(Message(role=Role.USER, content=user_text))

        epoch = self._epoch
        self._pending_epoch = epoch
        directive = build_system_directive(self.reply_length)
        try:
            reply_text = await self.provider.complete(directive, prior_turns, user_text)
        except InvalidCredentialError as e:
            logger.warning("Completion rejected the API key: %s", e)
            reply = Message(role=Role.ASSISTANT, content=INVALID_CREDENTIAL_MESSAGE)
        except Exception as e:
            logger.error("Completion failed (%s): %s", type(e).__name__, e)
            reply = Message(role=Role.ASSISTANT, content=GENERIC_ERROR_MESSAGE)
        else:
            reply = Message(role=Role.ASSISTANT, content=reply_text)
        finally:
            if self._pending_epoch == epoch:
                self._pending_epoch = None

        if epoch != self._epoch:
            logger.info("Discarding reply for a conversation that is no longer active")
            return None

        self._transcript.append(reply)
        self._persist()
        return reply

    # ── Private helpers ──────────────────────────────────────────────

    def _switch(self, session_id: int | None, transcript: list[Message]) -> None:
        self._epoch += 1
        self._active_id = session_id
        self._transcript = transcript

    def _persist(self) -> None:
        """Save the active transcript, assigning a session id on first save."""
        history = tuple(self._transcript)
        if not qualifies_for_save(history):
            return

        now = self._clock()
        if self._active_id is None:
            session_id = new_session_id(self._collection, now)
            previous = None
        else:
            session_id = self._active_id
            previous = self.get_session(session_id)

        session = Session(
            id=session_id,
            title=generate_title(history),
            history=history,
            last_updated=next_timestamp(previous.last_updated if previous else None, now),
        )
        self._collection = self.store.upsert(self._collection, session)
        self._active_id = session_id
