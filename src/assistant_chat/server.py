"""FastAPI web server for assistant-chat."""

import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from .backends import get_default_provider
from .config import get_state_db_path
from .controller import ConversationBusyError, ConversationController, SessionNotFoundError
from .core import Message, Session
from .credentials import CredentialStore, looks_like_gemini_key
from .export import segments_to_html, session_to_json, session_to_markdown
from .parser import parse_message
from .prompts import ReplyLength
from .session_store import SessionStore
from .storage import KeyValueStorage, SqliteStorage, StorageError

logger = logging.getLogger(__name__)

app = FastAPI(title="assistant-chat", version="0.1.0")

# Process-wide state (populated on first request)
_storage: KeyValueStorage | None = None
_controller: ConversationController | None = None


def _get_storage() -> KeyValueStorage:
    """Lazily open the state database."""
    global _storage
    if _storage is None:
        _storage = SqliteStorage(get_state_db_path())
        logger.info("Using state database %s", get_state_db_path())
    return _storage


def _get_credentials() -> CredentialStore:
    return CredentialStore(_get_storage())


def _get_controller() -> ConversationController:
    """Lazily build and initialize the conversation controller."""
    global _controller
    if _controller is None:
        storage = _get_storage()
        _controller = ConversationController(
            SessionStore(storage),
            get_default_provider(CredentialStore(storage)),
        )
        _controller.initialize()
        logger.info("Loaded %d stored sessions", len(_controller.sessions))
    return _controller


def _session_to_dict(session: Session, active_id: int | None) -> dict:
    """Convert a Session to its listing entry."""
    return {
        "id": session.id,
        "title": session.title,
        "lastUpdated": session.last_updated,
        "messageCount": len(session.history),
        "active": session.id == active_id,
    }


def _message_to_dict(msg: Message) -> dict:
    """Convert a Message to JSON, with its parsed segments and escaped HTML."""
    segments = parse_message(msg.content)
    return {
        "role": msg.role.value,
        "content": msg.content,
        "segments": [s.to_dict() for s in segments],
        "html": segments_to_html(segments),
    }


def _transcript_payload(controller: ConversationController) -> dict:
    return {
        "activeId": controller.active_id,
        "awaitingReply": controller.awaiting_reply,
        "messages": [_message_to_dict(m) for m in controller.transcript],
    }


class ChatRequest(BaseModel):
    text: str


class SettingsUpdate(BaseModel):
    replyLength: ReplyLength


class CredentialUpdate(BaseModel):
    apiKey: str


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/sessions")
async def get_sessions():
    """Return stored sessions, newest first."""
    controller = _get_controller()
    return {
        "sessions": [_session_to_dict(s, controller.active_id) for s in controller.sessions],
    }


@app.get("/api/transcript")
async def get_transcript():
    """Return the active conversation."""
    return _transcript_payload(_get_controller())


@app.post("/api/chat")
async def post_chat(body: ChatRequest):
    """Send a user message and wait for the assistant reply."""
    controller = _get_controller()
    try:
        reply = await controller.record_turn(body.text)
    except ConversationBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    payload = _transcript_payload(controller)
    payload["reply"] = _message_to_dict(reply) if reply else None
    return payload


@app.post("/api/sessions/new")
async def new_session():
    """Start a new conversation."""
    controller = _get_controller()
    controller.start_new_chat()
    return _transcript_payload(controller)


@app.post("/api/sessions/{session_id}/load")
async def load_session(session_id: int):
    """Switch to a stored conversation."""
    controller = _get_controller()
    try:
        controller.load_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return _transcript_payload(controller)


@app.get("/api/export/{session_id}")
async def export_session(
    session_id: int,
    format: str = Query("md", description="Export format: md or json"),
):
    """Export a stored session as Markdown or JSON."""
    session = _get_controller().get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    safe_title = "".join(c if c.isalnum() or c in "-_ " else "" for c in session.title)[:50]
    safe_title = safe_title.strip() or "chat"

    if format == "json":
        return Response(
            content=session_to_json(session),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.json"'},
        )
    else:
        return Response(
            content=session_to_markdown(session),
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.md"'},
        )


@app.get("/api/settings")
async def get_settings():
    controller = _get_controller()
    try:
        has_credential = _get_credentials().get() is not None
    except StorageError as e:
        logger.error("Failed to read API key: %s", e)
        raise HTTPException(status_code=500, detail="Failed to read API key")
    return {
        "replyLength": controller.reply_length.value,
        "hasCredential": has_credential,
    }


@app.put("/api/settings")
async def put_settings(body: SettingsUpdate):
    controller = _get_controller()
    controller.reply_length = body.replyLength
    return {"replyLength": controller.reply_length.value}


@app.put("/api/credential")
async def put_credential(body: CredentialUpdate):
    """Store the API key."""
    try:
        _get_credentials().save(body.apiKey)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        logger.error("Failed to store API key: %s", e)
        raise HTTPException(status_code=500, detail="Failed to store API key")
    return {"saved": True, "looksValid": looks_like_gemini_key(body.apiKey)}


@app.delete("/api/credential")
async def delete_credential():
    """Forget the API key (logout)."""
    try:
        _get_credentials().clear()
    except StorageError as e:
        logger.error("Failed to clear API key: %s", e)
        raise HTTPException(status_code=500, detail="Failed to clear API key")
    return {"saved": False}
