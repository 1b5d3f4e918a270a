"""Core data models for assistant-chat."""

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once created."""

    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: object) -> "Message":
        """Build a Message from a stored record, rejecting malformed shapes."""
        if not isinstance(data, dict):
            raise ValueError(f"message must be an object, got {type(data).__name__}")
        try:
            role = Role(data.get("role"))
        except ValueError:
            raise ValueError(f"unknown message role: {data.get('role')!r}") from None
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("message content must be a string")
        return cls(role=role, content=content)


@dataclass(frozen=True)
class Session:
    """A persisted, named snapshot of a transcript."""

    id: int
    title: str
    history: tuple[Message, ...] = field(default_factory=tuple)
    last_updated: int = 0  # epoch milliseconds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "history": [m.to_dict() for m in self.history],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: object) -> "Session":
        """Build a Session from a stored record.

        Raises ValueError when a required field is missing or has the wrong
        type, or when any history entry is malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"session must be an object, got {type(data).__name__}")

        session_id = data.get("id")
        # bool is an int subclass; a stored true/false is not an id
        if not isinstance(session_id, int) or isinstance(session_id, bool):
            raise ValueError(f"session id must be an integer, got {session_id!r}")

        last_updated = data.get("lastUpdated")
        if not isinstance(last_updated, int) or isinstance(last_updated, bool):
            raise ValueError(f"lastUpdated must be an integer, got {last_updated!r}")

        title = data.get("title")
        if not isinstance(title, str):
            raise ValueError("session title must be a string")

        history = data.get("history")
        if not isinstance(history, list):
            raise ValueError("session history must be a list")

        return cls(
            id=session_id,
            title=title,
            history=tuple(Message.from_dict(m) for m in history),
            last_updated=last_updated,
        )
