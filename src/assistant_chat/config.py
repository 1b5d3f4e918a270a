"""Platform-aware path resolution and runtime settings."""

import os
import sys
from pathlib import Path

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def get_data_path() -> Path:
    """Return the directory where assistant-chat keeps its local state."""
    env = os.environ.get("ASSISTANT_CHAT_DATA_PATH")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "assistant-chat"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "assistant-chat"
    else:  # Linux
        return Path.home() / ".local" / "share" / "assistant-chat"


def get_state_db_path() -> Path:
    """Return the path to the key/value state database."""
    return get_data_path() / "state.db"


def get_model() -> str:
    """Return the completion model name."""
    return os.environ.get("ASSISTANT_CHAT_MODEL") or DEFAULT_MODEL


def get_base_url() -> str:
    """Return the base URL of the OpenAI-compatible completion endpoint."""
    return os.environ.get("ASSISTANT_CHAT_BASE_URL") or DEFAULT_BASE_URL
