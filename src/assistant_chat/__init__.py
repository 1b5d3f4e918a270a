"""assistant-chat: a Gemini chat client with a bounded history of recent chats."""

__version__ = "0.1.0"
