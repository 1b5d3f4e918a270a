"""Completion provider registry."""

from ..credentials import CredentialStore
from ..provider import CompletionProvider
from .openai_client import OpenAICompletionProvider


def get_default_provider(credentials: CredentialStore) -> CompletionProvider:
    """Return the provider used by the CLI and web server."""
    return OpenAICompletionProvider(api_key=credentials.get)
