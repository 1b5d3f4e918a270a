"""Abstract base class for completion providers."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .core import Message


class CompletionError(Exception):
    """The provider failed for a reason not covered by a subclass."""


class InvalidCredentialError(CompletionError):
    """The provider rejected the configured API key (or none is set)."""


class TransportError(CompletionError):
    """The provider could not be reached or timed out."""


class CompletionProvider(ABC):
    """Base class for remote completion services.

    A provider turns a system directive, the recent prior turns and the
    newest user message into one assistant reply.
    """

    name: str

    @abstractmethod
    async def complete(
        self,
        system_directive: str,
        prior_turns: Sequence[Message],
        newest_user_text: str,
    ) -> str:
        """Return the assistant reply text.

        Raises InvalidCredentialError, TransportError or CompletionError.
        """
        ...
