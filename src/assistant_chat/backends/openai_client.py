"""Completion provider using the OpenAI SDK.

Talks to any OpenAI-compatible chat completions endpoint. By default that is
Google's Gemini compatibility endpoint, so a Gemini API key works unchanged.
The SDK's own retry loop is disabled: a failed request surfaces immediately
and the user resends to retry.
"""

import logging
from collections.abc import Callable, Sequence

from openai import (
    APIConnectionError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    OpenAIError,
    PermissionDeniedError,
)

from ..config import get_base_url, get_model
from ..core import Message
from ..provider import (
    CompletionError,
    CompletionProvider,
    InvalidCredentialError,
    TransportError,
)

logger = logging.getLogger(__name__)

_INVALID_KEY_MARKERS = ("API_KEY_INVALID", "API key not valid")


class OpenAICompletionProvider(CompletionProvider):
    """Provider for OpenAI-compatible chat completion endpoints."""

    name = "openai"

    def __init__(
        self,
        api_key: Callable[[], str | None],
        *,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
    ):
        # The key is looked up per request so logout/login take effect at once.
        self._api_key = api_key
        self.model = model or get_model()
        self.base_url = base_url or get_base_url()
        self.timeout = timeout

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    async def complete(
        self,
        system_directive: str,
        prior_turns: Sequence[Message],
        newest_user_text: str,
    ) -> str:
        api_key = self._api_key()
        if not api_key:
            raise InvalidCredentialError("No API key configured")

        payload = [{"role": "system", "content": system_directive}]
        payload.extend(m.to_dict() for m in prior_turns)
        payload.append({"role": "user", "content": newest_user_text})

        # Closed per request: the CLI runs each turn in a fresh event loop.
        try:
            async with self._client(api_key) as client:
                resp = await client.chat.completions.create(
                    model=self.model,
                    messages=payload,
                )
        except (AuthenticationError, PermissionDeniedError) as e:
            raise InvalidCredentialError(str(e)) from e
        except BadRequestError as e:
            if any(marker in str(e) for marker in _INVALID_KEY_MARKERS):
                raise InvalidCredentialError(str(e)) from e
            raise CompletionError(str(e)) from e
        except APIConnectionError as e:
            # APITimeoutError is a subclass
            raise TransportError(str(e)) from e
        except OpenAIError as e:
            raise CompletionError(str(e)) from e

        if not resp.choices:
            raise CompletionError("Completion response contained no choices")
        text = resp.choices[0].message.content
        if not text:
            raise CompletionError("Completion response was empty")

        usage = getattr(resp, "usage", None)
        logger.debug(
            "Completion from %s: %d chars, tokens in=%s out=%s",
            resp.model,
            len(text),
            getattr(usage, "prompt_tokens", None),
            getattr(usage, "completion_tokens", None),
        )
        return text
