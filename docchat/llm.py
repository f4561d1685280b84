"""Streaming chat-completion client."""

from collections.abc import Iterator

import httpx
from openai import OpenAI, OpenAIError

from .config import config
from .errors import ModelServiceError

logger = config.get_logger(__name__)


class ChatModelService:
    """Streams chat completions from the OpenAI API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        """Initialize the chat client.

        Args:
            api_key: OpenAI API key. If None, uses config.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            timeout: Per-request timeout in seconds. If None, uses
                config.CHAT_TIMEOUT.
            max_tokens: Completion token limit. If None, uses
                config.CHAT_MAX_TOKENS.
            temperature: Sampling temperature. If None, uses
                config.CHAT_TEMPERATURE.
        """
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            timeout=timeout if timeout is not None else config.CHAT_TIMEOUT,
            max_retries=0,
        )
        self.model = model or config.CHAT_MODEL
        self.max_tokens = max_tokens if max_tokens is not None else config.CHAT_MAX_TOKENS
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )

    def stream(self, messages: list[dict[str, str]]) -> Iterator[str]:
        """Request a streamed completion and yield text as it arrives.

        Args:
            messages: OpenAI chat messages.

        Yields:
            Non-empty content deltas in arrival order.

        Raises:
            ModelServiceError: If the request fails before or during streaming,
                including transport errors such as a read timeout mid-stream.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            for event in response:
                if not event.choices:
                    continue
                content = event.choices[0].delta.content
                if content:
                    yield content
        except (OpenAIError, httpx.HTTPError) as exc:
            logger.exception("Error streaming chat completion")
            msg = f"Chat completion request to {self.model} failed"
            raise ModelServiceError(msg, details=str(exc)) from exc
