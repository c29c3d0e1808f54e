"""Connector for the Anthropic Messages API.

Requires: pip install anthropic
Authentication: ``api_key`` or the ``ANTHROPIC_API_KEY`` environment variable.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, AsyncIterator, Iterator, Sequence

from trading_agents.core.exceptions import LLMError
from trading_agents.core.models import MessageRole
from trading_agents.llm.base import (
    BaseLLMConnector,
    LLMMessage,
    LLMRequestOptions,
    LLMResponse,
    MessageLike,
    OptionsLike,
    StreamChunk,
    TokenUsage,
    as_messages,
)

logger = logging.getLogger("trading_agents.llm.anthropic")

CLAUDE_MODELS = (
    "claude-3-opus-20240229",
    "claude-3-sonnet-20240229",
    "claude-3-haiku-20240307",
    "claude-2.1",
    "claude-2",
    "claude-instant-1.2",
)
DEFAULT_API_VERSION = "2023-06-01"


def convert_messages(messages: Sequence[LLMMessage]) -> tuple[str, list[dict[str, Any]]]:
    """Split out the system prompt and map the rest to Messages API turns.

    System messages are joined into a single system prompt. Function results
    become assistant text, since the API only has user and assistant roles.
    """
    system_parts: list[str] = []
    turns: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == MessageRole.SYSTEM:
            system_parts.append(msg.content)
            continue
        if msg.role == MessageRole.FUNCTION:
            role, text = "assistant", f"Function {msg.name} result: {msg.content}"
        else:
            role = "user" if msg.role == MessageRole.USER else "assistant"
            text = msg.content
        turns.append({"role": role, "content": [{"type": "text", "text": text}]})

    return "\n\n".join(system_parts), turns


class AnthropicConnector(BaseLLMConnector):
    """Chat and streaming over the Anthropic SDK.

    There is no separate completions endpoint; ``complete`` sends the prompt
    as a single user turn.
    """

    provider_name = "anthropic"
    display_name = "Anthropic"
    known_models = CLAUDE_MODELS
    default_model = "claude-3-haiku-20240307"
    api_key_env = "ANTHROPIC_API_KEY"
    default_base_url = "https://api.anthropic.com"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float = 30.0,
        api_version: str = DEFAULT_API_VERSION,
        default_options: OptionsLike = None,
    ) -> None:
        super().__init__(api_key, model, default_options=default_options)
        try:
            import anthropic
        except ImportError:
            raise LLMError(
                "anthropic package not installed. "
                "Install with: pip install trading-agents[anthropic]",
                context={"provider": self.provider_name},
            )
        self._anthropic = anthropic
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            base_url=base_url or self.default_base_url,
            timeout=timeout,
            default_headers={"anthropic-version": api_version},
        )

    @contextlib.contextmanager
    def _vendor_errors(self) -> Iterator[None]:
        try:
            yield
        except self._anthropic.APIStatusError as e:
            raise LLMError(
                f"Anthropic API error: {e.message}",
                context={"provider": self.provider_name, "status_code": e.status_code},
            ) from e
        except self._anthropic.APIConnectionError as e:
            raise LLMError(
                f"Anthropic connection error: {e}",
                context={"provider": self.provider_name, "status_code": None},
            ) from e
        except self._anthropic.APIError as e:
            raise LLMError(
                f"Anthropic error: {e}",
                context={"provider": self.provider_name, "status_code": None},
            ) from e

    async def list_models(self) -> list[str]:
        return list(self.known_models)

    def _request_kwargs(
        self, messages: list[LLMMessage], opts: LLMRequestOptions
    ) -> dict[str, Any]:
        system, turns = convert_messages(messages)
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": turns,
            "max_tokens": opts.max_tokens,
            "temperature": opts.temperature,
            "top_p": opts.top_p,
        }
        if opts.stop_sequences:
            kwargs["stop_sequences"] = opts.stop_sequences
        if system:
            kwargs["system"] = system
        return kwargs

    async def complete(self, prompt: str, options: OptionsLike = None) -> LLMResponse:
        return await self.chat([self.user_message(prompt)], options)

    async def chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> LLMResponse:
        kwargs = self._request_kwargs(as_messages(messages), self.merge_options(options))
        with self._vendor_errors():
            message = await self._client.messages.create(**kwargs)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        usage = message.usage
        return LLMResponse(
            id=message.id,
            content=text,
            model=message.model,
            usage=TokenUsage(
                prompt_tokens=usage.input_tokens,
                completion_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            ),
            finish_reason=message.stop_reason,
        )

    async def stream_chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> AsyncIterator[StreamChunk]:
        """Yield text deltas until the ``message_stop`` event."""
        kwargs = self._request_kwargs(as_messages(messages), self.merge_options(options))
        message_id: str | None = None
        with self._vendor_errors():
            stream = await self._client.messages.create(stream=True, **kwargs)
            async for event in stream:
                if event.type == "message_start":
                    message_id = event.message.id
                elif event.type == "content_block_delta":
                    text = getattr(event.delta, "text", None)
                    if text:
                        yield StreamChunk(id=message_id, content=text, model=self._model)
                elif event.type == "message_stop":
                    break

    async def close(self) -> None:
        await self._client.close()

    async def has_valid_credentials(self) -> bool:
        """Send a one-token request; any vendor error counts as invalid."""
        try:
            with self._vendor_errors():
                await self._client.messages.create(
                    model=self._model,
                    messages=[{"role": "user", "content": [{"type": "text", "text": "Hello"}]}],
                    max_tokens=1,
                )
        except LLMError as e:
            logger.error("Invalid Anthropic credentials: %s", e)
            return False
        return True
