"""Connectors for OpenAI and the OpenAI-compatible Grok and DeepSeek APIs.

Requires: pip install openai
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, AsyncIterator, Iterator, Mapping, Sequence

from trading_agents.core.exceptions import LLMError
from trading_agents.llm.base import (
    BaseLLMConnector,
    FunctionCall,
    LLMMessage,
    LLMRequestOptions,
    LLMResponse,
    MessageLike,
    OptionsLike,
    StreamChunk,
    TokenUsage,
    as_messages,
)

logger = logging.getLogger("trading_agents.llm.openai")

OPENAI_MODELS = (
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-16k",
    "gpt-4",
    "gpt-4-turbo",
    "gpt-4-32k",
    "gpt-4-vision-preview",
)
GROK_MODELS = ("grok-1", "grok-1.5")
DEEPSEEK_MODELS = ("deepseek-chat", "deepseek-coder", "deepseek-lite", "deepseek-chat-v2")

DEFAULT_API_VERSION = "2023-12-01"


def _import_openai(provider: str):
    try:
        import openai
    except ImportError:
        raise LLMError(
            "openai package not installed. "
            "Install with: pip install trading-agents[openai]",
            context={"provider": provider},
        )
    return openai


class OpenAIConnector(BaseLLMConnector):
    """Chat, legacy completions, and streaming over the OpenAI SDK.

    Authentication: ``api_key`` or the ``OPENAI_API_KEY`` environment
    variable.
    """

    provider_name = "openai"
    display_name = "OpenAI"
    known_models = OPENAI_MODELS
    default_model = "gpt-3.5-turbo"
    api_key_env = "OPENAI_API_KEY"
    default_base_url = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float = 30.0,
        organization: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        default_options: OptionsLike = None,
    ) -> None:
        super().__init__(api_key, model, default_options=default_options)
        self._openai = _import_openai(self.provider_name)
        try:
            self._client = self._openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=base_url or self.default_base_url,
                timeout=timeout,
                organization=organization,
                default_headers=dict(default_headers) if default_headers else None,
            )
        except self._openai.OpenAIError as e:
            raise LLMError(
                f"{self.display_name} client could not be created: {e}",
                context={"provider": self.provider_name, "status_code": None},
            ) from e

    @contextlib.contextmanager
    def _vendor_errors(self) -> Iterator[None]:
        try:
            yield
        except self._openai.APIStatusError as e:
            raise LLMError(
                f"{self.display_name} API error: {e.message}",
                context={"provider": self.provider_name, "status_code": e.status_code},
            ) from e
        except self._openai.APIConnectionError as e:
            raise LLMError(
                f"{self.display_name} connection error: {e}",
                context={"provider": self.provider_name, "status_code": None},
            ) from e
        except self._openai.APIError as e:
            raise LLMError(
                f"{self.display_name} error: {e}",
                context={"provider": self.provider_name, "status_code": None},
            ) from e

    def _keeps_model(self, model_id: str) -> bool:
        return "gpt" in model_id or "text-davinci" in model_id

    async def list_models(self) -> list[str]:
        with self._vendor_errors():
            page = await self._client.models.list()
        return [m.id for m in page.data if self._keeps_model(m.id)]

    def _sampling_kwargs(self, opts: LLMRequestOptions) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": opts.max_tokens,
            "temperature": opts.temperature,
            "top_p": opts.top_p,
            "frequency_penalty": opts.frequency_penalty,
            "presence_penalty": opts.presence_penalty,
        }
        if opts.stop_sequences:
            kwargs["stop"] = opts.stop_sequences
        return kwargs

    def _chat_kwargs(self, messages: list[LLMMessage], opts: LLMRequestOptions) -> dict[str, Any]:
        kwargs = self._sampling_kwargs(opts)
        kwargs["messages"] = [
            {"role": m.role.value, "content": m.content, **({"name": m.name} if m.name else {})}
            for m in messages
        ]
        if opts.functions:
            kwargs["functions"] = opts.functions
            if opts.function_call:
                kwargs["function_call"] = opts.function_call
        return kwargs

    async def complete(self, prompt: str, options: OptionsLike = None) -> LLMResponse:
        """Single-prompt completion via the legacy completions endpoint."""
        kwargs = self._sampling_kwargs(self.merge_options(options))
        with self._vendor_errors():
            response = await self._client.completions.create(prompt=prompt, **kwargs)

        choice = response.choices[0]
        return LLMResponse(
            id=response.id,
            content=choice.text or "",
            model=response.model,
            usage=_usage(response.usage),
            finish_reason=choice.finish_reason,
        )

    async def chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> LLMResponse:
        kwargs = self._chat_kwargs(as_messages(messages), self.merge_options(options))
        with self._vendor_errors():
            response = await self._client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        function_call = getattr(choice.message, "function_call", None)
        return LLMResponse(
            id=response.id,
            content=choice.message.content or "",
            model=response.model,
            usage=_usage(response.usage),
            finish_reason=choice.finish_reason,
            function_call=_function_call(function_call),
        )

    async def stream_chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> AsyncIterator[StreamChunk]:
        """Yield reply fragments as they arrive; ends when the stream does."""
        kwargs = self._chat_kwargs(as_messages(messages), self.merge_options(options))
        with self._vendor_errors():
            stream = await self._client.chat.completions.create(stream=True, **kwargs)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                yield StreamChunk(
                    id=chunk.id,
                    content=delta.content or "",
                    model=self._model,
                    function_call=_function_call(getattr(delta, "function_call", None)),
                )

    async def close(self) -> None:
        await self._client.close()

    async def has_valid_credentials(self) -> bool:
        try:
            with self._vendor_errors():
                await self._client.models.list()
        except LLMError as e:
            logger.error("Invalid %s credentials: %s", self.display_name, e)
            return False
        return True


class _VersionedCompatConnector(OpenAIConnector):
    """OpenAI-compatible vendor that pins an ``X-API-Version`` header and
    falls back to its known models when the models endpoint fails."""

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
        super().__init__(
            api_key,
            model,
            base_url=base_url,
            timeout=timeout,
            default_headers={"X-API-Version": api_version},
            default_options=default_options,
        )

    def _keeps_model(self, model_id: str) -> bool:
        return True

    async def list_models(self) -> list[str]:
        try:
            return await super().list_models()
        except LLMError as e:
            logger.error("Error listing %s models: %s", self.display_name, e)
            return list(self.known_models)


class GrokConnector(_VersionedCompatConnector):
    provider_name = "grok"
    display_name = "Grok"
    known_models = GROK_MODELS
    default_model = "grok-1.5"
    api_key_env = "GROK_API_KEY"
    default_base_url = "https://api.grok.x.ai/v1"


class DeepSeekConnector(_VersionedCompatConnector):
    provider_name = "deepseek"
    display_name = "DeepSeek"
    known_models = DEEPSEEK_MODELS
    default_model = "deepseek-chat"
    api_key_env = "DEEPSEEK_API_KEY"
    default_base_url = "https://api.deepseek.com/v1"


def _usage(usage: Any) -> TokenUsage | None:
    if usage is None:
        return None
    return TokenUsage(
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
    )


def _function_call(call: Any) -> FunctionCall | None:
    if call is None:
        return None
    return FunctionCall(name=call.name, arguments=call.arguments)
