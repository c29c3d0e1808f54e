"""LLM connector models, protocol, and shared connector behaviour."""

from __future__ import annotations

import logging
import os
from typing import Any, AsyncIterator, Mapping, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict

from trading_agents.core.models import MessageRole

logger = logging.getLogger("trading_agents.llm")


# --- Models ---


class LLMMessage(BaseModel):
    """One turn of a conversation. ``name`` is set for function results."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    name: str | None = None


class LLMRequestOptions(BaseModel):
    """Sampling and function-calling options for one request."""

    model_config = ConfigDict(frozen=True)

    temperature: float = 0.7
    max_tokens: int = 1000
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    stop_sequences: list[str] | None = None
    functions: list[dict[str, Any]] | None = None
    function_call: str | dict[str, Any] | None = None


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class FunctionCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    arguments: str | None = None


class LLMResponse(BaseModel):
    """A complete (non-streamed) model reply."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    model: str
    usage: TokenUsage | None = None
    finish_reason: str | None = None
    function_call: FunctionCall | None = None


class StreamChunk(BaseModel):
    """One incremental piece of a streamed reply."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    content: str
    model: str
    function_call: FunctionCall | None = None


OptionsLike = LLMRequestOptions | Mapping[str, Any] | None
MessageLike = LLMMessage | Mapping[str, Any]


# --- Protocol ---


@runtime_checkable
class LLMConnector(Protocol):
    """Protocol for all LLM vendor connectors."""

    @property
    def provider_name(self) -> str: ...

    @property
    def model(self) -> str: ...

    async def list_models(self) -> list[str]: ...

    async def complete(self, prompt: str, options: OptionsLike = None) -> LLMResponse: ...

    async def chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> LLMResponse: ...

    def stream_chat(
        self, messages: Sequence[MessageLike], options: OptionsLike = None
    ) -> AsyncIterator[StreamChunk]: ...

    async def has_valid_credentials(self) -> bool: ...

    async def close(self) -> None: ...


# --- Shared behaviour ---


class BaseLLMConnector:
    """Model selection, option merging, and message helpers.

    Subclasses set ``provider_name``, ``known_models``, ``default_model`` and
    ``api_key_env``, and implement the request methods.
    """

    provider_name: str = ""
    known_models: tuple[str, ...] = ()
    default_model: str = ""
    api_key_env: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        default_options: OptionsLike = None,
    ) -> None:
        self._api_key = api_key or (os.environ.get(self.api_key_env) if self.api_key_env else None)
        self._model = model or self.default_model
        self._default_options = _as_options(default_options)
        logger.info("Initialized %s with model: %s", type(self).__name__, self._model)

    async def __aenter__(self) -> BaseLLMConnector:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the vendor client. Connectors without one have nothing to do."""

    @property
    def model(self) -> str:
        return self._model

    @model.setter
    def model(self, value: str) -> None:
        logger.info("Changing model from %s to %s", self._model, value)
        self._model = value

    @property
    def default_options(self) -> LLMRequestOptions:
        return self._default_options

    def merge_options(self, options: OptionsLike = None) -> LLMRequestOptions:
        """Overlay explicitly set fields of ``options`` on the defaults."""
        if options is None:
            return self._default_options
        if isinstance(options, LLMRequestOptions):
            overrides = options.model_dump(exclude_unset=True)
        else:
            overrides = LLMRequestOptions.model_validate(dict(options)).model_dump(
                exclude_unset=True
            )
        return self._default_options.model_copy(update=overrides)

    # Message helpers

    @staticmethod
    def system_message(content: str) -> LLMMessage:
        return LLMMessage(role=MessageRole.SYSTEM, content=content)

    @staticmethod
    def user_message(content: str) -> LLMMessage:
        return LLMMessage(role=MessageRole.USER, content=content)

    @staticmethod
    def assistant_message(content: str) -> LLMMessage:
        return LLMMessage(role=MessageRole.ASSISTANT, content=content)

    @staticmethod
    def function_message(name: str, content: str) -> LLMMessage:
        return LLMMessage(role=MessageRole.FUNCTION, content=content, name=name)


def _as_options(options: OptionsLike) -> LLMRequestOptions:
    if options is None:
        return LLMRequestOptions()
    if isinstance(options, LLMRequestOptions):
        return options
    return LLMRequestOptions.model_validate(dict(options))


def as_messages(messages: Sequence[MessageLike]) -> list[LLMMessage]:
    """Accept ``LLMMessage`` objects or ``{"role": ..., "content": ...}`` dicts."""
    return [
        m if isinstance(m, LLMMessage) else LLMMessage.model_validate(dict(m))
        for m in messages
    ]
