"""LLM connector construction and model catalogues."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from trading_agents.core.config import LLMConfig
from trading_agents.core.exceptions import LLMError
from trading_agents.core.models import LLMProviderName
from trading_agents.llm.anthropic import AnthropicConnector
from trading_agents.llm.base import BaseLLMConnector, LLMRequestOptions
from trading_agents.llm.openai_compat import DeepSeekConnector, GrokConnector, OpenAIConnector

logger = logging.getLogger("trading_agents.llm.factory")

CONNECTORS: dict[LLMProviderName, type[BaseLLMConnector]] = {
    LLMProviderName.OPENAI: OpenAIConnector,
    LLMProviderName.ANTHROPIC: AnthropicConnector,
    LLMProviderName.GROK: GrokConnector,
    LLMProviderName.DEEPSEEK: DeepSeekConnector,
}


def _connector_class(provider: LLMProviderName | str) -> type[BaseLLMConnector]:
    try:
        return CONNECTORS[LLMProviderName(provider)]
    except ValueError:
        logger.error("Unsupported LLM provider: %s", provider)
        raise LLMError(
            f"Unsupported LLM provider: {provider}",
            context={"provider": str(provider), "status_code": None},
        ) from None


def create_connector(
    provider: LLMProviderName | str,
    config: LLMConfig | Mapping[str, Any] | None = None,
) -> BaseLLMConnector:
    """Construct a connector for ``provider``.

    ``config`` is either the ``llm`` config section or a mapping of connector
    keyword arguments (``api_key``, ``model``, ``base_url``, ``timeout``, ...).
    """
    cls = _connector_class(provider)
    if isinstance(config, LLMConfig):
        kwargs: dict[str, Any] = {
            "api_key": config.api_key,
            "model": config.model,
            "base_url": config.base_url,
            "timeout": float(config.timeout_seconds),
            "default_options": LLMRequestOptions(
                temperature=config.temperature,
                max_tokens=config.max_tokens,
            ),
        }
    else:
        kwargs = dict(config or {})
    return cls(**kwargs)


def connector_from_config(config: LLMConfig) -> BaseLLMConnector:
    return create_connector(config.provider, config)


def default_model(provider: LLMProviderName | str) -> str:
    return _connector_class(provider).default_model


def available_models(provider: LLMProviderName | str) -> list[str]:
    return list(_connector_class(provider).known_models)
