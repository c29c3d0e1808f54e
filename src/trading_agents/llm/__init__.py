"""LLM connectors sharing one message / options / response model.

Vendor SDKs are optional extras:

    pip install trading-agents[openai]     # OpenAI, Grok, DeepSeek
    pip install trading-agents[anthropic]  # Anthropic
"""

from trading_agents.llm.base import (
    BaseLLMConnector,
    FunctionCall,
    LLMConnector,
    LLMMessage,
    LLMRequestOptions,
    LLMResponse,
    StreamChunk,
    TokenUsage,
)
from trading_agents.llm.factory import (
    available_models,
    connector_from_config,
    create_connector,
    default_model,
)

__all__ = [
    # Models
    "LLMMessage",
    "LLMRequestOptions",
    "LLMResponse",
    "StreamChunk",
    "TokenUsage",
    "FunctionCall",
    # Protocol
    "LLMConnector",
    "BaseLLMConnector",
    # Factory
    "create_connector",
    "connector_from_config",
    "default_model",
    "available_models",
]
