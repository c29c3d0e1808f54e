"""trading_agents.core: Foundation types, config, and exceptions."""

from trading_agents.core.config import (
    AgentsConfig,
    AlphaVantageConfig,
    LLMConfig,
    ProvidersConfig,
    TradingAgentsConfig,
    YahooConfig,
    load_config,
)
from trading_agents.core.exceptions import (
    AgentError,
    ConfigError,
    CredentialError,
    LLMError,
    ProviderError,
    RateLimitError,
    StorageError,
    TradingAgentsError,
    TransportError,
    UnknownProviderError,
    UpstreamFormatError,
)
from trading_agents.core.models import (
    BatchResult,
    LLMProviderName,
    MarketDataPoint,
    MessageRole,
    OutputSize,
    ProviderOptions,
    ProviderType,
    Symbol,
    YahooInterval,
    YahooPeriod,
)

__all__ = [
    # Type aliases
    "Symbol",
    # Enums
    "ProviderType",
    "OutputSize",
    "YahooPeriod",
    "YahooInterval",
    "LLMProviderName",
    "MessageRole",
    # Market data models
    "MarketDataPoint",
    "ProviderOptions",
    "BatchResult",
    # Config
    "TradingAgentsConfig",
    "ProvidersConfig",
    "AlphaVantageConfig",
    "YahooConfig",
    "LLMConfig",
    "AgentsConfig",
    "load_config",
    # Exceptions
    "TradingAgentsError",
    "ConfigError",
    "ProviderError",
    "CredentialError",
    "UpstreamFormatError",
    "RateLimitError",
    "TransportError",
    "UnknownProviderError",
    "StorageError",
    "AgentError",
    "LLMError",
]
