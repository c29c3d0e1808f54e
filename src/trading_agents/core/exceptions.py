"""Custom exception hierarchy for trading-agents."""

from typing import Any


class TradingAgentsError(Exception):
    """Base exception for all trading-agents errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(TradingAgentsError):
    """Invalid or missing configuration.

    Raised by load_config() during startup, and by provider construction
    when archival is requested without a storage directory. Fatal.

    Context keys:
        field (str): the config field that failed validation
        value (Any): the invalid value (redacted for secrets)
    """


class ProviderError(TradingAgentsError):
    """A market data provider failed to produce a series.

    Policy: propagate from single-symbol fetches. Batch fetches record the
    message per symbol and continue.

    Context keys:
        provider (str): "ALPHAVANTAGE" or "YAHOO"
        symbol (str): the symbol being fetched
    """


class CredentialError(ProviderError):
    """Missing or placeholder API key. Raised before any network call."""


class UpstreamFormatError(ProviderError):
    """Vendor response is missing the fields the provider expects.

    Context keys:
        keys (list[str]): top-level keys of the response body
    """


class RateLimitError(UpstreamFormatError):
    """Vendor body carried a throttling note instead of data.

    Context keys:
        note (str): the vendor's message
    """


class TransportError(ProviderError):
    """Network or HTTP failure talking to the vendor.

    Context keys:
        url (str): the URL that was being fetched
        status_code (int | None): HTTP status if a response arrived
    """


class UnknownProviderError(ProviderError):
    """Provider tag not recognised by the factory."""


class StorageError(TradingAgentsError):
    """Archive directory could not be created.

    Policy: raise at construction. Individual archive writes that fail are
    logged and suppressed by the provider instead.

    Context keys:
        path (str): the directory involved
    """


class AgentError(TradingAgentsError):
    """Agent lifecycle or input error.

    Context keys:
        agent_id (str): the agent instance involved
        agent_type (str): registry key, for unknown-type errors
    """


class LLMError(TradingAgentsError):
    """LLM provider returned an error or malformed response.

    Context keys:
        provider (str): "openai", "anthropic", "grok" or "deepseek"
        status_code (int | None): HTTP status code if applicable
    """
