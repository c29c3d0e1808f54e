"""Provider construction from a type tag."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from trading_agents.core.config import ProvidersConfig
from trading_agents.core.exceptions import UnknownProviderError
from trading_agents.core.models import ProviderOptions, ProviderType
from trading_agents.providers.alpha_vantage import AlphaVantageProvider
from trading_agents.providers.base import MarketDataProvider
from trading_agents.providers.yahoo import YahooFinanceProvider

logger = logging.getLogger(__name__)


def create_provider(
    provider_type: ProviderType | str,
    options: ProviderOptions | Mapping[str, Any] | None = None,
) -> MarketDataProvider:
    """Construct a fresh provider for ``provider_type``.

    Raises:
        UnknownProviderError: ``provider_type`` is not a known tag.
        ConfigError: ``store`` is set without ``storage_dir``.
        StorageError: The archive directory could not be created.
    """
    logger.info("Creating market data provider of type: %s", provider_type)

    try:
        kind = ProviderType(provider_type)
    except ValueError:
        logger.error("Unknown provider type: %s", provider_type)
        raise UnknownProviderError(
            f"Unknown provider type: {provider_type}",
            context={"provider": str(provider_type)},
        ) from None

    if isinstance(options, Mapping):
        options = ProviderOptions.model_validate(dict(options))

    if kind is ProviderType.ALPHAVANTAGE:
        return AlphaVantageProvider(options)
    return YahooFinanceProvider(options)


def provider_from_config(
    provider_type: ProviderType | str, config: ProvidersConfig
) -> MarketDataProvider:
    """Construct a provider using the shared ``providers`` config section."""
    return create_provider(provider_type, config.options_for(str(provider_type)))
