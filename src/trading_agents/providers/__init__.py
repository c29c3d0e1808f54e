"""Market data providers.

Architecture
------------
Every provider satisfies the ``MarketDataProvider`` protocol:

    create_provider(tag) → provider.fetch_daily_time_series(symbol) → list[MarketDataPoint]

Built-in implementations:

- ``AlphaVantageProvider``: TIME_SERIES_DAILY endpoint, API key required,
  throttling-aware batch delays.
- ``YahooFinanceProvider``: v8 chart endpoint, no key required.

Both can archive raw vendor responses as JSON snapshots through
``ResponseArchive``.
"""

from trading_agents.providers.alpha_vantage import AlphaVantageProvider
from trading_agents.providers.base import MarketDataProvider, ResponseArchive
from trading_agents.providers.factory import create_provider, provider_from_config
from trading_agents.providers.yahoo import YahooFinanceProvider

__all__ = [
    # Protocol
    "MarketDataProvider",
    "ResponseArchive",
    # Implementations
    "AlphaVantageProvider",
    "YahooFinanceProvider",
    # Factory
    "create_provider",
    "provider_from_config",
]
