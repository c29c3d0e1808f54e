"""Alpha Vantage TIME_SERIES_DAILY provider.

Batches run one symbol at a time. The pause between requests grows to a
full minute after a response carries a call-frequency note.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Sequence

import httpx

from trading_agents.core.exceptions import (
    CredentialError,
    RateLimitError,
    UpstreamFormatError,
)
from trading_agents.core.models import (
    BatchResult,
    MarketDataPoint,
    OutputSize,
    ProviderOptions,
    Symbol,
)
from trading_agents.providers.base import ResponseArchive, fetch_sequentially, get_json

logger = logging.getLogger(__name__)

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
PLACEHOLDER_API_KEY = "your_alphavantage_api_key"
TIME_SERIES_KEY = "Time Series (Daily)"

DEFAULT_DELAY_SECONDS = 1.5
RATE_LIMITED_DELAY_SECONDS = 60.0

_THROTTLE_MESSAGE_MARKERS = ("call frequency", "Thank you for using Alpha Vantage")


def is_rate_limited(body: dict[str, Any] | None) -> bool:
    """Whether a response body carries Alpha Vantage's throttling wording."""
    if not body:
        return False

    note = body.get("Note")
    if isinstance(note, str) and (
        "call frequency" in note or "Thank you for using Alpha Vantage!" in note
    ):
        return True

    information = body.get("Information")
    return isinstance(information, str) and "call frequency" in information


def is_throttle_message(message: str) -> bool:
    """Whether a failure message looks like it came from throttling."""
    return any(marker in message for marker in _THROTTLE_MESSAGE_MARKERS)


def recommended_delay(rate_limited: bool) -> float:
    """Seconds to wait before the next request in a batch."""
    return RATE_LIMITED_DELAY_SECONDS if rate_limited else DEFAULT_DELAY_SECONDS


def parse_daily_series(series: dict[str, Any]) -> list[MarketDataPoint]:
    """Convert a ``Time Series (Daily)`` mapping to points, newest first.

    Raises:
        UpstreamFormatError: An entry is missing a field or has a value that
            does not parse.
    """
    points: list[MarketDataPoint] = []
    for day, values in series.items():
        try:
            points.append(
                MarketDataPoint(
                    time=day,
                    open=float(values["1. open"]),
                    high=float(values["2. high"]),
                    low=float(values["3. low"]),
                    close=float(values["4. close"]),
                    volume=int(float(values["5. volume"])),
                )
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise UpstreamFormatError(
                f"Malformed daily entry {day!r} from Alpha Vantage: {e}",
                context={
                    "provider": "ALPHAVANTAGE",
                    "keys": sorted(values) if isinstance(values, dict) else [],
                },
            ) from e

    points.sort(key=lambda p: p.time, reverse=True)
    return points


class AlphaVantageProvider:
    """Fetches daily OHLCV candles from Alpha Vantage.

    The API key comes from ``options.api_key`` or the
    ``ALPHAVANTAGE_API_KEY`` environment variable.

    Usage::

        async with AlphaVantageProvider(ProviderOptions(api_key="...")) as av:
            points = await av.fetch_daily_time_series("IBM")
    """

    provider_name = "ALPHAVANTAGE"

    def __init__(self, options: ProviderOptions | None = None) -> None:
        options = options or ProviderOptions()
        self._archive = ResponseArchive(self.provider_name, options.store, options.storage_dir)
        self._api_key = options.api_key or os.environ.get("ALPHAVANTAGE_API_KEY", "")
        self._base_url = options.base_url or ALPHA_VANTAGE_URL
        self._client = httpx.AsyncClient(timeout=options.timeout)

        if not self._api_key:
            logger.warning(
                "No Alpha Vantage API key provided. Set ALPHAVANTAGE_API_KEY in your environment"
            )

    async def __aenter__(self) -> AlphaVantageProvider:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def archive(self) -> ResponseArchive:
        return self._archive

    def has_valid_credentials(self) -> bool:
        return bool(self._api_key) and self._api_key != PLACEHOLDER_API_KEY

    def recommended_delay(self, rate_limited: bool) -> float:
        return recommended_delay(rate_limited)

    async def fetch_daily_time_series(
        self, symbol: Symbol, output_size: OutputSize | str = OutputSize.COMPACT
    ) -> list[MarketDataPoint]:
        """Fetch the daily series for one symbol, newest first.

        Raises:
            ValueError: ``output_size`` is not ``compact`` or ``full``.
            CredentialError: No usable API key; raised before any request.
            UpstreamFormatError: Vendor error message or missing series.
            RateLimitError: Missing series while a throttling note is present.
            TransportError: HTTP or connection failure.
        """
        size = OutputSize(output_size)
        try:
            points, _ = await self._fetch(symbol, size)
        except Exception as e:
            logger.error("Error fetching data for %s: %s", symbol, e)
            raise
        return points

    async def fetch_batch(
        self, symbols: Sequence[Symbol], output_size: OutputSize | str = OutputSize.COMPACT
    ) -> BatchResult:
        size = OutputSize(output_size)

        async def fetch_one(symbol: Symbol) -> tuple[list[MarketDataPoint], bool]:
            return await self._fetch(symbol, size)

        return await fetch_sequentially(
            self.provider_name,
            symbols,
            fetch_one,
            recommended_delay,
            is_throttle_message,
        )

    async def fetch_multiple_symbols(
        self, symbols: Sequence[Symbol], output_size: OutputSize | str = OutputSize.COMPACT
    ) -> dict[Symbol, list[MarketDataPoint]]:
        """Fetch several symbols sequentially; failures are logged and left out."""
        batch = await self.fetch_batch(symbols, output_size)
        return batch.data

    async def _fetch(
        self, symbol: Symbol, output_size: OutputSize
    ) -> tuple[list[MarketDataPoint], bool]:
        """One request. Returns the points and whether throttling was signalled."""
        if not self.has_valid_credentials():
            raise CredentialError(
                "Valid Alpha Vantage API key is required",
                context={"provider": self.provider_name, "symbol": symbol},
            )

        body = await get_json(
            self._client,
            self._base_url,
            {
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "outputsize": output_size.value,
                "apikey": self._api_key,
            },
            provider=self.provider_name,
            symbol=symbol,
        )

        if "Error Message" in body:
            logger.error(
                "Alpha Vantage API error for %s: %s", symbol, body["Error Message"]
            )
            raise UpstreamFormatError(
                f"Alpha Vantage API error: {body['Error Message']}",
                context={"provider": self.provider_name, "symbol": symbol, "keys": sorted(body)},
            )

        throttled = is_rate_limited(body)
        if "Information" in body:
            logger.warning("Alpha Vantage API information for %s: %s", symbol, body["Information"])
        if "Note" in body:
            logger.warning("Alpha Vantage API note for %s: %s", symbol, body["Note"])

        series = body.get(TIME_SERIES_KEY)
        if not isinstance(series, dict):
            logger.error("Invalid response format from Alpha Vantage API for %s", symbol)
            logger.debug("Full response: %s", json.dumps(body))
            context = {"provider": self.provider_name, "symbol": symbol, "keys": sorted(body)}
            if throttled:
                notice = body.get("Note") or body.get("Information")
                raise RateLimitError(
                    f"Alpha Vantage rate limit reached for {symbol}: {notice}",
                    context={**context, "note": notice},
                )
            raise UpstreamFormatError(
                f"Invalid response format from Alpha Vantage API for {symbol}",
                context=context,
            )

        await self._archive.save(symbol, body, {"outputSize": output_size.value})
        return parse_daily_series(series), throttled
