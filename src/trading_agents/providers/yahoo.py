"""Yahoo Finance chart API provider.

No API key is required. The chart endpoint returns parallel arrays of
timestamps and OHLCV quotes; indices where any value is null (holidays,
halted sessions) are dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx

from trading_agents.core.exceptions import UpstreamFormatError
from trading_agents.core.models import (
    BatchResult,
    MarketDataPoint,
    ProviderOptions,
    Symbol,
    YahooInterval,
    YahooPeriod,
)
from trading_agents.providers.base import ResponseArchive, fetch_sequentially, get_json

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"
REQUEST_DELAY_SECONDS = 0.5

_QUOTE_FIELDS = ("open", "high", "low", "close", "volume")
_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; trading-agents/0.1)"}


def parse_chart(body: dict[str, Any], symbol: Symbol) -> list[MarketDataPoint]:
    """Convert a chart response body to points, newest first.

    Raises:
        UpstreamFormatError: ``chart.result`` is empty or not an object, or
            the timestamp or any quote array is missing or not a list.
    """
    result = _first_result(body, symbol)

    timestamps = result.get("timestamp")
    indicators = result.get("indicators")
    quotes = indicators.get("quote") if isinstance(indicators, dict) else None
    quote = quotes[0] if isinstance(quotes, list) and quotes else None

    if (
        not isinstance(timestamps, list)
        or not isinstance(quote, dict)
        or any(not isinstance(quote.get(f), list) for f in _QUOTE_FIELDS)
    ):
        logger.error("Missing required data fields in Yahoo Finance response for %s", symbol)
        raise UpstreamFormatError(
            f"Missing required data fields in Yahoo Finance response for {symbol}",
            context={"provider": "YAHOO", "symbol": symbol, "keys": sorted(result)},
        )

    points: list[MarketDataPoint] = []
    for i, ts in enumerate(timestamps):
        row = [_at(quote[f], i) for f in _QUOTE_FIELDS]
        if ts is None or any(v is None for v in row):
            continue
        open_, high, low, close, volume = row
        try:
            point = MarketDataPoint(
                time=datetime.fromtimestamp(ts, tz=timezone.utc).date().isoformat(),
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=int(volume),
            )
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise UpstreamFormatError(
                f"Malformed quote at index {i} in Yahoo Finance response for {symbol}: {e}",
                context={"provider": "YAHOO", "symbol": symbol, "keys": list(_QUOTE_FIELDS)},
            ) from e
        points.append(point)

    points.sort(key=lambda p: p.time, reverse=True)
    return points


def _first_result(body: dict[str, Any], symbol: Symbol) -> dict[str, Any]:
    chart = body.get("chart")
    if not isinstance(chart, dict):
        chart = {}
    results = chart.get("result")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        logger.error("Invalid response format from Yahoo Finance API for %s", symbol)
        message = f"Invalid response format from Yahoo Finance API for {symbol}"
        error = chart.get("error")
        if isinstance(error, dict) and error.get("description"):
            message = f"{message}: {error['description']}"
        raise UpstreamFormatError(
            message,
            context={"provider": "YAHOO", "symbol": symbol, "keys": sorted(body)},
        )
    return results[0]


def _at(values: list, i: int):
    return values[i] if i < len(values) else None


class YahooFinanceProvider:
    """Fetches OHLCV candles from the Yahoo Finance chart endpoint.

    Usage::

        async with YahooFinanceProvider() as yahoo:
            points = await yahoo.fetch_daily_time_series("AAPL", period="6mo")
    """

    provider_name = "YAHOO"

    def __init__(self, options: ProviderOptions | None = None) -> None:
        options = options or ProviderOptions()
        self._archive = ResponseArchive(self.provider_name, options.store, options.storage_dir)
        self._base_url = (options.base_url or YAHOO_CHART_URL).rstrip("/")
        self._client = httpx.AsyncClient(timeout=options.timeout, headers=_HEADERS)
        logger.info("Initialized Yahoo Finance provider")

    async def __aenter__(self) -> YahooFinanceProvider:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def archive(self) -> ResponseArchive:
        return self._archive

    def has_valid_credentials(self) -> bool:
        return True

    async def fetch_daily_time_series(
        self,
        symbol: Symbol,
        period: YahooPeriod | str = YahooPeriod.ONE_MONTH,
        interval: YahooInterval | str = YahooInterval.DAILY,
    ) -> list[MarketDataPoint]:
        """Fetch candles for one symbol, newest first.

        Raises:
            ValueError: Unsupported ``period`` or ``interval``.
            UpstreamFormatError: Empty result or missing arrays.
            TransportError: HTTP or connection failure.
        """
        period, interval = YahooPeriod(period), YahooInterval(interval)
        try:
            points, _ = await self._fetch(symbol, period, interval)
        except Exception as e:
            logger.error("Error fetching data for %s: %s", symbol, e)
            raise
        return points

    async def fetch_batch(
        self,
        symbols: Sequence[Symbol],
        period: YahooPeriod | str = YahooPeriod.ONE_MONTH,
        interval: YahooInterval | str = YahooInterval.DAILY,
    ) -> BatchResult:
        period, interval = YahooPeriod(period), YahooInterval(interval)

        async def fetch_one(symbol: Symbol) -> tuple[list[MarketDataPoint], bool]:
            return await self._fetch(symbol, period, interval)

        return await fetch_sequentially(
            self.provider_name,
            symbols,
            fetch_one,
            lambda _rate_limited: REQUEST_DELAY_SECONDS,
        )

    async def fetch_multiple_symbols(
        self,
        symbols: Sequence[Symbol],
        period: YahooPeriod | str = YahooPeriod.ONE_MONTH,
        interval: YahooInterval | str = YahooInterval.DAILY,
    ) -> dict[Symbol, list[MarketDataPoint]]:
        batch = await self.fetch_batch(symbols, period, interval)
        return batch.data

    async def _fetch(
        self, symbol: Symbol, period: YahooPeriod, interval: YahooInterval
    ) -> tuple[list[MarketDataPoint], bool]:
        logger.info(
            "Fetching %s data for %s with %s interval from Yahoo Finance...",
            period.value,
            symbol,
            interval.value,
        )
        body = await get_json(
            self._client,
            f"{self._base_url}/{symbol}",
            {
                "period": period.value,
                "interval": interval.value,
                "includePrePost": "false",
                "events": "div,split",
            },
            provider=self.provider_name,
            symbol=symbol,
        )

        _first_result(body, symbol)
        await self._archive.save(
            symbol, body, {"period": period.value, "interval": interval.value}
        )
        return parse_chart(body, symbol), False
