"""Market data provider protocol and the plumbing every provider shares.

Architecture
------------
Providers are independent classes that satisfy the ``MarketDataProvider``
protocol. Instead of inheriting from a common base they compose three
helpers defined here:

- ``ResponseArchive`` writes raw vendor bodies to flat JSON snapshot files.
- ``get_json`` performs one GET and maps httpx failures onto the
  provider error taxonomy.
- ``fetch_sequentially`` runs a multi-symbol batch one symbol at a time,
  sleeping between requests and collecting per-symbol errors.

The delay policy is supplied by each provider, so Alpha Vantage can stretch
its wait after a throttling note while Yahoo keeps a fixed pause.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence, runtime_checkable

import httpx

from trading_agents.core.exceptions import (
    ConfigError,
    ProviderError,
    RateLimitError,
    StorageError,
    TransportError,
    UpstreamFormatError,
)
from trading_agents.core.models import BatchResult, MarketDataPoint, Symbol

logger = logging.getLogger(__name__)

SymbolFetch = Callable[[Symbol], Awaitable[tuple[list[MarketDataPoint], bool]]]


@runtime_checkable
class MarketDataProvider(Protocol):
    """Consumer-facing interface for fetching daily OHLCV series.

    All code that needs market data should depend on this protocol, never
    on a concrete provider.
    """

    @property
    def provider_name(self) -> str: ...

    def has_valid_credentials(self) -> bool: ...

    async def fetch_daily_time_series(
        self, symbol: Symbol, **options: Any
    ) -> list[MarketDataPoint]:
        """Fetch one symbol, newest point first."""
        ...

    async def fetch_multiple_symbols(
        self, symbols: Sequence[Symbol], **options: Any
    ) -> dict[Symbol, list[MarketDataPoint]]:
        """Fetch symbols one after another.

        Returns
        -------
        dict[str, list[MarketDataPoint]]
            Only the symbols that succeeded. Failures are logged and are
            available through ``fetch_batch``.
        """
        ...

    async def fetch_batch(
        self, symbols: Sequence[Symbol], **options: Any
    ) -> BatchResult:
        """Same as fetch_multiple_symbols, but keeps the per-symbol errors."""
        ...

    async def close(self) -> None: ...


class ResponseArchive:
    """Writes raw vendor responses to ``storage_dir`` as JSON snapshots.

    File names follow
    ``{PROVIDER}_{yyyy-MM-dd_HH-mm-ss}_{symbol}[_{key}-{value}...].json``
    with a UTC timestamp.

    Parameters
    ----------
    provider_name : str
        Prefix for every file written by this archive.
    store : bool
        Whether archival is enabled at all.
    storage_dir : str | None
        Target directory. Required when ``store`` is true; created with
        parents if it does not exist.
    """

    def __init__(self, provider_name: str, store: bool, storage_dir: str | None) -> None:
        self._provider_name = provider_name
        self._dir: Path | None = None

        if store and not storage_dir:
            raise ConfigError(
                "Storage directory (storage_dir) must be provided when store is set to true",
                context={"field": "storage_dir", "value": storage_dir},
            )

        if store and storage_dir:
            path = Path(storage_dir)
            if not path.exists():
                try:
                    path.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.error("Failed to create storage directory %s: %s", path, e)
                    raise StorageError(
                        f"Failed to create storage directory: {e}",
                        context={"path": str(path)},
                    ) from e
                logger.info("Created storage directory: %s", path)
            self._dir = path

    @property
    def enabled(self) -> bool:
        return self._dir is not None

    @property
    def directory(self) -> Path | None:
        return self._dir

    def filename(
        self,
        symbol: Symbol,
        metadata: Mapping[str, str] | None = None,
        now: datetime | None = None,
    ) -> str:
        """Build the snapshot file name for one response."""
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d_%H-%M-%S")
        suffix = "_".join(f"{key}-{value}" for key, value in (metadata or {}).items())
        name = f"{self._provider_name}_{stamp}_{symbol}"
        if suffix:
            name = f"{name}_{suffix}"
        return f"{name}.json"

    async def save(
        self,
        symbol: Symbol,
        data: Any,
        metadata: Mapping[str, str] | None = None,
    ) -> Path | None:
        """Write ``data`` to a new snapshot file.

        Never raises: a failed write is logged and ``None`` is returned.
        """
        if self._dir is None:
            return None

        path = self._dir / self.filename(symbol, metadata)
        try:
            payload = json.dumps(data, indent=2)
            await asyncio.to_thread(path.write_text, payload, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to store response to file: %s", e)
            return None

        logger.info("Stored %s response for %s to %s", self._provider_name, symbol, path)
        return path


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Mapping[str, Any],
    *,
    provider: str,
    symbol: Symbol,
) -> dict[str, Any]:
    """GET ``url`` and return the decoded JSON object.

    Raises:
        TransportError: Connection failure or non-2xx status.
        UpstreamFormatError: Body is not a JSON object.
    """
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TransportError(
            f"{provider} HTTP {e.response.status_code} for {symbol}",
            context={
                "provider": provider,
                "symbol": symbol,
                "url": url,
                "status_code": e.response.status_code,
            },
        ) from e
    except httpx.RequestError as e:
        raise TransportError(
            f"{provider} request failed for {symbol}: {e}",
            context={"provider": provider, "symbol": symbol, "url": url, "status_code": None},
        ) from e

    logger.debug("Response received for %s. Status: %d", symbol, response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamFormatError(
            f"{provider} returned a non-JSON body for {symbol}",
            context={"provider": provider, "symbol": symbol, "keys": []},
        ) from e

    if not isinstance(data, dict):
        raise UpstreamFormatError(
            f"{provider} returned {type(data).__name__} instead of an object for {symbol}",
            context={"provider": provider, "symbol": symbol, "keys": []},
        )
    return data


async def fetch_sequentially(
    provider: str,
    symbols: Sequence[Symbol],
    fetch: SymbolFetch,
    delay_for: Callable[[bool], float],
    is_throttle_message: Callable[[str], bool] | None = None,
) -> BatchResult:
    """Fetch ``symbols`` strictly in order, never concurrently.

    Args:
        provider: Provider name, for log lines.
        symbols: Symbols to fetch. The first incurs no delay.
        fetch: Coroutine returning ``(points, throttled)`` for one symbol.
        delay_for: Seconds to wait before the next symbol, given whether the
            previous request signalled throttling.
        is_throttle_message: Optional predicate run on failure messages; a
            match counts as a throttling signal.

    Returns:
        BatchResult with successes in ``data`` and failures in ``errors``.
        Any exception raised for one symbol is recorded there; the loop
        always reaches the last symbol.
    """
    result = BatchResult()
    rate_limited = False

    for index, symbol in enumerate(symbols):
        if index > 0:
            delay = delay_for(rate_limited)
            logger.info(
                "Waiting %.1f seconds before next request%s...",
                delay,
                " (rate limited)" if rate_limited else "",
            )
            await asyncio.sleep(delay)
            rate_limited = False

        logger.info("Fetching data for %s...", symbol)
        try:
            points, throttled = await fetch(symbol)
        except ProviderError as e:
            message = str(e)
            logger.error("Failed to fetch data for %s: %s", symbol, message)
            result.errors[symbol] = message
            if isinstance(e, RateLimitError) or (
                is_throttle_message is not None and is_throttle_message(message)
            ):
                logger.warning(
                    "Detected possible rate limiting. Will increase delay for next requests."
                )
                rate_limited = True
            continue
        except Exception as e:
            logger.exception("Unexpected error fetching data for %s", symbol)
            result.errors[symbol] = f"{type(e).__name__}: {e}"
            continue

        result.data[symbol] = points
        if throttled:
            logger.warning(
                "Rate limiting detected for %s. Consider increasing delays between requests.",
                symbol,
            )
            rate_limited = True

    if result.errors:
        logger.error(
            "%s: encountered errors for %d out of %d symbols",
            provider,
            len(result.errors),
            len(symbols),
        )
        logger.error("Error summary: %s", json.dumps(result.errors))

    return result
