"""Tests for trading_agents.providers.alpha_vantage."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from trading_agents.core.exceptions import (
    CredentialError,
    RateLimitError,
    TransportError,
    UpstreamFormatError,
)
from trading_agents.core.models import ProviderOptions
from trading_agents.providers.alpha_vantage import (
    ALPHA_VANTAGE_URL,
    DEFAULT_DELAY_SECONDS,
    RATE_LIMITED_DELAY_SECONDS,
    AlphaVantageProvider,
    is_rate_limited,
    parse_daily_series,
    recommended_delay,
)

THROTTLE_NOTE = (
    "Thank you for using Alpha Vantage! Our standard API call frequency is "
    "5 calls per minute and 500 calls per day."
)


@pytest.fixture
async def provider() -> AlphaVantageProvider:
    async with AlphaVantageProvider(ProviderOptions(api_key="test-key")) as p:
        yield p


# --- helpers ---


class TestRateLimitDetection:
    def test_note_with_call_frequency(self):
        assert is_rate_limited({"Note": "API call frequency exceeded"})

    def test_note_with_thank_you(self):
        assert is_rate_limited({"Note": "Thank you for using Alpha Vantage! Come back soon."})

    def test_information_with_call_frequency(self):
        assert is_rate_limited({"Information": "Please consider call frequency limits"})

    def test_unrelated_information(self):
        assert not is_rate_limited({"Information": "Premium endpoint"})

    def test_empty_body(self):
        assert not is_rate_limited({})
        assert not is_rate_limited(None)

    def test_recommended_delay(self):
        assert recommended_delay(False) == DEFAULT_DELAY_SECONDS == 1.5
        assert recommended_delay(True) == RATE_LIMITED_DELAY_SECONDS == 60.0


class TestParseDailySeries:
    def test_newest_first(self, av_daily_body):
        points = parse_daily_series(av_daily_body["Time Series (Daily)"])
        assert [p.time for p in points] == ["2024-01-05", "2024-01-04", "2024-01-03"]
        assert points[0].close == 162.6
        assert points[0].volume == 3844683

    def test_missing_field_raises(self):
        with pytest.raises(UpstreamFormatError, match="Malformed daily entry"):
            parse_daily_series({"2024-01-05": {"1. open": "1.0"}})

    def test_unparseable_value_raises(self):
        entry = {
            "1. open": "abc",
            "2. high": "1",
            "3. low": "1",
            "4. close": "1",
            "5. volume": "1",
        }
        with pytest.raises(UpstreamFormatError):
            parse_daily_series({"2024-01-05": entry})

    @pytest.mark.parametrize("volume", ["Infinity", None])
    def test_overflowing_or_null_volume_raises(self, volume):
        entry = {"1. open": "1", "2. high": "1", "3. low": "1", "4. close": "1", "5. volume": volume}
        with pytest.raises(UpstreamFormatError, match="Malformed daily entry"):
            parse_daily_series({"2024-01-05": entry})


# --- credentials ---


class TestCredentials:
    def test_key_from_options(self):
        p = AlphaVantageProvider(ProviderOptions(api_key="abc"))
        assert p.has_valid_credentials()

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALPHAVANTAGE_API_KEY", "env-key")
        assert AlphaVantageProvider().has_valid_credentials()

    def test_missing_key(self):
        assert not AlphaVantageProvider().has_valid_credentials()

    def test_placeholder_key_is_invalid(self):
        p = AlphaVantageProvider(ProviderOptions(api_key="your_alphavantage_api_key"))
        assert not p.has_valid_credentials()

    @respx.mock
    async def test_no_request_without_key(self):
        route = respx.get(ALPHA_VANTAGE_URL)
        async with AlphaVantageProvider() as p:
            with pytest.raises(CredentialError, match="Valid Alpha Vantage API key is required"):
                await p.fetch_daily_time_series("IBM")
        assert not route.called


# --- fetch_daily_time_series ---


class TestFetchDailyTimeSeries:
    @respx.mock
    async def test_success(self, provider, av_daily_body):
        route = respx.get(ALPHA_VANTAGE_URL).mock(
            return_value=httpx.Response(200, json=av_daily_body)
        )
        points = await provider.fetch_daily_time_series("IBM")

        assert [p.time for p in points] == ["2024-01-05", "2024-01-04", "2024-01-03"]
        params = route.calls.last.request.url.params
        assert params["function"] == "TIME_SERIES_DAILY"
        assert params["symbol"] == "IBM"
        assert params["outputsize"] == "compact"
        assert params["apikey"] == "test-key"

    @respx.mock
    async def test_full_output_size(self, provider, av_daily_body):
        route = respx.get(ALPHA_VANTAGE_URL).mock(
            return_value=httpx.Response(200, json=av_daily_body)
        )
        await provider.fetch_daily_time_series("IBM", output_size="full")
        assert route.calls.last.request.url.params["outputsize"] == "full"

    async def test_invalid_output_size(self, provider):
        with pytest.raises(ValueError):
            await provider.fetch_daily_time_series("IBM", output_size="huge")

    @respx.mock
    async def test_error_message(self, provider):
        respx.get(ALPHA_VANTAGE_URL).mock(
            return_value=httpx.Response(200, json={"Error Message": "Invalid API call."})
        )
        with pytest.raises(UpstreamFormatError, match="Alpha Vantage API error: Invalid API call."):
            await provider.fetch_daily_time_series("NOPE")

    @respx.mock
    async def test_throttle_note_raises_rate_limit(self, provider):
        respx.get(ALPHA_VANTAGE_URL).mock(
            return_value=httpx.Response(200, json={"Note": THROTTLE_NOTE})
        )
        with pytest.raises(RateLimitError) as exc_info:
            await provider.fetch_daily_time_series("IBM")
        assert exc_info.value.context["note"] == THROTTLE_NOTE

    @respx.mock
    async def test_missing_series(self, provider):
        respx.get(ALPHA_VANTAGE_URL).mock(
            return_value=httpx.Response(200, json={"Meta Data": {}})
        )
        with pytest.raises(UpstreamFormatError, match="Invalid response format"):
            await provider.fetch_daily_time_series("IBM")

    @respx.mock
    async def test_http_error(self, provider):
        respx.get(ALPHA_VANTAGE_URL).mock(return_value=httpx.Response(500))
        with pytest.raises(TransportError):
            await provider.fetch_daily_time_series("IBM")

    @respx.mock
    async def test_archives_raw_body(self, tmp_path, av_daily_body):
        respx.get(ALPHA_VANTAGE_URL).mock(return_value=httpx.Response(200, json=av_daily_body))
        options = ProviderOptions(api_key="k", store=True, storage_dir=str(tmp_path))
        async with AlphaVantageProvider(options) as p:
            await p.fetch_daily_time_series("IBM")

        files = list(tmp_path.iterdir())
        assert len(files) == 1
        assert files[0].name.startswith("ALPHAVANTAGE_")
        assert files[0].name.endswith("_IBM_outputSize-compact.json")


# --- batches ---


class TestBatch:
    @respx.mock
    async def test_multiple_symbols_with_failure(self, provider, av_daily_body):
        def respond(request: httpx.Request) -> httpx.Response:
            if request.url.params["symbol"] == "BAD":
                return httpx.Response(200, json={"Error Message": "Invalid API call."})
            return httpx.Response(200, json=av_daily_body)

        respx.get(ALPHA_VANTAGE_URL).mock(side_effect=respond)

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            batch = await provider.fetch_batch(["IBM", "BAD", "MSFT"])

        assert batch.succeeded_symbols == ["IBM", "MSFT"]
        assert "Invalid API call." in batch.errors["BAD"]
        assert [c.args[0] for c in sleep.await_args_list] == [1.5, 1.5]

    @respx.mock
    async def test_throttling_stretches_next_delay(self, provider, av_daily_body):
        responses = iter(
            [
                httpx.Response(200, json={"Note": THROTTLE_NOTE}),
                httpx.Response(200, json=av_daily_body),
                httpx.Response(200, json=av_daily_body),
            ]
        )
        respx.get(ALPHA_VANTAGE_URL).mock(side_effect=lambda request: next(responses))

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            data = await provider.fetch_multiple_symbols(["IBM", "MSFT", "AAPL"])

        assert list(data) == ["MSFT", "AAPL"]
        assert [c.args[0] for c in sleep.await_args_list] == [60.0, 1.5]

    @respx.mock
    async def test_note_alongside_data_still_succeeds(self, provider, av_daily_body):
        body = {**av_daily_body, "Note": THROTTLE_NOTE}
        respx.get(ALPHA_VANTAGE_URL).mock(return_value=httpx.Response(200, json=body))

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            batch = await provider.fetch_batch(["IBM", "MSFT"])

        assert batch.succeeded_symbols == ["IBM", "MSFT"]
        assert sleep.await_args_list[0].args[0] == 60.0

    async def test_batch_without_key_records_errors(self):
        async with AlphaVantageProvider() as p:
            with patch(
                "trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock
            ):
                batch = await p.fetch_batch(["IBM", "MSFT"])
        assert batch.data == {}
        assert set(batch.errors) == {"IBM", "MSFT"}
