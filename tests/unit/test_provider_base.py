"""Tests for trading_agents.providers.base (archive, HTTP helper, batch loop)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from trading_agents.core.exceptions import (
    ConfigError,
    CredentialError,
    RateLimitError,
    StorageError,
    TransportError,
    UpstreamFormatError,
)
from trading_agents.core.models import MarketDataPoint
from trading_agents.providers.base import ResponseArchive, fetch_sequentially, get_json

URL = "https://example.test/data"


def _point(day: str = "2024-01-05") -> MarketDataPoint:
    return MarketDataPoint(time=day, open=1, high=2, low=0.5, close=1.5, volume=10)


# --- ResponseArchive ---


class TestResponseArchive:
    def test_disabled_by_default(self):
        archive = ResponseArchive("YAHOO", store=False, storage_dir=None)
        assert archive.enabled is False
        assert archive.directory is None

    def test_store_without_dir_raises(self):
        with pytest.raises(ConfigError, match="storage_dir"):
            ResponseArchive("YAHOO", store=True, storage_dir=None)

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        archive = ResponseArchive("YAHOO", store=True, storage_dir=str(target))
        assert target.is_dir()
        assert archive.directory == target

    def test_uncreatable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(StorageError):
            ResponseArchive("YAHOO", store=True, storage_dir=str(blocker / "sub"))

    def test_filename_without_metadata(self, tmp_path):
        archive = ResponseArchive("ALPHAVANTAGE", store=True, storage_dir=str(tmp_path))
        now = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
        assert archive.filename("IBM", now=now) == "ALPHAVANTAGE_2024-03-09_14-05-07_IBM.json"

    def test_filename_with_metadata(self, tmp_path):
        archive = ResponseArchive("YAHOO", store=True, storage_dir=str(tmp_path))
        now = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
        name = archive.filename("AAPL", {"period": "1mo", "interval": "1d"}, now=now)
        assert name == "YAHOO_2024-03-09_14-05-07_AAPL_period-1mo_interval-1d.json"

    async def test_save_writes_pretty_json(self, tmp_path):
        archive = ResponseArchive("YAHOO", store=True, storage_dir=str(tmp_path))
        path = await archive.save("AAPL", {"chart": {"result": []}}, {"period": "1mo"})
        assert path is not None
        assert path.parent == tmp_path
        assert path.name.startswith("YAHOO_")
        assert path.name.endswith("_AAPL_period-1mo.json")
        text = path.read_text()
        assert json.loads(text) == {"chart": {"result": []}}
        assert '\n  "chart"' in text

    async def test_save_disabled_returns_none(self):
        archive = ResponseArchive("YAHOO", store=False, storage_dir=None)
        assert await archive.save("AAPL", {}) is None

    async def test_save_failure_is_swallowed(self, tmp_path):
        archive = ResponseArchive("YAHOO", store=True, storage_dir=str(tmp_path))
        assert await archive.save("AAPL", {"bad": object()}) is None
        assert list(tmp_path.iterdir()) == []


# --- get_json ---


class TestGetJson:
    @respx.mock
    async def test_returns_object(self):
        route = respx.get(URL).mock(return_value=httpx.Response(200, json={"ok": 1}))
        async with httpx.AsyncClient() as client:
            data = await get_json(client, URL, {"q": "x"}, provider="TEST", symbol="IBM")
        assert data == {"ok": 1}
        assert route.calls.last.request.url.params["q"] == "x"

    @respx.mock
    async def test_http_status_error(self):
        respx.get(URL).mock(return_value=httpx.Response(503))
        async with httpx.AsyncClient() as client:
            with pytest.raises(TransportError) as exc_info:
                await get_json(client, URL, {}, provider="TEST", symbol="IBM")
        assert exc_info.value.context["status_code"] == 503
        assert "503" in str(exc_info.value)

    @respx.mock
    async def test_connection_error(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as client:
            with pytest.raises(TransportError) as exc_info:
                await get_json(client, URL, {}, provider="TEST", symbol="IBM")
        assert exc_info.value.context["status_code"] is None

    @respx.mock
    async def test_non_json_body(self):
        respx.get(URL).mock(return_value=httpx.Response(200, text="<html>"))
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamFormatError, match="non-JSON"):
                await get_json(client, URL, {}, provider="TEST", symbol="IBM")

    @respx.mock
    async def test_json_array_rejected(self):
        respx.get(URL).mock(return_value=httpx.Response(200, json=[1, 2]))
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamFormatError, match="instead of an object"):
                await get_json(client, URL, {}, provider="TEST", symbol="IBM")


# --- fetch_sequentially ---


class TestFetchSequentially:
    async def test_no_delay_before_first_symbol(self):
        fetch = AsyncMock(return_value=([_point()], False))
        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await fetch_sequentially("TEST", ["A"], fetch, lambda limited: 1.0)
        sleep.assert_not_awaited()
        assert list(result.data) == ["A"]

    async def test_delay_between_symbols_and_order(self):
        seen: list[str] = []

        async def fetch(symbol):
            seen.append(symbol)
            return [_point()], False

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await fetch_sequentially("TEST", ["A", "B", "C"], fetch, lambda limited: 2.5)

        assert seen == ["A", "B", "C"]
        assert [c.args[0] for c in sleep.await_args_list] == [2.5, 2.5]
        assert result.succeeded_symbols == ["A", "B", "C"]
        assert result.errors == {}

    async def test_errors_collected_and_batch_continues(self):
        async def fetch(symbol):
            if symbol == "BAD":
                raise UpstreamFormatError("Invalid response format for BAD")
            return [_point()], False

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock):
            result = await fetch_sequentially("TEST", ["A", "BAD", "C"], fetch, lambda limited: 0)

        assert result.succeeded_symbols == ["A", "C"]
        assert result.errors == {"BAD": "Invalid response format for BAD"}

    async def test_unexpected_exception_recorded_and_batch_continues(self):
        async def fetch(symbol):
            if symbol == "BAD":
                raise AttributeError("'NoneType' object has no attribute 'get'")
            return [_point()], False

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock):
            result = await fetch_sequentially("TEST", ["BAD", "A"], fetch, lambda limited: 0)

        assert result.succeeded_symbols == ["A"]
        assert result.errors["BAD"].startswith("AttributeError: ")

    async def test_rate_limit_error_extends_next_delay_once(self):
        async def fetch(symbol):
            if symbol == "B":
                raise RateLimitError("slow down")
            return [_point()], False

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await fetch_sequentially(
                "TEST", ["A", "B", "C", "D"], fetch, lambda limited: 60.0 if limited else 1.0
            )

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 60.0, 1.0]

    async def test_throttle_message_predicate(self):
        async def fetch(symbol):
            if symbol == "A":
                raise CredentialError("call frequency exceeded")
            return [_point()], False

        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await fetch_sequentially(
                "TEST",
                ["A", "B"],
                fetch,
                lambda limited: 60.0 if limited else 1.0,
                is_throttle_message=lambda msg: "call frequency" in msg,
            )

        assert sleep.await_args_list[0].args[0] == 60.0

    async def test_throttled_success_extends_next_delay(self):
        fetch = AsyncMock(side_effect=[([_point()], True), ([_point()], False)])
        with patch("trading_agents.providers.base.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await fetch_sequentially(
                "TEST", ["A", "B"], fetch, lambda limited: 60.0 if limited else 1.0
            )
        assert sleep.await_args_list[0].args[0] == 60.0
        assert result.succeeded_symbols == ["A", "B"]

    async def test_empty_symbol_list(self):
        fetch = AsyncMock()
        result = await fetch_sequentially("TEST", [], fetch, lambda limited: 1.0)
        fetch.assert_not_awaited()
        assert result.data == {} and result.errors == {}
