"""Shared pytest fixtures for trading-agents."""

from datetime import date, timedelta

import pytest

from trading_agents.core.models import MarketDataPoint


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer API keys and config files out of tests."""
    for var in (
        "ALPHAVANTAGE_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "GROK_API_KEY",
        "DEEPSEEK_API_KEY",
        "TRADING_AGENTS_CONFIG",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def av_daily_body() -> dict:
    """Alpha Vantage TIME_SERIES_DAILY response with three days."""
    return {
        "Meta Data": {
            "1. Information": "Daily Prices (open, high, low, close) and Volumes",
            "2. Symbol": "IBM",
            "3. Last Refreshed": "2024-01-05",
            "4. Output Size": "Compact",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily)": {
            "2024-01-03": {
                "1. open": "160.0000",
                "2. high": "161.7300",
                "3. low": "159.9800",
                "4. close": "160.1000",
                "5. volume": "4086091",
            },
            "2024-01-05": {
                "1. open": "162.0000",
                "2. high": "163.2900",
                "3. low": "161.3800",
                "4. close": "162.6000",
                "5. volume": "3844683",
            },
            "2024-01-04": {
                "1. open": "160.6500",
                "2. high": "162.3200",
                "3. low": "160.2100",
                "4. close": "161.8000",
                "5. volume": "3697301",
            },
        },
    }


@pytest.fixture
def yahoo_chart_body() -> dict:
    """Yahoo chart response: 2023-01-02, 2023-01-03 (null close), 2023-01-04."""
    return {
        "chart": {
            "result": [
                {
                    "meta": {"symbol": "AAPL", "currency": "USD"},
                    "timestamp": [1672650000, 1672736400, 1672822800],
                    "indicators": {
                        "quote": [
                            {
                                "open": [130.28, 126.89, 127.13],
                                "high": [130.90, 128.66, 127.77],
                                "low": [124.17, 125.08, 124.76],
                                "close": [125.07, None, 126.36],
                                "volume": [112117500, 89113600, 80962700],
                            }
                        ]
                    },
                }
            ],
            "error": None,
        }
    }


def make_series(closes: list[float], start: date = date(2024, 1, 1)) -> list[MarketDataPoint]:
    """Build an oldest-first daily series from closing prices."""
    return [
        MarketDataPoint(
            time=(start + timedelta(days=i)).isoformat(),
            open=c,
            high=c + 1.0,
            low=c - 1.0,
            close=c,
            volume=1000 + i,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def rising_series() -> list[MarketDataPoint]:
    return make_series([100.0 + i for i in range(60)])


@pytest.fixture
def falling_series() -> list[MarketDataPoint]:
    return make_series([200.0 - i for i in range(60)])


@pytest.fixture
def series_of():
    """Factory fixture: ``series_of([closes...])`` → oldest-first series."""
    return make_series
