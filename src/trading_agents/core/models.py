"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

Symbol = str

# --- Enumerations ---


class ProviderType(StrEnum):
    """Market data providers known to the factory."""

    ALPHAVANTAGE = "alphavantage"
    YAHOO = "yahoo"


class OutputSize(StrEnum):
    """Alpha Vantage history depth."""

    COMPACT = "compact"
    FULL = "full"


class YahooPeriod(StrEnum):
    """Chart ranges accepted by the Yahoo Finance chart endpoint."""

    ONE_DAY = "1d"
    FIVE_DAYS = "5d"
    ONE_MONTH = "1mo"
    THREE_MONTHS = "3mo"
    SIX_MONTHS = "6mo"
    ONE_YEAR = "1y"
    TWO_YEARS = "2y"
    FIVE_YEARS = "5y"
    TEN_YEARS = "10y"
    MAX = "max"


class YahooInterval(StrEnum):
    """Bar sizes accepted by the Yahoo Finance chart endpoint."""

    DAILY = "1d"
    WEEKLY = "1wk"
    MONTHLY = "1mo"


class LLMProviderName(StrEnum):
    """Supported LLM vendors."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"
    DEEPSEEK = "deepseek"


class MessageRole(StrEnum):
    """Roles in an LLM conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


# --- Market Data Models ---


class MarketDataPoint(BaseModel):
    """A single daily OHLCV candle, normalized across providers."""

    model_config = ConfigDict(frozen=True)

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int

    @field_validator("time")
    @classmethod
    def time_is_calendar_date(cls, v: str) -> str:
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"time must be a YYYY-MM-DD date, got: {v!r}")
        return v

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v

    @property
    def day(self) -> date:
        return date.fromisoformat(self.time)


class ProviderOptions(BaseModel):
    """Construction options shared by all market data providers.

    ``store`` without ``storage_dir`` is rejected with ConfigError when the
    provider is constructed.
    """

    model_config = ConfigDict(frozen=True)

    store: bool = False
    storage_dir: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    timeout: float = 30.0

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v


class BatchResult(BaseModel):
    """Outcome of one multi-symbol fetch: successes plus per-symbol errors."""

    data: dict[Symbol, list[MarketDataPoint]] = Field(default_factory=dict)
    errors: dict[Symbol, str] = Field(default_factory=dict)

    @property
    def failed_symbols(self) -> list[Symbol]:
        return list(self.errors.keys())

    @property
    def succeeded_symbols(self) -> list[Symbol]:
        return list(self.data.keys())
