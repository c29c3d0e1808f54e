"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from trading_agents.core.exceptions import ConfigError
from trading_agents.core.models import (
    LLMProviderName,
    OutputSize,
    ProviderOptions,
    YahooInterval,
    YahooPeriod,
)

SUPPORTED_INDICATORS = ("sma", "ema", "rsi", "macd", "bollinger")


def _split_csv(v: object) -> object:
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    return v


class AlphaVantageConfig(BaseModel):
    """Alpha Vantage access configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    output_size: OutputSize = OutputSize.COMPACT


class YahooConfig(BaseModel):
    """Yahoo Finance access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str | None = None
    period: YahooPeriod = YahooPeriod.ONE_MONTH
    interval: YahooInterval = YahooInterval.DAILY


class ProvidersConfig(BaseModel):
    """Market data provider configuration."""

    model_config = ConfigDict(frozen=True)

    store: bool = False
    storage_dir: str | None = None
    timeout: float = 30.0
    alphavantage: AlphaVantageConfig = AlphaVantageConfig()
    yahoo: YahooConfig = YahooConfig()

    @model_validator(mode="after")
    def storage_dir_required_for_store(self) -> ProvidersConfig:
        if self.store and not self.storage_dir:
            raise ValueError("storage_dir is required when store is true")
        return self

    def options_for(self, provider: str) -> ProviderOptions:
        """Build ProviderOptions for one provider from the shared settings."""
        api_key = self.alphavantage.api_key if provider == "alphavantage" else None
        base_url = self.yahoo.base_url if provider == "yahoo" else None
        return ProviderOptions(
            store=self.store,
            storage_dir=self.storage_dir,
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout,
        )


class LLMConfig(BaseModel):
    """Configuration for the LLM connector used by the CLI."""

    model_config = ConfigDict(frozen=True)

    provider: LLMProviderName = LLMProviderName.OPENAI
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    timeout_seconds: int = 30
    temperature: float = 0.7
    max_tokens: int = 1000

    @field_validator("timeout_seconds", "max_tokens")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("temperature")
    @classmethod
    def temperature_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        return v


class TechnicalAgentConfig(BaseModel):
    """Default indicator set for the technical analysis agent."""

    model_config = ConfigDict(frozen=True)

    indicators: list[str] = ["sma", "rsi", "macd"]

    @field_validator("indicators", mode="before")
    @classmethod
    def indicators_from_csv(cls, v: object) -> object:
        return _split_csv(v)

    @field_validator("indicators")
    @classmethod
    def indicators_known(cls, v: list[str]) -> list[str]:
        unknown = [i for i in v if i.lower() not in SUPPORTED_INDICATORS]
        if unknown:
            raise ValueError(
                f"unknown indicators {unknown}; choose from {list(SUPPORTED_INDICATORS)}"
            )
        return [i.lower() for i in v]


class SentimentAgentConfig(BaseModel):
    """Default news sources for the sentiment agent."""

    model_config = ConfigDict(frozen=True)

    sources: list[str] = []
    timeout: float = 15.0

    @field_validator("sources", mode="before")
    @classmethod
    def sources_from_csv(cls, v: object) -> object:
        return _split_csv(v)


class AgentsConfig(BaseModel):
    """Aggregated agent configuration."""

    model_config = ConfigDict(frozen=True)

    technical: TechnicalAgentConfig = TechnicalAgentConfig()
    sentiment: SentimentAgentConfig = SentimentAgentConfig()


class TradingAgentsConfig(BaseModel):
    """Root configuration for the entire trading-agents system."""

    model_config = ConfigDict(frozen=True)

    providers: ProvidersConfig = ProvidersConfig()
    llm: LLMConfig = LLMConfig()
    agents: AgentsConfig = AgentsConfig()


CONFIG_PATH_VAR = "TRADING_AGENTS_CONFIG"
DEFAULT_CONFIG_FILE = "trading-agents.yml"


def load_config(
    config_path: str | None = None,
    env_prefix: str = "TRADING_AGENTS_",
) -> TradingAgentsConfig:
    """Build the configuration tree.

    Sources, highest priority first: environment variables, the YAML file,
    model defaults. The YAML file is ``config_path``, else the file named by
    ``TRADING_AGENTS_CONFIG``, else ``trading-agents.yml`` in the working
    directory if present.

    Environment variables map onto the tree with ``__`` between levels::

        TRADING_AGENTS_LLM__PROVIDER=anthropic      ->  llm.provider
        TRADING_AGENTS_AGENTS__TECHNICAL__INDICATORS=rsi,macd

    Values stay strings; pydantic converts them for numeric and boolean
    fields, so secrets made of digits are kept as written.

    Raises:
        ConfigError: Missing or unreadable file, or a value that fails
            validation.
    """
    path = _resolve_config_path(config_path)
    settings = _load_yaml(path) if path is not None else {}
    _deep_update(settings, _env_overrides(env_prefix))
    try:
        return TradingAgentsConfig.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(
            str(e),
            context={"source": str(path) if path else "environment"},
        ) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    if explicit is not None:
        source, raw = "config_path", explicit
    elif os.environ.get(CONFIG_PATH_VAR):
        source, raw = CONFIG_PATH_VAR, os.environ[CONFIG_PATH_VAR]
    else:
        default = Path(DEFAULT_CONFIG_FILE)
        return default if default.is_file() else None

    path = Path(raw)
    if not path.is_file():
        raise ConfigError(
            f"Config file not found: {raw} (from {source})",
            context={"field": source, "value": raw},
        )
    return path


def _load_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Failed to read YAML config {path}: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}",
            context={"field": "config_file", "value": str(path)},
        )
    return data


def _env_overrides(prefix: str) -> dict:
    """Collect ``{prefix}A__B=v`` variables as ``{"a": {"b": "v"}}``."""
    overrides: dict = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        *parents, leaf = key[len(prefix) :].lower().split("__")
        if not parents and leaf == "config":
            continue
        node = overrides
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value
    return overrides


def _deep_update(target: dict, overrides: dict) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
