"""Technical analysis agent backed by pandas-ta."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

import pandas as pd

from trading_agents.agents.base import BaseAgent
from trading_agents.agents.signals import generate_signals
from trading_agents.core.exceptions import AgentError
from trading_agents.core.models import MarketDataPoint

logger = logging.getLogger("trading_agents.agents.technical")

DEFAULT_INDICATORS = ["sma", "rsi", "macd"]
MA_PERIODS = (9, 20, 50, 200)
RSI_PERIOD = 14
MACD_FAST, MACD_SLOW, MACD_SIGNAL = 12, 26, 9
BOLLINGER_PERIOD, BOLLINGER_STD = 20, 2


def _ta():
    try:
        import pandas_ta
    except ImportError:
        raise AgentError(
            "pandas-ta package not installed. Install with: pip install pandas-ta",
            context={"agent_type": "technical-analysis"},
        )
    return pandas_ta


def _values(series: pd.Series | None) -> list[float]:
    if series is None:
        return []
    return [float(v) for v in series.dropna()]


def _column(frame: pd.DataFrame, prefix: str) -> pd.Series:
    for name in frame.columns:
        if str(name).startswith(prefix):
            return frame[name]
    raise AgentError(f"pandas-ta output has no column starting with {prefix!r}")


# --- Indicator calculators ---


def calculate_sma(close: pd.Series) -> dict[str, list[float]]:
    ta = _ta()
    return {f"period{n}": _values(ta.sma(close, length=n)) for n in MA_PERIODS}


def calculate_ema(close: pd.Series) -> dict[str, list[float]]:
    ta = _ta()
    return {f"period{n}": _values(ta.ema(close, length=n)) for n in MA_PERIODS}


def calculate_rsi(close: pd.Series) -> dict[str, Any]:
    """RSI(14) series plus the most recent reading under ``latest``."""
    values = _values(_ta().rsi(close, length=RSI_PERIOD))
    result: dict[str, Any] = {f"period{RSI_PERIOD}": values}
    if values:
        result["latest"] = values[-1]
    return result


def calculate_macd(close: pd.Series) -> dict[str, Any]:
    """MACD 12/26/9. Rows are kept only once the signal line exists."""
    frame = _ta().macd(close, fast=MACD_FAST, slow=MACD_SLOW, signal=MACD_SIGNAL)
    if frame is None:
        return {"macd": [], "signal": [], "histogram": [], "latest": None}

    frame = pd.DataFrame(
        {
            "MACD": _column(frame, "MACD_"),
            "signal": _column(frame, "MACDs_"),
            "histogram": _column(frame, "MACDh_"),
        }
    ).dropna()

    latest = None
    if not frame.empty:
        latest = {k: float(v) for k, v in frame.iloc[-1].items()}
    return {
        "macd": [float(v) for v in frame["MACD"]],
        "signal": [float(v) for v in frame["signal"]],
        "histogram": [float(v) for v in frame["histogram"]],
        "latest": latest,
    }


def calculate_bollinger(close: pd.Series) -> dict[str, Any]:
    frame = _ta().bbands(close, length=BOLLINGER_PERIOD, std=BOLLINGER_STD)
    if frame is None:
        return {"upper": [], "middle": [], "lower": [], "latest": None}

    frame = pd.DataFrame(
        {
            "upper": _column(frame, "BBU_"),
            "middle": _column(frame, "BBM_"),
            "lower": _column(frame, "BBL_"),
        }
    ).dropna()

    latest = None
    if not frame.empty:
        latest = {k: float(v) for k, v in frame.iloc[-1].items()}
    return {
        "upper": [float(v) for v in frame["upper"]],
        "middle": [float(v) for v in frame["middle"]],
        "lower": [float(v) for v in frame["lower"]],
        "latest": latest,
    }


CALCULATORS = {
    "sma": calculate_sma,
    "ema": calculate_ema,
    "rsi": calculate_rsi,
    "macd": calculate_macd,
    "bollinger": calculate_bollinger,
}


def to_price_frame(data: Sequence[MarketDataPoint | Mapping[str, Any]]) -> pd.DataFrame:
    """Normalize candles into an OHLCV frame ordered oldest-first.

    Accepts ``MarketDataPoint`` objects or plain dicts. When every candle has
    a ``time`` the rows are sorted by it; otherwise input order is kept.
    """
    rows = [p.model_dump() if isinstance(p, MarketDataPoint) else dict(p) for p in data]
    try:
        frame = pd.DataFrame(
            {
                "open": [float(r["open"]) for r in rows],
                "high": [float(r["high"]) for r in rows],
                "low": [float(r["low"]) for r in rows],
                "close": [float(r["close"]) for r in rows],
                "volume": [float(r.get("volume") or 0) for r in rows],
            }
        )
    except (KeyError, TypeError, ValueError) as e:
        raise AgentError(f"Invalid market data provided: {e}") from e

    times = [r.get("time") for r in rows]
    if all(t is not None for t in times):
        frame.index = pd.Index([str(t) for t in times], name="time")
        frame = frame.sort_index(kind="stable")
    return frame.reset_index(drop=True)


class TechnicalAnalysisAgent(BaseAgent):
    """Computes indicators over a candle series and derives trade signals.

    Inputs::

        {"symbol": "AAPL", "data": [...candles...], "indicators": ["sma", "rsi"]}

    ``indicators`` falls back to the agent config, then to
    ``["sma", "rsi", "macd"]``. Unknown names are logged and skipped.
    """

    def __init__(self, id: str) -> None:
        super().__init__(
            id,
            "Technical Analysis Agent",
            "Performs technical analysis on market data to identify patterns and signals",
        )

    async def initialize(self, config: dict[str, Any] | None = None) -> None:
        await super().initialize(config)
        logger.info("Initializing TechnicalAnalysisAgent %s", self.id)

    async def execute(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.check_initialized()
        logger.info("Executing TechnicalAnalysisAgent %s", self.id)

        symbol = inputs.get("symbol")
        data = inputs.get("data")
        indicators = inputs.get("indicators") or self.config.get("indicators") or DEFAULT_INDICATORS

        if not isinstance(data, (list, tuple)) or not data:
            raise AgentError(
                "Invalid or empty market data provided",
                context={"agent_id": self.id},
            )

        close = to_price_frame(data)["close"]

        results: dict[str, Any] = {
            "symbol": symbol,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "indicators": {},
        }
        for indicator in indicators:
            key = str(indicator).lower()
            calculator = CALCULATORS.get(key)
            if calculator is None:
                logger.warning("Unknown indicator: %s", indicator)
                continue
            results["indicators"][key] = calculator(close)

        results["signals"] = generate_signals(results["indicators"])
        logger.info("TechnicalAnalysisAgent %s completed analysis for %s", self.id, symbol)
        return results

    async def cleanup(self) -> None:
        logger.info("Cleaning up TechnicalAnalysisAgent %s", self.id)
        await super().cleanup()
