"""Rule layer turning indicator readings into buy / sell / hold signals.

Pure functions over the indicator dict produced by the technical analysis
agent; no indicator maths happens here.
"""

from __future__ import annotations

from typing import Any

RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70


def rsi_signal(latest: float) -> tuple[str, dict[str, Any]]:
    """Classify the latest RSI reading. Returns ``(bucket, signal)``."""
    if latest < RSI_OVERSOLD:
        return "buy", {"indicator": "RSI", "value": latest, "reason": "Oversold (RSI < 30)"}
    if latest > RSI_OVERBOUGHT:
        return "sell", {"indicator": "RSI", "value": latest, "reason": "Overbought (RSI > 70)"}
    return "hold", {"indicator": "RSI", "value": latest, "reason": "Neutral (30 < RSI < 70)"}


def macd_signal(latest: dict[str, float]) -> tuple[str, dict[str, Any]]:
    """Classify the latest MACD / signal / histogram triple."""
    macd, signal, histogram = latest["MACD"], latest["signal"], latest["histogram"]
    value = {"MACD": macd, "signal": signal, "histogram": histogram}

    if macd > signal and histogram > 0:
        return "buy", {"indicator": "MACD", "value": value, "reason": "MACD crossed above signal line"}
    if macd < signal and histogram < 0:
        return "sell", {"indicator": "MACD", "value": value, "reason": "MACD crossed below signal line"}
    return "hold", {"indicator": "MACD", "value": value, "reason": "No clear MACD signal"}


def signal_strength(buy_count: int, sell_count: int) -> str:
    if buy_count > sell_count:
        return "strong buy" if buy_count > 2 else "buy"
    if sell_count > buy_count:
        return "strong sell" if sell_count > 2 else "sell"
    return "neutral"


def generate_signals(indicators: dict[str, Any]) -> dict[str, Any]:
    """Build ``{buy, sell, hold, strength}`` from computed indicators.

    Only RSI and MACD vote. An indicator without a ``latest`` reading (series
    too short) contributes nothing.
    """
    signals: dict[str, Any] = {"buy": [], "sell": [], "hold": [], "strength": "neutral"}

    rsi = indicators.get("rsi")
    if rsi and rsi.get("latest") is not None:
        bucket, entry = rsi_signal(rsi["latest"])
        signals[bucket].append(entry)

    macd = indicators.get("macd")
    if macd and macd.get("latest"):
        bucket, entry = macd_signal(macd["latest"])
        signals[bucket].append(entry)

    signals["strength"] = signal_strength(len(signals["buy"]), len(signals["sell"]))
    return signals
