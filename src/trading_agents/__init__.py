"""trading-agents: market data, analysis agents, and LLM connectors for trading research."""

__version__ = "0.1.0"
