"""Analysis agents built on a shared initialize / execute / cleanup lifecycle."""

from trading_agents.agents.base import Agent, AgentRegistry, BaseAgent, default_registry
from trading_agents.agents.sentiment import NewsSentimentAgent
from trading_agents.agents.signals import generate_signals
from trading_agents.agents.technical import TechnicalAnalysisAgent

__all__ = [
    "Agent",
    "BaseAgent",
    "AgentRegistry",
    "default_registry",
    "TechnicalAnalysisAgent",
    "NewsSentimentAgent",
    "generate_signals",
]
