"""Agent protocol, base lifecycle, and registry."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

from trading_agents.core.exceptions import AgentError

logger = logging.getLogger("trading_agents.agents")


@runtime_checkable
class Agent(Protocol):
    """Protocol for all analysis agents.

    Lifecycle: ``initialize(config)`` → ``execute(inputs)`` (any number of
    times) → ``cleanup()``.
    """

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    async def initialize(self, config: dict[str, Any]) -> None: ...

    async def execute(self, inputs: dict[str, Any]) -> dict[str, Any]: ...

    async def cleanup(self) -> None: ...


class BaseAgent:
    """Shared lifecycle bookkeeping for agents.

    Subclasses implement ``execute`` and call ``check_initialized()`` first.
    Config passed to ``initialize`` is merged over whatever the agent already
    holds, so repeated calls accumulate settings.
    """

    def __init__(self, id: str, name: str, description: str) -> None:
        self.id = id
        self.name = name
        self.description = description
        self.config: dict[str, Any] = {}
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self, config: dict[str, Any] | None = None) -> None:
        self.config = {**self.config, **(config or {})}
        self._initialized = True

    async def execute(self, inputs: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    async def cleanup(self) -> None:
        self._initialized = False

    def check_initialized(self) -> None:
        if not self._initialized:
            raise AgentError(
                f"Agent {self.id} is not initialized. Call initialize() first.",
                context={"agent_id": self.id},
            )


AgentFactory = Callable[..., Agent]


class AgentRegistry:
    """Registry of agent types plus the instances created through it."""

    def __init__(self) -> None:
        self._factories: dict[str, AgentFactory] = {}
        self._instances: dict[str, Agent] = {}

    def register(self, agent_type: str, factory: AgentFactory) -> None:
        if agent_type in self._factories:
            raise ValueError(
                f"Agent type '{agent_type}' is already registered. Use replace() to override."
            )
        self._factories[agent_type] = factory

    def replace(self, agent_type: str, factory: AgentFactory) -> None:
        if agent_type not in self._factories:
            raise KeyError(f"Agent type '{agent_type}' is not registered.")
        self._factories[agent_type] = factory

    def list_types(self) -> list[str]:
        return list(self._factories.keys())

    def create(self, agent_type: str, id: str, *args: Any, **kwargs: Any) -> Agent:
        """Instantiate ``agent_type`` as ``factory(id, *args, **kwargs)``.

        The instance is tracked under ``id``; an existing instance with the
        same id is replaced without cleanup.
        """
        factory = self._factories.get(agent_type)
        if factory is None:
            raise AgentError(
                f"Unknown agent type: {agent_type}",
                context={"agent_id": id, "agent_type": agent_type},
            )
        agent = factory(id, *args, **kwargs)
        self._instances[id] = agent
        logger.info("Created agent '%s' of type '%s'", id, agent_type)
        return agent

    def get(self, id: str) -> Agent | None:
        return self._instances.get(id)

    def all(self) -> list[Agent]:
        return list(self._instances.values())

    async def remove(self, id: str) -> bool:
        """Clean up and forget the agent with ``id``. False if unknown."""
        agent = self._instances.pop(id, None)
        if agent is None:
            return False
        await agent.cleanup()
        logger.info("Removed agent '%s'", id)
        return True


def default_registry() -> AgentRegistry:
    """A new registry with the built-in agent types registered."""
    from trading_agents.agents.sentiment import NewsSentimentAgent
    from trading_agents.agents.technical import TechnicalAnalysisAgent

    registry = AgentRegistry()
    registry.register("technical-analysis", TechnicalAnalysisAgent)
    registry.register("news-sentiment", NewsSentimentAgent)
    return registry
