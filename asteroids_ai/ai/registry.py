"""
Agent registry for Asteroids AI.

Central registry for discovering and instantiating learning agents.
"""

from typing import Dict, Type, List, Optional, Any

from ..core.agent_interface import AgentInterface


class AgentRegistry:
    """
    Central registry for all available learning agents.

    Agents register themselves using AgentRegistry.register().
    """

    _agents: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def register(
        cls,
        agent_id: str,
        agent_class: Type[AgentInterface],
        description: str = ""
    ) -> None:
        """
        Register an agent with the registry.

        Args:
            agent_id: Unique identifier (e.g., "dqn", "q_learning")
            agent_class: The agent implementation class
            description: Human-readable description
        """
        cls._agents[agent_id] = {
            'agent_class': agent_class,
            'description': description,
        }

    @classmethod
    def list_agents(cls) -> List[str]:
        """
        List all registered agent IDs.

        Returns:
            List of agent identifiers
        """
        return list(cls._agents.keys())

    @classmethod
    def get_description(cls, agent_id: str) -> str:
        entry = cls._agents.get(agent_id)
        return entry['description'] if entry else ""

    @classmethod
    def is_available(cls, agent_id: str) -> bool:
        return agent_id in cls._agents

    @classmethod
    def create_agent(
        cls,
        agent_id: str,
        env: Any,
        config: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None
    ) -> AgentInterface:
        """
        Create an agent instance sized for the given environment.

        Args:
            agent_id: The agent identifier
            env: Environment exposing observation_size
            config: Optional hyperparameter overrides
            seed: Optional random seed

        Returns:
            Agent instance

        Raises:
            ValueError: If agent is not registered
        """
        entry = cls._agents.get(agent_id)
        if not entry:
            raise ValueError(
                f"Unknown agent: {agent_id} (available: {', '.join(cls.list_agents())})"
            )

        agent_class = entry['agent_class']
        return agent_class(env.observation_size, config=config, seed=seed)
