"""
Abstract environment interface for Asteroids AI.

The learning core only talks to the world through these calls and the
numeric vectors they exchange. It never draws, plays audio or reads input
devices.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

import numpy as np

from .actions import AgentAction


class EnvInterface(ABC):
    """
    Abstract tick-driven environment shared by one or more agents.

    A tick is: build_observation for every agent, apply_action for every
    agent, then advance_world once. Rewards are read after the advance.
    """

    @property
    @abstractmethod
    def observation_size(self) -> int:
        """
        Dimension of the observation vector.

        Returns:
            Size of the observation vector (constant for the env's lifetime)
        """
        pass

    @abstractmethod
    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the world to the start of a new episode.

        Existing agent states are kept and reset in place.

        Args:
            seed: Optional random seed for the world layout
        """
        pass

    @abstractmethod
    def spawn_agent(self) -> Any:
        """
        Add a new agent to the world.

        Returns:
            The agent state handle to pass to the other calls
        """
        pass

    @property
    @abstractmethod
    def agents(self) -> List[Any]:
        """All agent states currently in the world."""
        pass

    @abstractmethod
    def build_observation(self, agent_state: Any) -> np.ndarray:
        """
        Encode the world from one agent's point of view.

        Args:
            agent_state: Agent to observe for

        Returns:
            Observation vector of length observation_size
        """
        pass

    @abstractmethod
    def apply_action(self, agent_state: Any, action: AgentAction) -> None:
        """
        Apply an agent's control input for this tick.

        Args:
            agent_state: Agent acting
            action: Control input
        """
        pass

    @abstractmethod
    def advance_world(self, delta_time: float) -> None:
        """
        Step the simulation forward.

        Args:
            delta_time: Simulated seconds to advance
        """
        pass

    @abstractmethod
    def is_episode_over(self) -> bool:
        """Whether the current episode has finished."""
        pass

    @abstractmethod
    def current_reward(self, agent_state: Any) -> float:
        """
        Reward earned by an agent since the previous call.

        Args:
            agent_state: Agent to score

        Returns:
            Shaped reward for the elapsed tick(s)
        """
        pass

    def score(self, agent_state: Any) -> float:
        """Game score for an agent (defaults to 0)."""
        return 0.0

    def close(self) -> None:
        """
        Clean up any resources.
        """
        pass
