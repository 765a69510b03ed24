"""
Abstract agent interface for Asteroids AI.

All learning agents (DQN, continuous Q-learning, fixed policies) implement
this interface so trainers can drive them interchangeably.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

import numpy as np

from .actions import AgentAction


class AgentInterface(ABC):
    """
    Abstract agent interface for all learning algorithms.

    Agents decide an action for the current observation, then learn from the
    outcome once the environment has advanced.
    """

    @abstractmethod
    def decide(self, observation: np.ndarray, heading: Optional[float] = None) -> AgentAction:
        """
        Select an action given the current observation.

        Args:
            observation: Current fixed-length observation vector
            heading: Agent's current heading in degrees, if known

        Returns:
            Action to apply this tick
        """
        pass

    @abstractmethod
    def learn(self, next_observation: np.ndarray, reward: float, done: bool) -> None:
        """
        Learn from the outcome of the last decision.

        Args:
            next_observation: Observation after the action was applied
            reward: Reward received for the action
            done: Whether the episode ended for this agent
        """
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """
        Get current training statistics.

        Returns:
            Dictionary with stats like epsilon, steps_done, etc.
        """
        pass

    def save(self, filepath: str) -> None:
        """
        Save agent checkpoint to file.

        Args:
            filepath: Path to save checkpoint
        """
        raise NotImplementedError(f"{type(self).__name__} does not support checkpoints")

    def load(self, filepath: str) -> None:
        """
        Load agent checkpoint from file.

        Args:
            filepath: Path to checkpoint file
        """
        raise NotImplementedError(f"{type(self).__name__} does not support checkpoints")

    def on_episode_start(self) -> None:
        """Called when a new episode begins."""
        pass

    def set_training_mode(self, training: bool) -> None:
        """
        Set the agent's training mode.

        Args:
            training: True for training mode, False for evaluation
        """
        pass
