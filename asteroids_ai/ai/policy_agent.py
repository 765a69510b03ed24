"""
Fixed-policy agent driven by an evolved network.
"""
from typing import Any, Dict, Optional

import numpy as np

from ..core.actions import AgentAction, ThresholdDecoder, normalize_angle
from ..core.agent_interface import AgentInterface
from ..nn.network import Network


class PolicyAgent(AgentInterface):
    """
    Maps observations through a network and a decoder without learning.

    Used to evaluate genomes: the genetic trainer loads a parameter vector
    into the network and runs episodes with it.
    """

    def __init__(self, network: Network, decoder=None):
        self.network = network
        self.decoder = decoder or ThresholdDecoder()
        if self.decoder.output_size != network.output_size:
            raise ValueError(
                f"Decoder expects {self.decoder.output_size} outputs, "
                f"network has {network.output_size}"
            )
        self.heading = 0.0
        self.steps = 0
        self.total_reward = 0.0

    def decide(self, observation: np.ndarray, heading: Optional[float] = None) -> AgentAction:
        outputs = self.network.forward(observation)
        current = self.heading if heading is None else float(heading)
        action = self.decoder.decode(outputs, current)
        self.heading = normalize_angle(current + action.angle_delta)
        return action

    def learn(self, next_observation: np.ndarray, reward: float, done: bool) -> None:
        # Policy is fixed; only bookkeeping
        self.steps += 1
        self.total_reward += float(reward)

    def on_episode_start(self) -> None:
        self.heading = 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "steps_done": self.steps,
            "total_reward": self.total_reward,
            "parameters": self.network.parameter_count,
        }
