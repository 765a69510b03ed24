"""
Continuous Q-learning agent.

Shares the DQN learning loop (replay, target network, epsilon decay) but the
network emits a continuous control vector instead of per-action Q-values.
"""
from typing import Any, Dict

import numpy as np

from ..core.actions import ContinuousDecoder
from .dqn_agent import DQNAgent
from .replay_buffer import Transition


class QLearningAgent(DQNAgent):
    """
    Agent whose action is the raw output vector [forward, side, turn, fire].

    Exploration draws a uniform random vector in [-1, 1]. The training target
    pulls every output slot mostly toward the taken action and slightly
    toward the TD estimate:

        td = reward + gamma * max(target(next_state))   (reward if done)
        target = target_blend * td + (1 - target_blend) * action
    """

    DEFAULTS: Dict[str, Any] = {
        **DQNAgent.DEFAULTS,
        "learning_rate": 0.001,
        "epsilon_start": 0.1,
        "epsilon_min": 0.01,
        "epsilon_decay": 0.995,
        "target_update_freq": 1000,
        "min_replay_size": 100,
        "target_blend": 0.1,
    }

    def __init__(self, state_size: int, action_size: int = ContinuousDecoder.output_size,
                 config=None, seed=None, decoder=None):
        super().__init__(state_size, action_size, config, seed=seed, decoder=decoder)
        self.target_blend = float(self.config["target_blend"])
        if not 0.0 <= self.target_blend <= 1.0:
            raise ValueError(f"target_blend must be in [0, 1], got {self.target_blend}")

    def _derived_defaults(self, state_size: int, action_size: int) -> Dict[str, Any]:
        return {"hidden_sizes": (max(64, state_size * 2), max(32, action_size * 4))}

    def _default_decoder(self):
        return ContinuousDecoder()

    def _choose_action(self, outputs: np.ndarray):
        if self.training and self._rng.random() < self.epsilon:
            return self._rng.uniform(-1.0, 1.0, size=self.action_size).astype(np.float32)
        action = outputs[:self.action_size].astype(np.float32)
        return np.where(np.isfinite(action), action, 0.0).astype(np.float32)

    def _is_valid(self, t: Transition) -> bool:
        return (
            t.state.shape == (self.state_size,)
            and t.next_state.shape == (self.state_size,)
            and isinstance(t.action, np.ndarray)
            and t.action.shape == (self.action_size,)
            and bool(np.all(np.isfinite(t.action)))
        )

    def _training_target(self, t: Transition, current: np.ndarray) -> np.ndarray:
        if t.done:
            td = t.reward
        else:
            next_out = self.target_network.forward(t.next_state)
            td = t.reward + self.gamma * float(np.max(next_out))

        blended = self.target_blend * td + (1.0 - self.target_blend) * t.action
        target = current.copy()
        target[:self.action_size] = blended
        return target
