"""
DQN Agent - Deep Q-Learning agent with experience replay.
"""
import logging
import zipfile
from collections import deque
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from ..core.actions import (
    AgentAction,
    DiscreteTurnDecoder,
    NUM_DISCRETE_ACTIONS,
    normalize_angle,
)
from ..core.agent_interface import AgentInterface
from ..core.errors import CheckpointError
from ..nn.network import Network
from .replay_buffer import ReplayBuffer, Transition

logger = logging.getLogger(__name__)


class DQNAgent(AgentInterface):
    """
    Deep Q-Network Agent.

    Features:
    - Epsilon-greedy exploration with geometric decay toward a floor
    - Experience replay for stable learning
    - Target network for stable Q-value targets (value copy, synced periodically)
    - Pluggable decoding of network outputs into arena controls

    The main network emits one Q-value per discrete action plus one extra
    slot that the decoder turns into a heading.
    """

    DEFAULTS: Dict[str, Any] = {
        "gamma": 0.95,
        "epsilon_start": 1.0,
        "epsilon_min": 0.05,
        "epsilon_decay": 0.998,
        "learning_rate": 0.0005,
        "batch_size": 32,
        "buffer_size": 10000,
        "target_update_freq": 100,
        "min_replay_size": 0,
        "hidden_sizes": (64, 64),
    }

    def __init__(
        self,
        state_size: int,
        action_size: int = NUM_DISCRETE_ACTIONS,
        config: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
        decoder=None,
    ):
        """
        Initialize the DQN agent.

        Args:
            state_size: Dimension of the observation vector
            action_size: Number of discrete actions
            config: Hyperparameter overrides (see DEFAULTS)
            seed: Seed for exploration, network init and replay sampling
            decoder: Output decoder (defaults to discrete actions + heading)
        """
        self.state_size = state_size
        self.action_size = action_size

        self.config = {**self.DEFAULTS, **self._derived_defaults(state_size, action_size), **(config or {})}
        self.gamma = float(self.config["gamma"])
        self.epsilon = float(self.config["epsilon_start"])
        self.epsilon_min = float(self.config["epsilon_min"])
        self.epsilon_decay = float(self.config["epsilon_decay"])
        self.learning_rate = float(self.config["learning_rate"])
        self.batch_size = int(self.config["batch_size"])
        self.target_update_freq = int(self.config["target_update_freq"])
        self.min_replay_size = int(self.config["min_replay_size"])
        self.buffer_size = int(self.config["buffer_size"])
        self.hidden_sizes = tuple(int(h) for h in self.config["hidden_sizes"])
        self._validate()

        self._rng = np.random.default_rng(seed)
        self.decoder = decoder or self._default_decoder()

        # Networks
        self.main_network = Network.mlp(
            state_size, self.hidden_sizes, self.decoder.output_size,
            seed=int(self._rng.integers(2 ** 31)),
        )
        self.target_network = self.main_network.copy()

        # Replay buffer
        self.memory = ReplayBuffer(
            self.buffer_size, seed=int(self._rng.integers(2 ** 31))
        )

        self.training = True
        self.heading = 0.0

        # Step-local state
        self.last_state: Optional[np.ndarray] = None
        self.last_action: Any = None

        # Training statistics
        self.step_count = 0
        self.update_count = 0
        self.skipped_transitions = 0
        self.episode_count = 0
        self.episode_reward = 0.0
        self.last_episode_reward = 0.0
        self.average_reward = 0.0
        self.training_losses: deque = deque(maxlen=1000)

        logger.debug("[DQN] Agent initialized: %r, buffer capacity %d",
                     self.main_network, self.memory.capacity)

    # ------------------------------------------------------------------
    # Variant hooks

    def _derived_defaults(self, state_size: int, action_size: int) -> Dict[str, Any]:
        return {}

    def _default_decoder(self):
        return DiscreteTurnDecoder(self.action_size)

    def _choose_action(self, outputs: np.ndarray):
        """Epsilon-greedy over the discrete Q-value slots."""
        if self.training and self._rng.random() < self.epsilon:
            return int(self._rng.integers(self.action_size))

        q_values = outputs[:self.action_size]
        q_values = np.where(np.isfinite(q_values), q_values, -np.inf)
        return int(np.argmax(q_values))

    def _is_valid(self, t: Transition) -> bool:
        return (
            t.state.shape == (self.state_size,)
            and t.next_state.shape == (self.state_size,)
            and isinstance(t.action, int)
            and 0 <= t.action < self.action_size
        )

    def _training_target(self, t: Transition, current: np.ndarray) -> np.ndarray:
        """Current outputs with the taken action's slot replaced by the TD(0) target."""
        if t.done:
            target_q = t.reward
        else:
            next_q = self.target_network.forward(t.next_state)[:self.action_size]
            target_q = t.reward + self.gamma * float(np.max(next_q))

        target = current.copy()
        target[t.action] = target_q
        return target

    # ------------------------------------------------------------------

    def _validate(self):
        if not 0.0 <= self.gamma < 1.0:
            raise ValueError(f"gamma must be in [0, 1), got {self.gamma}")
        if not 0.0 < self.epsilon_min <= self.epsilon <= 1.0:
            raise ValueError(
                f"Need 0 < epsilon_min <= epsilon_start <= 1, got "
                f"{self.epsilon_min} / {self.epsilon}"
            )
        if not 0.0 < self.epsilon_decay <= 1.0:
            raise ValueError(f"epsilon_decay must be in (0, 1], got {self.epsilon_decay}")
        if self.batch_size <= 0 or self.target_update_freq <= 0:
            raise ValueError("batch_size and target_update_freq must be positive")
        if max(self.batch_size, self.min_replay_size) > self.buffer_size:
            raise ValueError(
                f"buffer_size {self.buffer_size} cannot hold batch_size {self.batch_size} "
                f"and min_replay_size {self.min_replay_size}"
            )

    def decide(self, observation: np.ndarray, heading: Optional[float] = None) -> AgentAction:
        """
        Select an action using the epsilon-greedy policy.

        Args:
            observation: Current observation vector
            heading: Current heading in degrees (defaults to the agent's own tracking)

        Returns:
            Decoded action for the environment
        """
        state = np.array(observation, dtype=np.float32, copy=True)
        if state.shape != (self.state_size,):
            raise ValueError(f"Expected observation of size {self.state_size}, got shape {state.shape}")

        outputs = self.main_network.forward(state)
        action = self._choose_action(outputs)

        current = self.heading if heading is None else float(heading)
        decoded = self.decoder.decode(
            action if isinstance(action, np.ndarray) else outputs,
            current,
            index=action if isinstance(action, int) else None,
        )
        self.heading = normalize_angle(current + decoded.angle_delta)

        self.last_state = state
        self.last_action = action
        return decoded

    def learn(self, next_observation: np.ndarray, reward: float, done: bool) -> Optional[float]:
        """
        Learn from the outcome of the last decision.

        Args:
            next_observation: Observation after the action was executed
            reward: Reward received for the action
            done: Whether the episode ended

        Returns:
            Mean batch loss if a training step ran, else None
        """
        self.step_count += 1
        self.episode_reward += float(reward)
        loss = None

        if self.training:
            if self.last_state is not None:
                self.memory.store(self.last_state, self.last_action, reward, next_observation, done)

            if self.memory.can_sample(max(self.batch_size, self.min_replay_size)):
                loss = self.train_step()

            if self.step_count % self.target_update_freq == 0:
                self.sync_target()

            self.decay_epsilon()

        if done:
            self._finish_episode()

        return loss

    def train_step(self) -> Optional[float]:
        """
        Train on one sampled batch.

        Transitions are drawn without replacement. A malformed transition in
        the first batch_size draws is skipped and replaced by one further
        draw; malformed replacements are skipped without another.

        Returns:
            Mean loss over trained transitions, None if nothing was trained
        """
        losses = []
        quota = self.batch_size
        for drawn, transition in enumerate(self.memory.iter_random()):
            if drawn >= quota:
                break
            loss = self._train_on(transition)
            if loss is None:
                self.skipped_transitions += 1
                if drawn < self.batch_size:
                    quota += 1
            else:
                losses.append(loss)

        if not losses:
            return None

        self.update_count += 1
        mean_loss = float(np.mean(losses))
        self.training_losses.append(mean_loss)
        return mean_loss

    def _train_on(self, transition: Transition) -> Optional[float]:
        if not self._is_valid(transition):
            return None
        current = self.main_network.forward(transition.state)
        target = self._training_target(transition, current)
        return self.main_network.backward(target, self.learning_rate)

    def sync_target(self):
        """Copy main network parameters into the target network."""
        self.target_network.set_parameters(self.main_network.get_parameters())
        logger.debug("[DQN] Target network updated (step %d)", self.step_count)

    def decay_epsilon(self):
        """Decay exploration rate."""
        self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)

    def _finish_episode(self):
        self.last_episode_reward = self.episode_reward
        self.episode_count += 1
        self.average_reward += (self.episode_reward - self.average_reward) / self.episode_count

        logger.debug(
            "[DQN] Episode %d: reward=%.2f avg=%.2f epsilon=%.3f buffer=%d",
            self.episode_count, self.episode_reward, self.average_reward,
            self.epsilon, len(self.memory),
        )

        self.episode_reward = 0.0
        self.last_state = None
        self.last_action = None

    def on_episode_start(self):
        self.episode_reward = 0.0
        self.last_state = None
        self.last_action = None

    def set_training_mode(self, training: bool):
        self.training = training

    def clone(self, seed: Optional[int] = None) -> "DQNAgent":
        """
        New agent with identical network parameters and learning progress.

        The replay buffer is not shared; the clone starts with an empty one.
        """
        if seed is None:
            seed = int(self._rng.integers(2 ** 31))
        twin = type(self)(self.state_size, self.action_size, dict(self.config), seed=seed, decoder=self.decoder)
        params = self.main_network.get_parameters()
        twin.main_network.set_parameters(params)
        twin.target_network.set_parameters(params)
        twin.epsilon = self.epsilon
        twin.step_count = self.step_count
        twin.training = self.training
        return twin

    def mutate(self, sigma: float):
        """Add Gaussian noise to the main network and resync the target."""
        if sigma <= 0:
            return
        params = self.main_network.get_parameters()
        params += self._rng.normal(0.0, sigma, size=params.shape).astype(np.float32)
        self.main_network.set_parameters(params)
        self.sync_target()

    def save(self, filepath: str):
        """
        Save model checkpoint.

        Args:
            filepath: Path to save checkpoint (.npz)
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "wb") as f:
                np.savez(
                    f,
                    layer_sizes=np.array(self.main_network.layer_sizes, dtype=np.int64),
                    main=self.main_network.get_parameters(),
                    target=self.target_network.get_parameters(),
                    epsilon=np.float64(self.epsilon),
                    step_count=np.int64(self.step_count),
                    episode_count=np.int64(self.episode_count),
                    average_reward=np.float64(self.average_reward),
                )
        except OSError as e:
            raise CheckpointError(f"Failed to save agent to {path}: {e}") from e

    def load(self, filepath: str):
        """
        Load model checkpoint.

        Args:
            filepath: Path to load checkpoint from
        """
        try:
            with np.load(filepath) as data:
                layer_sizes = [int(s) for s in data["layer_sizes"]]
                if layer_sizes != self.main_network.layer_sizes:
                    raise CheckpointError(
                        f"Checkpoint architecture {layer_sizes} does not match "
                        f"{self.main_network.layer_sizes}"
                    )
                self.main_network.set_parameters(data["main"])
                self.target_network.set_parameters(data["target"])
                self.epsilon = float(data["epsilon"])
                self.step_count = int(data["step_count"])
                self.episode_count = int(data["episode_count"])
                self.average_reward = float(data["average_reward"])
        except CheckpointError:
            raise
        except (OSError, EOFError, zipfile.BadZipFile, KeyError, ValueError) as e:
            raise CheckpointError(f"Failed to load agent from {filepath}: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        """Get current training statistics."""
        avg_loss = 0.0
        if self.training_losses:
            recent = list(self.training_losses)[-100:]
            avg_loss = sum(recent) / len(recent)

        return {
            "epsilon": self.epsilon,
            "steps_done": self.step_count,
            "updates": self.update_count,
            "episodes": self.episode_count,
            "memory_size": len(self.memory),
            "avg_loss": avg_loss,
            "average_reward": self.average_reward,
            "last_episode_reward": self.last_episode_reward,
            "skipped_transitions": self.skipped_transitions,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}[episodes={self.episode_count}, "
            f"avgReward={self.average_reward:.2f}, epsilon={self.epsilon:.3f}]"
        )
