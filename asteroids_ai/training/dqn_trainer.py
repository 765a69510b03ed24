"""
Single-agent online training loop.

One learning agent plays consecutive episodes in its own arena. Used by the
CLI's dqn mode and as the simplest end-to-end exercise of the agents.
"""
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import numpy as np

from ..ai.registry import AgentRegistry
from ..core.agent_interface import AgentInterface
from ..core.env_interface import EnvInterface
from ..games.asteroids import ArenaConfig, ArenaEnv, RewardConfig
from .rollout import run_episode

logger = logging.getLogger(__name__)


@dataclass
class TrainingConfig:
    """Configuration for single-agent training."""
    agent_type: str = "dqn"
    episodes: int = 1000
    episode_duration: float = 8.0
    tick_seconds: float = 1.0 / 60.0
    seed: Optional[int] = None

    # Saving
    save_interval: int = 100
    checkpoint_dir: str = "models"
    log_interval: int = 10

    agent: Dict[str, Any] = field(default_factory=dict)
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        if self.episodes < 0:
            raise ValueError(f"episodes must be >= 0, got {self.episodes}")
        if self.tick_seconds <= 0 or self.episode_duration <= 0:
            raise ValueError("tick_seconds and episode_duration must be positive")

    @classmethod
    def from_config(cls, config) -> "TrainingConfig":
        """Create TrainingConfig from a loaded config object."""
        t = config.training
        agent = config.dqn.to_agent_config() if t.agent_type == "dqn" else {}
        rewards = config.rewards_q_learning if t.agent_type == "q_learning" else config.rewards
        return cls(
            agent_type=t.agent_type,
            episodes=t.episodes,
            episode_duration=t.episode_duration,
            tick_seconds=t.tick_seconds,
            seed=t.seed,
            save_interval=t.save_interval,
            checkpoint_dir=t.checkpoint_dir,
            log_interval=t.log_interval,
            agent=agent,
            arena=config.arena,
            rewards=rewards,
        )


@dataclass
class EpisodeResult:
    episode: int
    reward: float
    score: float
    average_reward: float
    epsilon: Optional[float] = None


class DQNTrainer:
    """
    Online trainer for one agent.

    Tracks scores, the high score and a running average over the last 100
    episodes, and checkpoints the agent every save_interval episodes.
    """

    def __init__(
        self,
        config: TrainingConfig,
        env: Optional[EnvInterface] = None,
        agent: Optional[AgentInterface] = None,
    ):
        """
        Initialize the trainer.

        Args:
            config: Training configuration
            env: Environment (defaults to an ArenaEnv built from config)
            agent: Agent (defaults to config.agent_type from AgentRegistry)
        """
        self.config = config
        self._rng = np.random.default_rng(config.seed)
        self.env = env or ArenaEnv(
            replace(config.arena, episode_duration=config.episode_duration),
            config.rewards,
        )
        self.agent = agent or AgentRegistry.create_agent(
            config.agent_type, self.env, config=dict(config.agent), seed=config.seed,
        )
        self.ship = self.env.spawn_agent()

        self.episode = 0
        self.high_score = 0.0
        self.best_reward = float("-inf")
        self.recent_rewards: deque = deque(maxlen=100)
        self.running = True

    def train(self, on_episode: Optional[Callable[[EpisodeResult], None]] = None) -> float:
        """
        Run the training loop.

        Returns:
            High score achieved during training
        """
        cfg = self.config
        Path(cfg.checkpoint_dir).mkdir(parents=True, exist_ok=True)
        logger.info("[Training] Starting %s agent from episode %d", cfg.agent_type, self.episode)

        while self.episode < cfg.episodes and self.running:
            self.env.reset(seed=int(self._rng.integers(0, 2 ** 31)))
            reward = run_episode(self.env, self.agent, self.ship, cfg.tick_seconds)
            score = self.env.score(self.ship)
            self.episode += 1

            self.recent_rewards.append(reward)
            self.best_reward = max(self.best_reward, reward)
            if score > self.high_score:
                self.high_score = score
                logger.info("[Training] New high score at episode %d: %.0f", self.episode, score)

            result = EpisodeResult(
                episode=self.episode,
                reward=reward,
                score=score,
                average_reward=float(np.mean(self.recent_rewards)),
                epsilon=getattr(self.agent, "epsilon", None),
            )
            if on_episode:
                on_episode(result)

            if cfg.log_interval and self.episode % cfg.log_interval == 0:
                logger.info(
                    "[Training] Episode %d/%d | Reward: %.1f | Avg: %.1f | High: %.0f",
                    self.episode, cfg.episodes, reward, result.average_reward, self.high_score,
                )

            if cfg.save_interval and self.episode % cfg.save_interval == 0:
                path = Path(cfg.checkpoint_dir) / f"model_ep{self.episode}.npz"
                self.agent.save(str(path))
                logger.info("[Checkpoint] Saved model at episode %d", self.episode)

        return self.high_score

    def save_final_model(self) -> str:
        """Save the final model."""
        final_path = str(Path(self.config.checkpoint_dir) / "final_model.npz")
        self.agent.save(final_path)
        logger.info("[Training] Saved final model to %s", final_path)
        return final_path

    def stop(self):
        """Stop training after the current episode."""
        self.running = False

    def close(self):
        """Clean up resources."""
        self.env.close()
