"""
Evolutionary DQN - a population of online learners sharing one arena.

Every agent learns on its own (DQN) during the episodes of a generation.
At the generation boundary the best agents by accumulated fitness survive
and their networks are cloned to refill the population.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ..ai.dqn_agent import DQNAgent
from ..core.env_interface import EnvInterface
from ..games.asteroids import ArenaConfig, ArenaEnv, RewardConfig

logger = logging.getLogger(__name__)


@dataclass
class EvolutionConfig:
    """Configuration for the evolutionary population."""
    population_size: int = 10
    survivors: int = 5
    episodes_per_generation: int = 10
    episode_duration: float = 8.0
    tick_seconds: float = 1.0 / 60.0
    clone_mutation_sigma: float = 0.0
    parallel_agents: bool = False
    max_workers: Optional[int] = None
    seed: Optional[int] = None

    agent: Dict[str, Any] = field(default_factory=dict)
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        if self.population_size <= 0:
            raise ValueError(f"population_size must be positive, got {self.population_size}")
        if not 1 <= self.survivors <= self.population_size:
            raise ValueError(
                f"survivors must be in [1, {self.population_size}], got {self.survivors}"
            )
        if self.episodes_per_generation <= 0:
            raise ValueError("episodes_per_generation must be positive")
        if self.tick_seconds <= 0 or self.episode_duration <= 0:
            raise ValueError("tick_seconds and episode_duration must be positive")
        if self.clone_mutation_sigma < 0:
            raise ValueError("clone_mutation_sigma must be >= 0")

    @classmethod
    def from_config(cls, config) -> "EvolutionConfig":
        """Create EvolutionConfig from a loaded config object."""
        e = config.evolution
        return cls(
            population_size=e.population_size,
            survivors=e.survivors,
            episodes_per_generation=e.episodes_per_generation,
            episode_duration=e.episode_duration,
            tick_seconds=config.training.tick_seconds,
            clone_mutation_sigma=e.clone_mutation_sigma,
            parallel_agents=e.parallel_agents,
            max_workers=e.max_workers,
            seed=e.seed,
            agent=config.dqn.to_agent_config(),
            arena=config.arena,
            rewards=config.rewards,
        )


@dataclass
class AgentRecord:
    """One member of the population: a learning agent and its ship."""
    id: int
    agent: DQNAgent
    ship: Any
    episode_fitness: float = 0.0
    generation_fitness: float = 0.0
    asteroids_destroyed: int = 0

    @property
    def alive(self) -> bool:
        return self.ship.alive

    def reset(self, ship=None):
        """Clear episode-scoped state; learned parameters are untouched."""
        if ship is not None:
            self.ship = ship
        self.episode_fitness = 0.0
        self.agent.on_episode_start()


@dataclass
class EvolutionStats:
    """Summary of one completed generation."""
    generation: int
    best_fitness: float
    mean_fitness: float
    survivor_ids: List[int]
    asteroids_destroyed: int


class EvolutionaryCoordinator:
    """
    Runs population-level selection over independently learning agents.

    A tick is split into phases so no agent observes a half-updated world:
    build every observation, decide (optionally in parallel), apply every
    action, advance the world once, then reward and learn.
    """

    def __init__(self, config: EvolutionConfig, env: Optional[EnvInterface] = None):
        """
        Initialize the coordinator.

        Args:
            config: Evolution configuration
            env: Shared environment (defaults to an ArenaEnv built from config)
        """
        self.config = config
        self._rng = np.random.default_rng(config.seed)
        self.env = env or ArenaEnv(
            replace(config.arena, episode_duration=config.episode_duration),
            config.rewards,
            seed=self._next_seed(),
        )

        self.population: List[AgentRecord] = [
            AgentRecord(i, self._new_agent(), self.env.spawn_agent())
            for i in range(config.population_size)
        ]

        self.generation = 0
        self.episode = 0
        self.ticks = 0
        self.history: List[EvolutionStats] = []
        self.running = True

        self._executor = None
        if config.parallel_agents:
            self._executor = ThreadPoolExecutor(
                max_workers=config.max_workers, thread_name_prefix="agent"
            )

    def _next_seed(self) -> int:
        return int(self._rng.integers(0, 2 ** 31))

    def _new_agent(self) -> DQNAgent:
        return DQNAgent(self.env.observation_size, config=dict(self.config.agent), seed=self._next_seed())

    def _map(self, fn: Callable, items: List) -> List:
        if self._executor is None or len(items) < 2:
            return [fn(item) for item in items]
        return list(self._executor.map(fn, items))

    def tick(self) -> int:
        """
        Advance the shared world by one tick.

        Returns:
            Number of agents that acted
        """
        active = [r for r in self.population if r.alive]
        if not active:
            return 0

        # Read phase
        observations = [self.env.build_observation(r.ship) for r in active]

        # Decide phase (agents share no mutable state)
        def decide(pair: Tuple[AgentRecord, np.ndarray]):
            record, observation = pair
            return record.agent.decide(observation, record.ship.heading)

        actions = self._map(decide, list(zip(active, observations)))

        # Write phase
        for record, action in zip(active, actions):
            self.env.apply_action(record.ship, action)
        self.env.advance_world(self.config.tick_seconds)
        episode_over = self.env.is_episode_over()

        # Reward and learn
        outcomes = []
        for record in active:
            reward = self.env.current_reward(record.ship)
            record.episode_fitness += reward
            outcomes.append((record, self.env.build_observation(record.ship), reward,
                             not record.alive or episode_over))

        def learn(outcome):
            record, next_observation, reward, done = outcome
            record.agent.learn(next_observation, reward, done)

        self._map(learn, outcomes)
        self.ticks += 1
        return len(active)

    def run_episode(self) -> Optional[Tuple[float, float]]:
        """
        Play one episode for the whole population.

        Returns:
            (mean, max) episode fitness, or None if stopped mid-episode
        """
        self.env.reset(seed=self._next_seed())
        for record in self.population:
            record.reset()

        while not self.env.is_episode_over():
            if not self.running:
                return None
            self.tick()

        return self.finish_episode()

    def finish_episode(self) -> Tuple[float, float]:
        """Fold episode fitness into generation fitness."""
        for record in self.population:
            record.generation_fitness += record.episode_fitness
            record.asteroids_destroyed += getattr(record.ship, "kills", 0)
        self.episode += 1

        fitnesses = [r.episode_fitness for r in self.population]
        mean, best = float(np.mean(fitnesses)), float(np.max(fitnesses))
        logger.info(
            "[Evolution] Episode %d/%d completed - Avg: %.2f, Max: %.2f",
            self.episode, self.config.episodes_per_generation, mean, best,
        )
        return mean, best

    def evolve(self) -> EvolutionStats:
        """
        Truncation selection plus cloning.

        The top survivors by generation fitness are kept. Each free slot gets
        a value copy of a random survivor's networks, lightly mutated when
        clone_mutation_sigma > 0. Ids are reassigned in rank order and all
        generation accumulators reset.
        """
        cfg = self.config
        ranked = sorted(self.population, key=lambda r: r.generation_fitness, reverse=True)
        survivors = ranked[:cfg.survivors]

        stats = EvolutionStats(
            generation=self.generation,
            best_fitness=ranked[0].generation_fitness,
            mean_fitness=float(np.mean([r.generation_fitness for r in ranked])),
            survivor_ids=[r.id for r in survivors],
            asteroids_destroyed=sum(r.asteroids_destroyed for r in ranked),
        )
        for record in survivors[:5]:
            logger.info(
                "[Evolution]   Agent %d: %.2f fitness, %d asteroids",
                record.id, record.generation_fitness, record.asteroids_destroyed,
            )

        new_population = list(survivors)
        while len(new_population) < cfg.population_size:
            parent = survivors[int(self._rng.integers(len(survivors)))]
            child = parent.agent.clone(seed=self._next_seed())
            if cfg.clone_mutation_sigma > 0:
                child.mutate(cfg.clone_mutation_sigma)
            new_population.append(AgentRecord(parent.id, child, parent.ship))

        ships = self.env.agents
        for i, record in enumerate(new_population):
            record.id = i
            record.ship = ships[i]
            record.generation_fitness = 0.0
            record.asteroids_destroyed = 0
            record.episode_fitness = 0.0

        self.population = new_population
        self.history.append(stats)
        logger.info(
            "[Evolution] Generation %d: top %d survived, %d offspring created",
            self.generation, len(survivors), cfg.population_size - len(survivors),
        )
        self.generation += 1
        self.episode = 0
        return stats

    def run(
        self,
        generations: int,
        on_generation: Optional[Callable[[EvolutionStats], None]] = None
    ) -> List[EvolutionStats]:
        """
        Run whole generations until done or stopped.

        Returns:
            Stats of every completed generation
        """
        logger.info(
            "[Evolution] Population: %d agents, %d survivors, %d episodes per generation",
            self.config.population_size, self.config.survivors,
            self.config.episodes_per_generation,
        )
        for _ in range(generations):
            for _ in range(self.config.episodes_per_generation):
                if not self.running or self.run_episode() is None:
                    break
            if not self.running:
                logger.info("[Evolution] Stopped during generation %d", self.generation)
                break
            stats = self.evolve()
            if on_generation:
                on_generation(stats)
        return self.history

    def best_agent(self) -> AgentRecord:
        return max(self.population, key=lambda r: r.generation_fitness)

    def stop(self):
        """Stop at the next tick boundary."""
        self.running = False

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
