"""
Genetic Trainer - evolves network weights offline by population search.

Each generation every genome is loaded into a fixed-architecture network,
played as a policy through headless episodes, and scored by its mean episode
reward. The top genomes survive unchanged (elitism); the rest of the next
generation are Gaussian mutations of parents drawn from the top half.
"""
import logging
import math
import multiprocessing
from dataclasses import dataclass, field, replace
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..ai.policy_agent import PolicyAgent
from ..core.actions import ThresholdDecoder
from ..games.asteroids import ArenaConfig, ArenaEnv, RewardConfig
from ..nn.network import Network
from .genome import Genome, load_genome, save_genome
from .rollout import run_episode

logger = logging.getLogger(__name__)


@dataclass
class GAConfig:
    """Configuration for genetic training."""
    population_size: int = 80
    elite_count: int = 2
    mutation_sigma: float = 0.05
    mutation_decay: float = 0.995
    generations: int = 50
    episodes_per_genome: int = 2
    episode_duration: float = 60.0  # seconds of simulated time
    tick_seconds: float = 1.0 / 60.0
    seed: int = 1234

    # Network
    hidden_sizes: Tuple[int, ...] = (32, 32)
    output_size: int = 6
    max_turn_deg: float = 6.0

    # Population initialization
    init_noise: float = 0.02
    continue_noise: float = 0.05

    # Output
    output_dir: str = "models"
    best_filename: str = "best_genome.bin"
    generation_filename: str = "gen_%03d.bin"
    save_checkpoints: bool = True
    continue_from: Optional[str] = None

    num_workers: int = 1
    failed_fitness: float = -1e9

    arena: ArenaConfig = field(default_factory=ArenaConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        self.hidden_sizes = tuple(int(h) for h in self.hidden_sizes)
        if self.population_size <= 0:
            raise ValueError(f"population_size must be positive, got {self.population_size}")
        if not 0 <= self.elite_count <= self.population_size:
            raise ValueError(
                f"elite_count must be in [0, {self.population_size}], got {self.elite_count}"
            )
        if self.generations < 0 or self.episodes_per_genome <= 0:
            raise ValueError("generations must be >= 0 and episodes_per_genome > 0")
        if self.mutation_sigma < 0 or self.mutation_decay <= 0:
            raise ValueError("mutation_sigma must be >= 0 and mutation_decay > 0")
        if self.tick_seconds <= 0 or self.episode_duration <= 0:
            raise ValueError("tick_seconds and episode_duration must be positive")
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")

    FAST_PRESET = {
        "population_size": 20,
        "episodes_per_genome": 1,
        "episode_duration": 4.0,
        "generations": 8,
        "elite_count": 2,
        "mutation_sigma": 0.08,
        "mutation_decay": 0.99,
        "output_dir": "models_fast",
    }

    @classmethod
    def fast(cls, **overrides) -> "GAConfig":
        """Small, short run for quick experiments."""
        return cls(**{**cls.FAST_PRESET, **overrides})

    @classmethod
    def from_config(cls, config) -> "GAConfig":
        """Create GAConfig from a loaded config object."""
        g = config.genetic
        return cls(
            population_size=g.population_size,
            elite_count=g.elite_count,
            mutation_sigma=g.mutation_sigma,
            mutation_decay=g.mutation_decay,
            generations=g.generations,
            episodes_per_genome=g.episodes_per_genome,
            episode_duration=g.episode_duration,
            tick_seconds=config.training.tick_seconds,
            seed=g.seed,
            hidden_sizes=tuple(config.network.hidden_sizes),
            output_size=config.network.output_size,
            max_turn_deg=config.network.max_turn_deg,
            init_noise=g.init_noise,
            continue_noise=g.continue_noise,
            output_dir=g.output_dir,
            continue_from=g.continue_from,
            num_workers=g.num_workers,
            failed_fitness=g.failed_fitness,
            arena=config.arena,
            rewards=config.rewards,
        )

    @property
    def input_size(self) -> int:
        return self.arena.observation_size

    def layer_sizes(self) -> List[int]:
        return [self.input_size, *self.hidden_sizes, self.output_size]

    def build_network(self, seed: Optional[int] = None) -> Network:
        return Network.mlp(self.input_size, self.hidden_sizes, self.output_size, seed=seed)

    def episode_arena(self) -> ArenaConfig:
        return replace(self.arena, episode_duration=self.episode_duration)


@dataclass
class GenerationStats:
    """Fitness summary of one evaluated generation."""
    generation: int
    best: float
    mean: float
    worst: float
    sigma: float
    best_ever: float
    failures: int = 0


def default_env_factory(arena: ArenaConfig, rewards: RewardConfig) -> ArenaEnv:
    return ArenaEnv(arena, rewards)


def _evaluate(
    config: GAConfig,
    env_factory: Callable[[], object],
    params: np.ndarray,
    seeds: Sequence[int],
) -> Tuple[float, bool]:
    """
    Mean episode reward of one parameter vector.

    Returns:
        (fitness, failed). A rollout that raises scores config.failed_fitness.
    """
    network = config.build_network()
    network.set_parameters(params)
    agent = PolicyAgent(network, ThresholdDecoder(config.max_turn_deg))

    env = None
    try:
        env = env_factory()
        ship = env.spawn_agent()
        total = 0.0
        for seed in seeds:
            env.reset(seed=int(seed))
            total += run_episode(env, agent, ship, config.tick_seconds)
    except Exception as e:
        logger.warning("[Genetic] Evaluation failed, scoring %.3g: %s", config.failed_fitness, e)
        return config.failed_fitness, True
    finally:
        if env is not None:
            env.close()

    fitness = total / len(seeds)
    if not math.isfinite(fitness):
        logger.warning("[Genetic] Non-finite fitness, scoring %.3g", config.failed_fitness)
        return config.failed_fitness, True
    return fitness, False


def _evaluate_worker(payload):
    """Pool entry point (module level so it pickles)."""
    return _evaluate(*payload)


class GeneticTrainer:
    """
    Mutation-only genetic algorithm over flat parameter vectors.

    Example:
        trainer = GeneticTrainer(GAConfig.fast())
        best = trainer.run(on_generation=print)
    """

    def __init__(self, config: GAConfig, env_factory: Optional[Callable[[], object]] = None):
        """
        Initialize the trainer.

        Args:
            config: Genetic training configuration
            env_factory: Zero-argument callable returning a fresh environment.
                Must be picklable when num_workers > 1.
        """
        self.config = config
        self.env_factory = env_factory or partial(
            default_env_factory, config.episode_arena(), config.rewards
        )
        self._rng = np.random.default_rng(config.seed)

        self.param_count = config.build_network().parameter_count
        self.sigma = config.mutation_sigma
        self.generation = 0
        self.population: List[Genome] = []
        self.best: Optional[Genome] = None
        self.history: List[GenerationStats] = []
        self.running = True
        self._failures = 0

    @property
    def output_dir(self) -> Path:
        return Path(self.config.output_dir)

    @property
    def best_path(self) -> Path:
        return self.output_dir / self.config.best_filename

    def initialize_population(self) -> List[Genome]:
        """
        Build generation zero.

        Fresh runs perturb the base network's initial weights with small
        noise. Continued runs keep the checkpoint as genome 0 and perturb it
        for the others.

        Raises:
            CheckpointError: If the continue checkpoint cannot be used
        """
        cfg = self.config
        if cfg.continue_from:
            checkpoint = load_genome(cfg.continue_from, expected_param_count=self.param_count)
            logger.info("[Genetic] Continuing from %s (fitness %.3f)", cfg.continue_from, checkpoint.fitness)
            self.best = checkpoint.copy()
            population = [checkpoint.copy()]
            for _ in range(cfg.population_size - 1):
                population.append(Genome(checkpoint.params + self._noise(cfg.continue_noise)))
        else:
            base = cfg.build_network(seed=cfg.seed).get_parameters()
            population = [Genome(base + self._noise(cfg.init_noise)) for _ in range(cfg.population_size)]

        self.population = population
        return population

    def _noise(self, sigma: float) -> np.ndarray:
        return self._rng.normal(0.0, sigma, size=self.param_count).astype(np.float32)

    def _episode_seeds(self) -> List[int]:
        return [int(s) for s in self._rng.integers(0, 2 ** 31, size=self.config.episodes_per_genome)]

    def evaluate_genome(self, genome: Genome, seeds: Optional[Sequence[int]] = None) -> float:
        """
        Score one genome and store the result on it.

        Returns:
            The genome's fitness
        """
        if seeds is None:
            seeds = self._episode_seeds()
        fitness, failed = _evaluate(self.config, self.env_factory, genome.params, seeds)
        self._failures += int(failed)
        genome.fitness = fitness
        return fitness

    def evaluate_population(self, population: List[Genome]) -> List[float]:
        """
        Score every genome on the same episode seeds.

        Runs in a process pool when num_workers > 1.
        """
        seeds = self._episode_seeds()
        if self.config.num_workers > 1 and len(population) > 1:
            payloads = [(self.config, self.env_factory, g.params, seeds) for g in population]
            ctx = multiprocessing.get_context("spawn")
            with ctx.Pool(min(self.config.num_workers, len(population))) as pool:
                results = pool.map(_evaluate_worker, payloads)
            for genome, (fitness, failed) in zip(population, results):
                genome.fitness = fitness
                self._failures += int(failed)
        else:
            for genome in population:
                self.evaluate_genome(genome, seeds)
        return [g.fitness for g in population]

    def next_generation(self, population: List[Genome]) -> List[Genome]:
        """
        Elites plus mutated offspring of the top half.

        Args:
            population: Evaluated genomes (sorted here by fitness, descending)

        Returns:
            New population of the configured size
        """
        ranked = sorted(population, key=lambda g: g.fitness, reverse=True)
        size = self.config.population_size

        next_pop = [g.copy() for g in ranked[:self.config.elite_count]]
        parent_pool = max(1, len(ranked) // 2)
        while len(next_pop) < size:
            parent = ranked[int(self._rng.integers(parent_pool))]
            next_pop.append(Genome(parent.params + self._noise(self.sigma)))
        return next_pop

    def run(self, on_generation: Optional[Callable[[GenerationStats], None]] = None) -> Optional[Genome]:
        """
        Run the configured number of generations.

        Args:
            on_generation: Called with each generation's stats

        Returns:
            Best genome found (also written to best_genome.bin)
        """
        cfg = self.config
        population = self.population or self.initialize_population()
        logger.info(
            "[Genetic] Population %d, %d params, %d generations, %d worker(s)",
            cfg.population_size, self.param_count, cfg.generations, cfg.num_workers,
        )

        for gen in range(cfg.generations):
            if not self.running:
                logger.info("[Genetic] Stopped before generation %d", gen)
                break

            self.generation = gen
            self._failures = 0
            self.evaluate_population(population)
            population.sort(key=lambda g: g.fitness, reverse=True)

            top = population[0]
            if self.best is None or top.fitness > self.best.fitness:
                self.best = top.copy()
                self._save(self.best, self.best_path)
            self._save(top, self.output_dir / (cfg.generation_filename % gen))

            fitnesses = [g.fitness for g in population]
            stats = GenerationStats(
                generation=gen,
                best=fitnesses[0],
                mean=float(np.mean(fitnesses)),
                worst=fitnesses[-1],
                sigma=self.sigma,
                best_ever=self.best.fitness,
                failures=self._failures,
            )
            self.history.append(stats)
            logger.info(
                "[Genetic] Gen %d | best=%.3f mean=%.3f worst=%.3f sigma=%.4f",
                gen, stats.best, stats.mean, stats.worst, stats.sigma,
            )
            if on_generation:
                on_generation(stats)

            self.population = population
            if gen < cfg.generations - 1:
                population = self.next_generation(population)
                self.sigma *= cfg.mutation_decay

        self.population = population
        if self.best is not None:
            logger.info("[Genetic] Training complete. Best fitness=%.3f", self.best.fitness)
        return self.best

    def _save(self, genome: Genome, path: Path):
        if self.config.save_checkpoints:
            save_genome(genome, path)

    def stop(self):
        """Stop after the current generation."""
        self.running = False
