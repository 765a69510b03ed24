"""
Pytest configuration and fixtures for Asteroids AI tests.

Fixtures keep worlds, networks and populations small so that full training
loops finish in well under a second.
"""

import sys
from pathlib import Path

import pytest


# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "scripts"))


@pytest.fixture
def small_arena():
    """Arena with a few asteroids and a short episode."""
    from asteroids_ai.games.asteroids import ArenaConfig

    return ArenaConfig(episode_duration=0.25, num_asteroids=3, nearest_asteroids=2)


@pytest.fixture
def empty_arena():
    """Arena without asteroids, so nothing collides."""
    from asteroids_ai.games.asteroids import ArenaConfig

    return ArenaConfig(episode_duration=1.0, num_asteroids=0, nearest_asteroids=2)


@pytest.fixture
def tiny_dqn_config():
    """DQN hyperparameters for a small, fast agent."""
    return {
        "hidden_sizes": (8,),
        "batch_size": 4,
        "buffer_size": 64,
        "target_update_freq": 10,
    }


@pytest.fixture
def small_ga_config(tmp_path, small_arena):
    """Genetic config for a handful of genomes over short episodes."""
    from asteroids_ai.training import GAConfig

    return GAConfig(
        population_size=4,
        elite_count=1,
        generations=3,
        episodes_per_genome=1,
        episode_duration=0.1,
        tick_seconds=0.05,
        hidden_sizes=(4,),
        seed=7,
        output_dir=str(tmp_path / "models"),
        arena=small_arena,
    )


@pytest.fixture
def restore_logging():
    """Undo setup_logging changes to the package logger."""
    import logging

    package_logger = logging.getLogger("asteroids_ai")
    saved = (package_logger.level, list(package_logger.handlers), package_logger.propagate)
    yield package_logger
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        if handler not in saved[1]:
            handler.close()
    package_logger.setLevel(saved[0])
    for handler in saved[1]:
        package_logger.addHandler(handler)
    package_logger.propagate = saved[2]
