"""
Training loops: genetic search, evolutionary DQN population, single agent.
"""

from .genome import Genome, load_genome, save_genome
from .rollout import run_episode
from .genetic_trainer import GAConfig, GenerationStats, GeneticTrainer
from .evolution import AgentRecord, EvolutionConfig, EvolutionStats, EvolutionaryCoordinator
from .dqn_trainer import DQNTrainer, EpisodeResult, TrainingConfig

__all__ = [
    'Genome',
    'load_genome',
    'save_genome',
    'run_episode',
    'GAConfig',
    'GenerationStats',
    'GeneticTrainer',
    'AgentRecord',
    'EvolutionConfig',
    'EvolutionStats',
    'EvolutionaryCoordinator',
    'DQNTrainer',
    'EpisodeResult',
    'TrainingConfig',
]
