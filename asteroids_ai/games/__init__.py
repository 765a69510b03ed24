"""
Games module for Asteroids AI.

Environments the trainers drive through EnvInterface.
"""

from .asteroids import ArenaConfig, ArenaEnv, RewardConfig

__all__ = [
    'ArenaConfig',
    'ArenaEnv',
    'RewardConfig',
]
