"""
Asteroids arena - headless multi-ship world for agent training.
"""

from .config import ArenaConfig, RewardConfig
from .env import ArenaEnv
from .world import (
    Asteroid,
    PowerUp,
    PowerUpKind,
    Projectile,
    ProjectileKind,
    ShipState,
)

__all__ = [
    'ArenaConfig',
    'RewardConfig',
    'ArenaEnv',
    'Asteroid',
    'PowerUp',
    'PowerUpKind',
    'Projectile',
    'ProjectileKind',
    'ShipState',
]
