"""
Asteroids arena configuration.

Distances are in normalized arena units ([0, 1] on both axes), times in
seconds, speeds in arena units per second.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class RewardConfig:
    """Reward shaping constants (empirically tuned, retune freely)."""

    # Per tick while alive
    survival: float = 0.1
    proximity_near_distance: float = 0.1
    proximity_near_penalty: float = 2.0
    proximity_far_distance: float = 0.2
    proximity_far_penalty: float = 0.5
    movement_scale: float = 0.1  # times distance covered this tick
    health_scale: float = 0.2  # times current health

    # Events
    kill: float = 10.0
    powerup: float = 20.0
    damage_penalty: float = 2.0  # per health point lost
    death: float = -10.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewardConfig":
        """Create config from dictionary, ignoring unknown keys."""
        return cls(**_known_fields(cls, data or {}))

    @classmethod
    def q_learning(cls) -> "RewardConfig":
        """Kill-heavy shaping used with the continuous Q-learning agent."""
        return cls(survival=0.05, kill=50.0, powerup=20.0, damage_penalty=2.0, death=-100.0)


@dataclass
class ArenaConfig:
    """Configuration for the headless asteroids arena."""

    episode_duration: float = 60.0
    num_asteroids: int = 8
    nearest_asteroids: int = 8  # asteroids encoded in each observation

    # Ship
    ship_radius: float = 0.02
    start_health: int = 3
    max_health: int = 5
    start_ammo: int = 50
    max_ammo: int = 100
    thrust_accel: float = 1.5
    brake_accel: float = 0.6
    side_accel: float = 1.0
    max_speed: float = 0.6
    velocity_retention: float = 0.5  # fraction of velocity kept after one second
    wall_margin: float = 0.02
    wall_bounce: float = 0.8
    fire_cooldown: float = 1.0 / 6.0
    hit_invulnerability: float = 0.5

    # Asteroids
    asteroid_radius: float = 0.02
    asteroid_max_speed: float = 0.3

    # Projectiles
    projectile_speed: float = 3.0
    projectile_lifetime: float = 100.0 / 60.0
    triple_spread_deg: float = 15.0

    # Power-ups
    powerup_radius: float = 0.03
    powerup_lifetime: float = 10.0
    powerup_interval: float = 15.0
    powerup_drop_chance: float = 0.3
    ammo_pickup: int = 20
    triple_shot_duration: float = 10.0

    def __post_init__(self):
        if self.num_asteroids < 0 or self.nearest_asteroids < 0:
            raise ValueError("Asteroid counts must be non-negative")
        if self.episode_duration <= 0:
            raise ValueError(f"episode_duration must be positive, got {self.episode_duration}")

    @property
    def observation_size(self) -> int:
        """8 own-state features, 6 per encoded asteroid, 4 edge distances."""
        return 8 + self.nearest_asteroids * 6 + 4

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArenaConfig":
        """Create config from dictionary, ignoring unknown keys."""
        return cls(**_known_fields(cls, data or {}))
