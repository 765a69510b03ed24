"""
Arena entities: ships, asteroids, projectiles and power-ups.

Projectiles are a tagged variant: a SINGLE shot is a point that moves and
expires, a TRIPLE shot is a composite holding three SINGLE sub-projectiles.
Collision checks only ever look at the SINGLE leaves.
"""

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterator, List


class ProjectileKind(Enum):
    SINGLE = "single"
    TRIPLE = "triple"


class PowerUpKind(IntEnum):
    AMMO = 0
    HEALTH = 1
    TRIPLE_SHOT = 2


@dataclass
class ShipState:
    """Live simulation state of one agent's ship."""
    id: int
    x: float = 0.5
    y: float = 0.5
    heading: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    health: int = 3
    ammo: int = 50
    alive: bool = True

    # Control input latched by apply_action, consumed by advance_world
    ax: float = 0.0
    ay: float = 0.0

    shoot_cooldown: float = 0.0
    hit_cooldown: float = 0.0
    triple_shot_time: float = 0.0

    pending_reward: float = 0.0
    score: float = 0.0
    kills: int = 0
    powerups_collected: int = 0

    def reset(self, x: float, y: float, heading: float, health: int, ammo: int):
        """Restore episode-scoped state."""
        self.x, self.y, self.heading = x, y, heading
        self.vx = self.vy = 0.0
        self.ax = self.ay = 0.0
        self.health = health
        self.ammo = ammo
        self.alive = True
        self.shoot_cooldown = 0.0
        self.hit_cooldown = 0.0
        self.triple_shot_time = 0.0
        self.pending_reward = 0.0
        self.score = 0.0
        self.kills = 0
        self.powerups_collected = 0

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


@dataclass
class Asteroid:
    x: float
    y: float
    vx: float
    vy: float
    radius: float

    def step(self, dt: float):
        """Move and bounce off the arena walls."""
        self.x += self.vx * dt
        self.y += self.vy * dt
        if self.x < 0.0 or self.x > 1.0:
            self.vx = -self.vx
            self.x = min(max(self.x, 0.0), 1.0)
        if self.y < 0.0 or self.y > 1.0:
            self.vy = -self.vy
            self.y = min(max(self.y, 0.0), 1.0)

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)


@dataclass
class Projectile:
    kind: ProjectileKind
    owner_id: int
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    ttl: float = 0.0
    children: List["Projectile"] = field(default_factory=list)

    @classmethod
    def single(cls, owner_id: int, x: float, y: float, heading: float,
               speed: float, ttl: float) -> "Projectile":
        rad = math.radians(heading)
        return cls(ProjectileKind.SINGLE, owner_id, x, y,
                   speed * math.cos(rad), speed * math.sin(rad), ttl)

    @classmethod
    def triple(cls, owner_id: int, x: float, y: float, heading: float,
               speed: float, ttl: float, spread_deg: float) -> "Projectile":
        children = [
            cls.single(owner_id, x, y, heading + offset, speed, ttl)
            for offset in (-spread_deg, 0.0, spread_deg)
        ]
        return cls(ProjectileKind.TRIPLE, owner_id, x, y, children=children)

    def step(self, dt: float):
        if self.kind is ProjectileKind.TRIPLE:
            for child in self.children:
                child.step(dt)
            self.children = [c for c in self.children if c.active]
            return
        self.x += self.vx * dt
        self.y += self.vy * dt
        self.ttl -= dt

    @property
    def active(self) -> bool:
        if self.kind is ProjectileKind.TRIPLE:
            return bool(self.children)
        return self.ttl > 0 and 0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0

    def pieces(self) -> Iterator["Projectile"]:
        """Leaf projectiles that can hit things."""
        if self.kind is ProjectileKind.TRIPLE:
            yield from self.children
        else:
            yield self

    def remove_piece(self, piece: "Projectile"):
        if self.kind is ProjectileKind.TRIPLE:
            self.children = [c for c in self.children if c is not piece]
        else:
            self.ttl = 0.0


@dataclass
class PowerUp:
    kind: PowerUpKind
    x: float
    y: float
    ttl: float
