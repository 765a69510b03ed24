"""
Asteroids Environment - headless multi-ship arena implementing EnvInterface.

Several ships may share one world. Each tick the driver builds every ship's
observation, applies every ship's action, then advances the world once; the
shaped reward earned by each ship is read afterwards with current_reward().
"""

import math
from typing import List, Optional

import numpy as np

from ...core.actions import AgentAction, normalize_angle
from ...core.env_interface import EnvInterface
from .config import ArenaConfig, RewardConfig
from .world import Asteroid, PowerUp, PowerUpKind, Projectile, ShipState


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


class ArenaEnv(EnvInterface):
    """
    Normalized [0, 1] x [0, 1] arena with bouncing asteroids.

    Observation layout (float32):
    - 8 own-state features: x, y, sin(heading), cos(heading), vx, vy,
      health / max_health, ammo / max_ammo
    - nearest_asteroids x 6: dx, dy, vx, vy, radius, distance, nearest
      first, zero-padded when fewer asteroids exist
    - 4 edge distances: left, right, top, bottom
    """

    def __init__(
        self,
        config: Optional[ArenaConfig] = None,
        rewards: Optional[RewardConfig] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the environment.

        Args:
            config: Arena configuration
            rewards: Reward shaping constants
            seed: Random seed for world layout and spawns
        """
        self.config = config or ArenaConfig()
        self.rewards = rewards or RewardConfig()
        self._rng = np.random.default_rng(seed)

        self._ships: List[ShipState] = []
        self.asteroids: List[Asteroid] = []
        self.projectiles: List[Projectile] = []
        self.powerups: List[PowerUp] = []
        self.elapsed = 0.0
        self._powerup_timer = 0.0

        self._spawn_asteroids()

    @property
    def observation_size(self) -> int:
        return self.config.observation_size

    @property
    def agents(self) -> List[ShipState]:
        return list(self._ships)

    def reset(self, seed: Optional[int] = None) -> None:
        """Start a new episode; existing ships are respawned in place."""
        if seed is not None:
            self._rng = np.random.default_rng(seed)
        self.elapsed = 0.0
        self._powerup_timer = 0.0
        self.projectiles.clear()
        self.powerups.clear()
        self._spawn_asteroids()
        for ship in self._ships:
            self._respawn_ship(ship)

    def spawn_agent(self) -> ShipState:
        ship = ShipState(id=len(self._ships))
        self._respawn_ship(ship)
        self._ships.append(ship)
        return ship

    def _respawn_ship(self, ship: ShipState):
        ship.reset(
            x=float(self._rng.uniform(0.1, 0.9)),
            y=float(self._rng.uniform(0.1, 0.9)),
            heading=float(self._rng.uniform(0.0, 360.0)),
            health=self.config.start_health,
            ammo=self.config.start_ammo,
        )

    def _spawn_asteroids(self):
        self.asteroids = [self._new_asteroid() for _ in range(self.config.num_asteroids)]

    def _new_asteroid(self) -> Asteroid:
        speed = self.config.asteroid_max_speed
        return Asteroid(
            x=float(self._rng.random()),
            y=float(self._rng.random()),
            vx=float(self._rng.uniform(-speed, speed)),
            vy=float(self._rng.uniform(-speed, speed)),
            radius=self.config.asteroid_radius,
        )

    # ------------------------------------------------------------------
    # Observation

    def build_observation(self, agent_state: ShipState) -> np.ndarray:
        cfg = self.config
        ship = agent_state
        obs = np.zeros(self.observation_size, dtype=np.float32)

        rad = math.radians(ship.heading)
        obs[0:8] = (
            ship.x, ship.y, math.sin(rad), math.cos(rad), ship.vx, ship.vy,
            ship.health / max(cfg.max_health, 1), ship.ammo / max(cfg.max_ammo, 1),
        )

        nearest = sorted(self.asteroids, key=lambda a: a.distance_to(ship.x, ship.y))
        offset = 8
        for asteroid in nearest[:cfg.nearest_asteroids]:
            obs[offset:offset + 6] = (
                asteroid.x - ship.x, asteroid.y - ship.y,
                asteroid.vx, asteroid.vy, asteroid.radius,
                asteroid.distance_to(ship.x, ship.y),
            )
            offset += 6

        edges = 8 + cfg.nearest_asteroids * 6
        obs[edges:edges + 4] = (ship.x, 1.0 - ship.x, ship.y, 1.0 - ship.y)
        return obs

    # ------------------------------------------------------------------
    # Actions

    def apply_action(self, agent_state: ShipState, action: AgentAction) -> None:
        """Latch thrust, rotate, and fire if the cooldown and ammo allow."""
        ship = agent_state
        if not ship.alive or action is None:
            return
        cfg = self.config

        ship.heading = normalize_angle(ship.heading + _finite(action.angle_delta))

        forward = min(max(_finite(action.forward_thrust), -1.0), 1.0)
        side = min(max(_finite(action.side_thrust), -1.0), 1.0)
        accel = forward * (cfg.thrust_accel if forward > 0 else cfg.brake_accel)

        rad = math.radians(ship.heading)
        side_rad = rad + math.pi / 2.0
        ship.ax = math.cos(rad) * accel + math.cos(side_rad) * side * cfg.side_accel
        ship.ay = math.sin(rad) * accel + math.sin(side_rad) * side * cfg.side_accel

        if action.fire and ship.shoot_cooldown <= 0 and ship.ammo > 0:
            self._fire(ship)

    def _fire(self, ship: ShipState):
        cfg = self.config
        if ship.triple_shot_time > 0:
            shot = Projectile.triple(ship.id, ship.x, ship.y, ship.heading,
                                     cfg.projectile_speed, cfg.projectile_lifetime,
                                     cfg.triple_spread_deg)
        else:
            shot = Projectile.single(ship.id, ship.x, ship.y, ship.heading,
                                     cfg.projectile_speed, cfg.projectile_lifetime)
        self.projectiles.append(shot)
        ship.ammo -= 1
        ship.shoot_cooldown = cfg.fire_cooldown

    # ------------------------------------------------------------------
    # Simulation

    def advance_world(self, delta_time: float) -> None:
        dt = float(delta_time)
        if dt <= 0:
            return
        self.elapsed += dt

        for ship in self._ships:
            if ship.alive:
                self._move_ship(ship, dt)

        for asteroid in self.asteroids:
            asteroid.step(dt)

        self._collide_ships()
        self._update_projectiles(dt)
        self._update_powerups(dt)

        for ship in self._ships:
            if ship.alive:
                ship.pending_reward += self._tick_reward(ship, dt)

    def _move_ship(self, ship: ShipState, dt: float):
        cfg = self.config
        ship.vx += ship.ax * dt
        ship.vy += ship.ay * dt
        ship.ax = ship.ay = 0.0

        retention = cfg.velocity_retention ** dt
        ship.vx *= retention
        ship.vy *= retention

        speed = ship.speed
        if speed > cfg.max_speed:
            ship.vx *= cfg.max_speed / speed
            ship.vy *= cfg.max_speed / speed

        ship.x += ship.vx * dt
        ship.y += ship.vy * dt

        low, high = cfg.wall_margin, 1.0 - cfg.wall_margin
        if ship.x < low or ship.x > high:
            ship.x = min(max(ship.x, low), high)
            ship.vx = -ship.vx * cfg.wall_bounce
        if ship.y < low or ship.y > high:
            ship.y = min(max(ship.y, low), high)
            ship.vy = -ship.vy * cfg.wall_bounce

        ship.shoot_cooldown = max(0.0, ship.shoot_cooldown - dt)
        ship.hit_cooldown = max(0.0, ship.hit_cooldown - dt)
        ship.triple_shot_time = max(0.0, ship.triple_shot_time - dt)

    def _collide_ships(self):
        cfg = self.config
        for ship in self._ships:
            if not ship.alive or ship.hit_cooldown > 0:
                continue
            for asteroid in self.asteroids:
                if asteroid.distance_to(ship.x, ship.y) < asteroid.radius + cfg.ship_radius:
                    self._damage(ship)
                    break

    def _damage(self, ship: ShipState):
        ship.health -= 1
        ship.hit_cooldown = self.config.hit_invulnerability
        ship.pending_reward -= self.rewards.damage_penalty
        if ship.health <= 0:
            ship.alive = False
            ship.pending_reward += self.rewards.death

    def _update_projectiles(self, dt: float):
        ships = {ship.id: ship for ship in self._ships}
        for projectile in self.projectiles:
            projectile.step(dt)
            for piece in list(projectile.pieces()):
                if not piece.active:
                    continue
                for i, asteroid in enumerate(self.asteroids):
                    if asteroid.distance_to(piece.x, piece.y) < asteroid.radius:
                        projectile.remove_piece(piece)
                        self._destroy_asteroid(i, ships.get(piece.owner_id))
                        break
        self.projectiles = [p for p in self.projectiles if p.active]

    def _destroy_asteroid(self, index: int, shooter: Optional[ShipState]):
        destroyed = self.asteroids[index]
        if shooter is not None:
            shooter.kills += 1
            shooter.score += 10
            shooter.pending_reward += self.rewards.kill
        if self._rng.random() < self.config.powerup_drop_chance:
            self._spawn_powerup(destroyed.x, destroyed.y)
        self.asteroids[index] = self._new_asteroid()

    def _spawn_powerup(self, x: float, y: float):
        kind = PowerUpKind(int(self._rng.integers(len(PowerUpKind))))
        self.powerups.append(PowerUp(kind, x, y, self.config.powerup_lifetime))

    def _update_powerups(self, dt: float):
        cfg = self.config
        self._powerup_timer += dt
        if self._powerup_timer >= cfg.powerup_interval:
            self._powerup_timer = 0.0
            self._spawn_powerup(float(self._rng.uniform(0.1, 0.9)), float(self._rng.uniform(0.1, 0.9)))

        remaining = []
        for powerup in self.powerups:
            powerup.ttl -= dt
            if powerup.ttl <= 0:
                continue
            collector = next(
                (s for s in self._ships if s.alive and
                 math.hypot(s.x - powerup.x, s.y - powerup.y) < cfg.powerup_radius + cfg.ship_radius),
                None,
            )
            if collector is None:
                remaining.append(powerup)
            else:
                self._collect(collector, powerup)
        self.powerups = remaining

    def _collect(self, ship: ShipState, powerup: PowerUp):
        cfg = self.config
        if powerup.kind == PowerUpKind.AMMO:
            ship.ammo = min(cfg.max_ammo, ship.ammo + cfg.ammo_pickup)
        elif powerup.kind == PowerUpKind.HEALTH:
            ship.health = min(cfg.max_health, ship.health + 1)
        elif powerup.kind == PowerUpKind.TRIPLE_SHOT:
            ship.triple_shot_time = cfg.triple_shot_duration
        ship.powerups_collected += 1
        ship.pending_reward += self.rewards.powerup

    def _tick_reward(self, ship: ShipState, dt: float) -> float:
        """Shaping applied once per advance to every living ship."""
        r = self.rewards
        reward = r.survival

        for asteroid in self.asteroids:
            distance = asteroid.distance_to(ship.x, ship.y)
            if distance < r.proximity_near_distance:
                reward -= r.proximity_near_penalty
            elif distance < r.proximity_far_distance:
                reward -= r.proximity_far_penalty

        moved = (abs(ship.vx) + abs(ship.vy)) * dt
        reward += moved * r.movement_scale
        reward += ship.health * r.health_scale
        return reward

    # ------------------------------------------------------------------
    # Episode bookkeeping

    def is_episode_over(self) -> bool:
        if self.elapsed >= self.config.episode_duration:
            return True
        return bool(self._ships) and not any(ship.alive for ship in self._ships)

    def current_reward(self, agent_state: ShipState) -> float:
        reward = agent_state.pending_reward
        agent_state.pending_reward = 0.0
        return reward

    def score(self, agent_state: ShipState) -> float:
        return agent_state.score
