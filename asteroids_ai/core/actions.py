"""
Agent actions and decoding of raw network outputs.

A network emits unbounded floats. Decoders turn them into an AgentAction the
environment can execute, bounding values with tanh/sigmoid and replacing any
non-finite output with a neutral value before it reaches the world.
"""
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Protocol

import numpy as np

from ..nn.activation import sigmoid


class DiscreteAction(IntEnum):
    """Discrete action set of the DQN agent (turning is continuous)."""
    NOTHING = 0
    THRUST = 1
    SHOOT = 2
    BRAKE = 3


NUM_DISCRETE_ACTIONS = len(DiscreteAction)


@dataclass
class AgentAction:
    """
    Control input for one tick.

    forward_thrust and side_thrust lie in [-1, 1]; angle_delta is in degrees
    (positive is clockwise); index is the discrete action when one was chosen.
    """
    forward_thrust: float = 0.0
    side_thrust: float = 0.0
    angle_delta: float = 0.0
    fire: bool = False
    index: Optional[int] = None


def normalize_angle(degrees: float) -> float:
    """Map an angle into [0, 360)."""
    value = math.fmod(degrees, 360.0)
    if value < 0:
        value += 360.0
    return value


def shortest_angle_delta(current: float, desired: float) -> float:
    """Signed rotation from current to desired heading, in (-180, 180]."""
    delta = normalize_angle(desired) - normalize_angle(current)
    if delta > 180.0:
        delta -= 360.0
    elif delta <= -180.0:
        delta += 360.0
    return delta


def _finite(value: float, default: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


class ActionDecoder(Protocol):
    """Turns a raw output vector into an AgentAction."""

    output_size: int

    def decode(
        self, outputs: np.ndarray, heading: float, index: Optional[int] = None
    ) -> AgentAction:
        ...


class DiscreteTurnDecoder:
    """
    Discrete action index plus one continuous heading output.

    Outputs: [q_nothing, q_thrust, q_shoot, q_brake, angle_raw]. The angle slot
    goes through a sigmoid to a fraction of a full turn, which is converted to
    the shortest signed delta from the current heading.
    """

    def __init__(self, num_actions: int = NUM_DISCRETE_ACTIONS):
        self.num_actions = num_actions
        self.output_size = num_actions + 1

    def turn_fraction(self, outputs: np.ndarray) -> float:
        if len(outputs) <= self.num_actions:
            return 0.5
        raw = float(outputs[self.num_actions])
        if not math.isfinite(raw):
            return 0.5
        return _finite(sigmoid(raw), 0.5)

    def decode(
        self, outputs: np.ndarray, heading: float, index: Optional[int] = None
    ) -> AgentAction:
        action = AgentAction(index=index)
        if index == DiscreteAction.THRUST:
            action.forward_thrust = 1.0
        elif index == DiscreteAction.SHOOT:
            action.fire = True
        elif index == DiscreteAction.BRAKE:
            action.forward_thrust = -1.0

        desired = self.turn_fraction(outputs) * 360.0
        action.angle_delta = shortest_angle_delta(heading, desired)
        return action


class ContinuousDecoder:
    """
    Fully continuous controls.

    Outputs: [forward, side, turn, fire] -> tanh, tanh, (tanh + 1) * 180
    absolute heading, fire when the raw value is positive.
    """

    output_size = 4

    def decode(
        self, outputs: np.ndarray, heading: float, index: Optional[int] = None
    ) -> AgentAction:
        forward = _finite(np.tanh(_finite(outputs[0], 0.0)), 0.0)
        side = _finite(np.tanh(_finite(outputs[1], 0.0)), 0.0)
        turn = (_finite(np.tanh(_finite(outputs[2], 0.0)), 0.0) + 1.0) * 180.0
        fire = _finite(outputs[3], 0.0) > 0.0
        return AgentAction(
            forward_thrust=forward,
            side_thrust=side,
            angle_delta=shortest_angle_delta(heading, turn),
            fire=fire,
            index=index,
        )


class ThresholdDecoder:
    """
    Fixed-policy controls used by evolved networks.

    Outputs: [angle, thrust_forward, thrust_back, strafe_left, strafe_right,
    shoot]. The angle is tanh-bounded to +/- max_turn_deg per tick; every
    other slot is on when its sigmoid exceeds 0.5.
    """

    output_size = 6

    def __init__(self, max_turn_deg: float = 6.0):
        self.max_turn_deg = max_turn_deg

    def decode(
        self, outputs: np.ndarray, heading: float, index: Optional[int] = None
    ) -> AgentAction:
        raw = [_finite(v, 0.0) for v in outputs[:self.output_size]]
        on = [float(sigmoid(v)) > 0.5 for v in raw[1:]]
        thrust_forward, thrust_back, strafe_left, strafe_right, shoot = on

        return AgentAction(
            forward_thrust=float(thrust_forward) - float(thrust_back),
            side_thrust=float(strafe_right) - float(strafe_left),
            angle_delta=float(np.tanh(raw[0])) * self.max_turn_deg,
            fire=shoot,
            index=index,
        )
