"""
Core abstractions for Asteroids AI.

Provides the action type shared by agents and environments, plus the
abstract interfaces that every environment and agent must implement.
"""

from .actions import (
    AgentAction,
    ActionDecoder,
    ContinuousDecoder,
    DiscreteAction,
    DiscreteTurnDecoder,
    NUM_DISCRETE_ACTIONS,
    ThresholdDecoder,
    normalize_angle,
    shortest_angle_delta,
)
from .env_interface import EnvInterface
from .agent_interface import AgentInterface
from .errors import CheckpointError

__all__ = [
    'AgentAction',
    'ActionDecoder',
    'ContinuousDecoder',
    'DiscreteAction',
    'DiscreteTurnDecoder',
    'NUM_DISCRETE_ACTIONS',
    'ThresholdDecoder',
    'normalize_angle',
    'shortest_angle_delta',
    'EnvInterface',
    'AgentInterface',
    'CheckpointError',
]
