"""
Learning agents for Asteroids AI.

Importing this module registers the built-in agents with AgentRegistry.
"""

from .replay_buffer import ReplayBuffer, ReplayStats, Transition
from .dqn_agent import DQNAgent
from .q_learning_agent import QLearningAgent
from .policy_agent import PolicyAgent
from .registry import AgentRegistry

AgentRegistry.register(
    "dqn", DQNAgent,
    description="Deep Q-Network with discrete actions and a continuous heading output"
)
AgentRegistry.register(
    "q_learning", QLearningAgent,
    description="Q-learning over a continuous control vector"
)

__all__ = [
    'ReplayBuffer',
    'ReplayStats',
    'Transition',
    'DQNAgent',
    'QLearningAgent',
    'PolicyAgent',
    'AgentRegistry',
]
