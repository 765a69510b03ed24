# Asteroids AI Source Package
"""
Asteroids AI - reinforcement learning engine for an arcade asteroids arena.

Modules:
- core: Abstract interfaces for environments and agents
- nn: Hand-written multilayer perceptron (layers, network, activations)
- ai: Replay buffer, action decoding, DQN and continuous Q-learning agents
- games: Headless asteroids arena environment
- training: Genetic trainer, evolutionary DQN population, online DQN trainer
- visualization: Rich terminal display for training runs
- utils: Configuration and logging
"""

__version__ = "0.1.0"
