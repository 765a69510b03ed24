"""
Single-ship episode rollout shared by the trainers.
"""
from ..core.agent_interface import AgentInterface
from ..core.env_interface import EnvInterface


def run_episode(env: EnvInterface, agent: AgentInterface, ship, tick_seconds: float) -> float:
    """
    Drive one agent through the rest of the current episode.

    The caller resets the environment first. Each tick is observe, decide,
    apply, advance, reward, learn.

    Args:
        env: Environment holding the ship
        agent: Agent controlling the ship
        ship: Agent state handle returned by env.spawn_agent()
        tick_seconds: Simulated seconds per tick

    Returns:
        Cumulative shaped reward for the episode
    """
    if tick_seconds <= 0:
        raise ValueError(f"tick_seconds must be positive, got {tick_seconds}")

    agent.on_episode_start()
    total = 0.0
    observation = env.build_observation(ship)

    while not env.is_episode_over():
        action = agent.decide(observation, ship.heading)
        env.apply_action(ship, action)
        env.advance_world(tick_seconds)

        reward = env.current_reward(ship)
        total += reward
        observation = env.build_observation(ship)
        done = not ship.alive or env.is_episode_over()
        agent.learn(observation, reward, done)

    return total
