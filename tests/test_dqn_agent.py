"""
Tests for the DQN and continuous Q-learning agents.
"""

import numpy as np
import pytest


STATE_SIZE = 6


def _zeroed(agent):
    """Zero both networks so every output starts at exactly 0."""
    zeros = np.zeros(agent.main_network.parameter_count, dtype=np.float32)
    agent.main_network.set_parameters(zeros)
    agent.sync_target()
    return agent


class TestDQNAgent:
    """Tests for DQNAgent."""

    def test_network_shapes(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=0)

        assert agent.main_network.layer_sizes == [STATE_SIZE, 8, 5]
        assert agent.target_network.layer_sizes == agent.main_network.layer_sizes
        assert agent.memory.capacity == 64

    def test_terminal_update_moves_toward_reward(self):
        """With gamma 0 a terminal reward of 5 pulls Q(s, a) from 0 toward 5."""
        from asteroids_ai.ai import DQNAgent

        agent = _zeroed(DQNAgent(
            STATE_SIZE,
            config={"gamma": 0.0, "hidden_sizes": (4,), "learning_rate": 0.1},
            seed=0,
        ))
        state = np.ones(STATE_SIZE, dtype=np.float32)
        action = 2
        agent.memory.store(state, action, 5.0, state, True)

        before = agent.main_network.forward(state)[action]
        loss = agent.train_step()
        after = agent.main_network.forward(state)[action]

        assert before == 0.0
        assert loss is not None
        assert abs(5.0 - after) < abs(5.0 - before)
        assert after > 0.0

    def test_sync_target_copies_values(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=1)
        agent.main_network.set_parameters(np.ones(agent.main_network.parameter_count))
        agent.sync_target()

        np.testing.assert_array_equal(
            agent.target_network.get_parameters(), agent.main_network.get_parameters()
        )

        agent.main_network.set_parameters(np.zeros(agent.main_network.parameter_count))
        assert np.all(agent.target_network.get_parameters() == 1.0)

    def test_target_synced_on_schedule(self):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config={
            "hidden_sizes": (8,), "batch_size": 2, "target_update_freq": 3,
        }, seed=2)
        rng = np.random.default_rng(0)

        for _ in range(3):
            agent.decide(rng.random(STATE_SIZE))
            agent.learn(rng.random(STATE_SIZE), 1.0, False)

        assert agent.update_count == 2
        np.testing.assert_array_equal(
            agent.target_network.get_parameters(), agent.main_network.get_parameters()
        )

    def test_epsilon_decays_to_floor(self):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config={
            "hidden_sizes": (4,), "epsilon_decay": 0.5, "epsilon_min": 0.1, "batch_size": 1000,
        }, seed=3)
        obs = np.zeros(STATE_SIZE)

        previous = agent.epsilon
        for _ in range(10):
            agent.decide(obs)
            agent.learn(obs, 0.0, False)
            assert agent.epsilon <= previous
            assert agent.epsilon >= 0.1
            previous = agent.epsilon

        assert agent.epsilon == pytest.approx(0.1)

    def test_no_learning_in_eval_mode(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=4)
        agent.set_training_mode(False)
        epsilon = agent.epsilon
        obs = np.zeros(STATE_SIZE)

        agent.decide(obs)
        agent.learn(obs, 1.0, False)

        assert len(agent.memory) == 0
        assert agent.epsilon == epsilon

    def test_greedy_action_uses_discrete_slots(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent
        from asteroids_ai.core import DiscreteAction

        agent = _zeroed(DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=5))
        params = agent.main_network.get_parameters()
        # Output biases are the last five parameters; the heading slot is largest
        params[-5:] = [0.0, 1.0, 0.5, 0.0, 9.0]
        agent.main_network.set_parameters(params)
        agent.set_training_mode(False)

        action = agent.decide(np.zeros(STATE_SIZE), heading=0.0)

        assert action.index == DiscreteAction.THRUST
        assert action.forward_thrust == 1.0

    def test_decide_rejects_wrong_observation(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config)
        with pytest.raises(ValueError):
            agent.decide(np.zeros(STATE_SIZE + 1))

    def test_decide_updates_heading(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=6)
        action = agent.decide(np.zeros(STATE_SIZE), heading=90.0)

        assert agent.heading == pytest.approx((90.0 + action.angle_delta) % 360.0, abs=1e-4)

    def test_malformed_transitions_are_skipped(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=7)
        agent.memory.store(np.zeros(STATE_SIZE + 2), 0, 1.0, np.zeros(STATE_SIZE), False)
        agent.memory.store(np.zeros(STATE_SIZE), 99, 1.0, np.zeros(STATE_SIZE), False)

        assert agent.train_step() is None
        assert agent.skipped_transitions >= 2
        assert agent.update_count == 0

    def test_malformed_transition_does_not_block_valid_ones(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=8)
        agent.memory.store(np.zeros(3), 0, 1.0, np.zeros(3), False)
        for _ in range(5):
            agent.memory.store(np.ones(STATE_SIZE), 1, 1.0, np.ones(STATE_SIZE), False)

        assert agent.train_step() is not None
        assert agent.update_count == 1

    def test_batch_never_repeats_a_transition(self, tiny_dqn_config, monkeypatch):
        """Replacement draws for skipped transitions come from unused slots."""
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config={**tiny_dqn_config, "buffer_size": 4}, seed=13)
        agent.memory.store(np.zeros(3), 0, 1.0, np.zeros(3), False)
        for i in range(3):
            agent.memory.store(np.full(STATE_SIZE, i), 1, 1.0, np.ones(STATE_SIZE), False)

        drawn = []
        train_on = agent._train_on

        def recording_train_on(transition):
            drawn.append(id(transition))
            return train_on(transition)

        monkeypatch.setattr(agent, "_train_on", recording_train_on)

        for _ in range(50):
            drawn.clear()
            assert agent.train_step() is not None
            assert len(drawn) == 4
            assert len(set(drawn)) == len(drawn)

        assert agent.skipped_transitions == 50

    def test_episode_bookkeeping(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=9)
        obs = np.zeros(STATE_SIZE)

        for reward, done in ((1.0, False), (2.0, True), (4.0, True)):
            agent.decide(obs)
            agent.learn(obs, reward, done)

        stats = agent.get_stats()
        assert stats["episodes"] == 2
        assert stats["last_episode_reward"] == 4.0
        assert stats["average_reward"] == pytest.approx(3.5)
        assert stats["steps_done"] == 3
        assert agent.last_state is None

    def test_invalid_hyperparameters(self):
        from asteroids_ai.ai import DQNAgent

        with pytest.raises(ValueError):
            DQNAgent(STATE_SIZE, config={"gamma": 1.0})
        with pytest.raises(ValueError):
            DQNAgent(STATE_SIZE, config={"epsilon_min": 0.0})

    def test_batch_larger_than_buffer_rejected(self):
        from asteroids_ai.ai import DQNAgent

        with pytest.raises(ValueError, match="buffer_size"):
            DQNAgent(STATE_SIZE, config={"batch_size": 32, "buffer_size": 16})
        with pytest.raises(ValueError, match="buffer_size"):
            DQNAgent(STATE_SIZE, config={"batch_size": 4, "min_replay_size": 100, "buffer_size": 50})

    def test_save_and_load(self, tmp_path, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=10)
        agent.epsilon = 0.3
        agent.step_count = 17
        path = tmp_path / "ckpt" / "agent.npz"
        agent.save(str(path))

        restored = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=11)
        restored.load(str(path))

        np.testing.assert_array_equal(
            restored.main_network.get_parameters(), agent.main_network.get_parameters()
        )
        assert restored.epsilon == pytest.approx(0.3)
        assert restored.step_count == 17

    def test_load_mismatched_architecture(self, tmp_path, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent
        from asteroids_ai.core import CheckpointError

        path = tmp_path / "agent.npz"
        DQNAgent(STATE_SIZE, config=tiny_dqn_config).save(str(path))

        other = DQNAgent(STATE_SIZE, config={**tiny_dqn_config, "hidden_sizes": (3,)})
        with pytest.raises(CheckpointError):
            other.load(str(path))

    def test_load_missing_file(self, tmp_path, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent
        from asteroids_ai.core import CheckpointError

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config)
        with pytest.raises(CheckpointError):
            agent.load(str(tmp_path / "missing.npz"))

    @pytest.mark.parametrize("content", [b"", b"PK\x03\x04garbage"])
    def test_load_corrupt_file(self, tmp_path, tiny_dqn_config, content):
        from asteroids_ai.ai import DQNAgent
        from asteroids_ai.core import CheckpointError

        path = tmp_path / "corrupt.npz"
        path.write_bytes(content)

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config)
        with pytest.raises(CheckpointError):
            agent.load(str(path))

    def test_clone_copies_parameters_not_memory(self, tiny_dqn_config):
        from asteroids_ai.ai import DQNAgent

        agent = DQNAgent(STATE_SIZE, config=tiny_dqn_config, seed=12)
        agent.memory.store(np.zeros(STATE_SIZE), 0, 1.0, np.zeros(STATE_SIZE), False)
        agent.epsilon = 0.4

        twin = agent.clone(seed=3)

        np.testing.assert_array_equal(
            twin.main_network.get_parameters(), agent.main_network.get_parameters()
        )
        np.testing.assert_array_equal(
            twin.target_network.get_parameters(), agent.main_network.get_parameters()
        )
        assert twin.epsilon == 0.4
        assert len(twin.memory) == 0

        twin.mutate(0.5)
        assert not np.array_equal(
            twin.main_network.get_parameters(), agent.main_network.get_parameters()
        )


class TestQLearningAgent:
    """Tests for the continuous-output variant."""

    def test_derived_network_size(self):
        from asteroids_ai.ai import QLearningAgent

        agent = QLearningAgent(40)

        assert agent.main_network.layer_sizes == [40, 80, 32, 4]

    def test_action_is_a_vector(self):
        from asteroids_ai.ai import QLearningAgent

        agent = QLearningAgent(STATE_SIZE, config={"hidden_sizes": (4,)}, seed=0)
        action = agent.decide(np.zeros(STATE_SIZE), heading=0.0)

        assert isinstance(agent.last_action, np.ndarray)
        assert agent.last_action.shape == (4,)
        assert -1.0 <= action.forward_thrust <= 1.0
        assert action.index is None

    def test_exploration_stays_in_range(self):
        from asteroids_ai.ai import QLearningAgent

        agent = QLearningAgent(STATE_SIZE, config={
            "hidden_sizes": (4,), "epsilon_start": 1.0, "epsilon_decay": 1.0,
        }, seed=1)

        for _ in range(20):
            agent.decide(np.zeros(STATE_SIZE))
            assert np.all(np.abs(agent.last_action) <= 1.0)

    def test_training_target_blends_toward_action(self):
        from asteroids_ai.ai import QLearningAgent, Transition

        agent = QLearningAgent(STATE_SIZE, config={"hidden_sizes": (4,), "gamma": 0.0})
        action = np.array([1.0, 0.0, -1.0, 0.5], dtype=np.float32)
        t = Transition(np.zeros(STATE_SIZE, np.float32), action, 5.0,
                       np.zeros(STATE_SIZE, np.float32), True)

        target = agent._training_target(t, np.zeros(4, dtype=np.float32))

        np.testing.assert_allclose(target, 0.1 * 5.0 + 0.9 * action, rtol=1e-5)

    def test_train_step_moves_outputs_toward_target(self):
        from asteroids_ai.ai import QLearningAgent

        agent = _zeroed(QLearningAgent(STATE_SIZE, config={
            "hidden_sizes": (4,), "gamma": 0.0, "learning_rate": 0.1,
        }))
        state = np.ones(STATE_SIZE, dtype=np.float32)
        action = np.array([1.0, 0.0, -1.0, 0.5], dtype=np.float32)
        agent.memory.store(state, action, 5.0, state, True)

        agent.train_step()
        outputs = agent.main_network.forward(state)

        assert np.all(np.sign(outputs) == np.sign(0.5 + 0.9 * action))

    def test_rejects_discrete_transitions(self):
        from asteroids_ai.ai import QLearningAgent

        agent = QLearningAgent(STATE_SIZE, config={"hidden_sizes": (4,)})
        agent.memory.store(np.zeros(STATE_SIZE), 1, 1.0, np.zeros(STATE_SIZE), False)

        assert agent.train_step() is None
        assert agent.skipped_transitions >= 1

    def test_clone_keeps_variant(self):
        from asteroids_ai.ai import QLearningAgent

        agent = QLearningAgent(STATE_SIZE, config={"hidden_sizes": (4,)}, seed=2)
        twin = agent.clone()

        assert isinstance(twin, QLearningAgent)
        assert twin.target_blend == agent.target_blend


class TestPolicyAgent:
    """Tests for the fixed-policy agent."""

    def test_decoder_must_match_network(self):
        from asteroids_ai.ai import PolicyAgent
        from asteroids_ai.nn import Network

        with pytest.raises(ValueError):
            PolicyAgent(Network.mlp(STATE_SIZE, [4], 5))

    def test_learn_does_not_change_network(self):
        from asteroids_ai.ai import PolicyAgent
        from asteroids_ai.nn import Network

        network = Network.mlp(STATE_SIZE, [4], 6, seed=0)
        params = network.get_parameters()
        agent = PolicyAgent(network)

        agent.decide(np.ones(STATE_SIZE), heading=10.0)
        agent.learn(np.ones(STATE_SIZE), 2.5, False)

        np.testing.assert_array_equal(network.get_parameters(), params)
        assert agent.get_stats()["total_reward"] == 2.5


class TestAgentRegistry:
    """Tests for AgentRegistry."""

    def test_builtin_agents_registered(self):
        from asteroids_ai.ai import AgentRegistry

        assert AgentRegistry.is_available("dqn")
        assert AgentRegistry.is_available("q_learning")
        assert "dqn" in AgentRegistry.list_agents()
        assert AgentRegistry.get_description("dqn")

    def test_create_agent_sized_for_env(self, small_arena):
        from asteroids_ai.ai import AgentRegistry, DQNAgent
        from asteroids_ai.games.asteroids import ArenaEnv

        env = ArenaEnv(small_arena, seed=0)
        agent = AgentRegistry.create_agent("dqn", env, config={"hidden_sizes": (4,)}, seed=0)

        assert isinstance(agent, DQNAgent)
        assert agent.state_size == env.observation_size

    def test_create_unknown_agent(self, small_arena):
        from asteroids_ai.ai import AgentRegistry
        from asteroids_ai.games.asteroids import ArenaEnv

        with pytest.raises(ValueError, match="Unknown agent"):
            AgentRegistry.create_agent("ppo", ArenaEnv(small_arena))
