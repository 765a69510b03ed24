"""
Tests for the evolutionary DQN population and the single-agent trainer.
"""

import numpy as np
import pytest


@pytest.fixture
def evolution_config(small_arena, tiny_dqn_config):
    from asteroids_ai.training import EvolutionConfig

    return EvolutionConfig(
        population_size=3,
        survivors=1,
        episodes_per_generation=1,
        episode_duration=0.1,
        tick_seconds=0.05,
        seed=0,
        agent=tiny_dqn_config,
        arena=small_arena,
    )


class TestEvolutionConfig:
    """Tests for EvolutionConfig validation."""

    def test_survivors_bounded_by_population(self):
        from asteroids_ai.training import EvolutionConfig

        with pytest.raises(ValueError):
            EvolutionConfig(population_size=2, survivors=3)

    def test_from_loaded_config(self):
        from asteroids_ai.training import EvolutionConfig
        from asteroids_ai.utils import load_config

        config = load_config(overrides={"evolution": {"population_size": 4, "survivors": 2}})
        evolution = EvolutionConfig.from_config(config)

        assert evolution.population_size == 4
        assert evolution.survivors == 2
        assert evolution.agent["gamma"] == config.dqn.gamma


class TestEvolutionaryCoordinator:
    """Tests for EvolutionaryCoordinator."""

    def test_population_shares_one_world(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)

        assert len(coordinator.population) == 3
        assert [r.ship for r in coordinator.population] == coordinator.env.agents

    def test_tick_moves_every_agent_once(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        coordinator.env.reset(seed=0)

        acted = coordinator.tick()

        assert acted == 3
        assert all(r.agent.step_count == 1 for r in coordinator.population)
        assert coordinator.env.elapsed == pytest.approx(evolution_config.tick_seconds)

    def test_dead_agents_do_not_act(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        coordinator.env.reset(seed=0)
        coordinator.population[0].ship.alive = False

        assert coordinator.tick() == 2
        assert coordinator.population[0].agent.step_count == 0

    def test_run_episode_accumulates_fitness(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        mean, best = coordinator.run_episode()

        fitness = [r.generation_fitness for r in coordinator.population]
        assert best == pytest.approx(max(fitness))
        assert mean == pytest.approx(np.mean(fitness))
        assert coordinator.env.is_episode_over()

    def test_evolve_clones_survivors(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        for record, fitness in zip(coordinator.population, (1.0, 5.0, 3.0)):
            record.generation_fitness = fitness
        winner = coordinator.population[1]

        stats = coordinator.evolve()

        assert stats.best_fitness == 5.0
        assert stats.survivor_ids == [1]
        assert coordinator.population[0] is winner
        assert [r.id for r in coordinator.population] == [0, 1, 2]
        assert [r.ship for r in coordinator.population] == coordinator.env.agents
        assert all(r.generation_fitness == 0.0 for r in coordinator.population)

        params = winner.agent.main_network.get_parameters()
        for record in coordinator.population[1:]:
            assert record.agent is not winner.agent
            np.testing.assert_array_equal(record.agent.main_network.get_parameters(), params)
        assert coordinator.generation == 1

    def test_clone_mutation(self, evolution_config):
        from dataclasses import replace

        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(replace(evolution_config, clone_mutation_sigma=0.1))
        coordinator.population[0].generation_fitness = 10.0
        params = coordinator.population[0].agent.main_network.get_parameters()

        coordinator.evolve()

        for record in coordinator.population[1:]:
            assert not np.array_equal(record.agent.main_network.get_parameters(), params)

    def test_run_generations(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        seen = []
        history = coordinator.run(2, on_generation=seen.append)

        assert len(history) == 2
        assert seen == history
        assert [s.generation for s in history] == [0, 1]

    def test_stop_before_run(self, evolution_config):
        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(evolution_config)
        coordinator.stop()

        assert coordinator.run(3) == []
        assert coordinator.run_episode() is None

    def test_parallel_agents(self, evolution_config):
        from dataclasses import replace

        from asteroids_ai.training import EvolutionaryCoordinator

        coordinator = EvolutionaryCoordinator(
            replace(evolution_config, parallel_agents=True, max_workers=2)
        )
        try:
            assert coordinator.run_episode() is not None
            assert all(r.agent.step_count > 0 for r in coordinator.population)
        finally:
            coordinator.close()


class TestDQNTrainer:
    """Tests for the single-agent training loop."""

    def _config(self, tmp_path, small_arena, **overrides):
        from asteroids_ai.training import TrainingConfig

        values = dict(
            episodes=2,
            episode_duration=0.1,
            tick_seconds=0.05,
            seed=0,
            save_interval=1,
            checkpoint_dir=str(tmp_path / "models"),
            agent={"hidden_sizes": (4,), "batch_size": 2},
            arena=small_arena,
        )
        values.update(overrides)
        return TrainingConfig(**values)

    def test_train_and_checkpoint(self, tmp_path, small_arena):
        from asteroids_ai.training import DQNTrainer

        trainer = DQNTrainer(self._config(tmp_path, small_arena))
        results = []
        trainer.train(on_episode=results.append)

        assert trainer.episode == 2
        assert [r.episode for r in results] == [1, 2]
        assert (tmp_path / "models" / "model_ep1.npz").exists()
        assert (tmp_path / "models" / "model_ep2.npz").exists()
        assert trainer.agent.get_stats()["episodes"] == 2

    def test_save_final_model(self, tmp_path, small_arena):
        from pathlib import Path

        from asteroids_ai.training import DQNTrainer

        trainer = DQNTrainer(self._config(tmp_path, small_arena, episodes=1, save_interval=0))
        trainer.train()
        path = trainer.save_final_model()
        trainer.close()

        assert Path(path).name == "final_model.npz"
        assert Path(path).exists()

    def test_q_learning_agent_type(self, tmp_path, small_arena):
        from asteroids_ai.ai import QLearningAgent
        from asteroids_ai.training import DQNTrainer

        trainer = DQNTrainer(self._config(
            tmp_path, small_arena, agent_type="q_learning", save_interval=0,
            agent={"hidden_sizes": (4,), "min_replay_size": 0, "batch_size": 2},
        ))
        trainer.train()

        assert isinstance(trainer.agent, QLearningAgent)
        assert trainer.agent.update_count > 0

    def test_stop(self, tmp_path, small_arena):
        from asteroids_ai.training import DQNTrainer

        trainer = DQNTrainer(self._config(tmp_path, small_arena, episodes=5, save_interval=0))
        trainer.train(on_episode=lambda result: trainer.stop())

        assert trainer.episode == 1

    def test_episode_log_line_is_tagged(self, tmp_path, small_arena, caplog):
        import logging

        from asteroids_ai.training import DQNTrainer

        trainer = DQNTrainer(self._config(tmp_path, small_arena, episodes=1,
                                          save_interval=0, log_interval=1))
        with caplog.at_level(logging.INFO, logger="asteroids_ai.training.dqn_trainer"):
            trainer.train()

        assert any(m.startswith("[Training] Episode 1/1") for m in caplog.messages)
