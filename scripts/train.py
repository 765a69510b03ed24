#!/usr/bin/env python3
"""
Asteroids AI - Training Script

Train agents for the asteroids arena from the command line.

Usage:
    python scripts/train.py --mode genetic                    # Genetic search
    python scripts/train.py --mode genetic --preset fast      # Short genetic run
    python scripts/train.py --mode genetic --continue models/best_genome.bin
    python scripts/train.py --mode dqn --episodes 500         # Single DQN agent
    python scripts/train.py --mode evolution --gens 20        # Evolving DQN population
"""
import sys
import argparse
from pathlib import Path
from typing import Any, Dict

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from asteroids_ai.core.errors import CheckpointError
from asteroids_ai.training import (
    DQNTrainer,
    EvolutionConfig,
    EvolutionaryCoordinator,
    GAConfig,
    GeneticTrainer,
    TrainingConfig,
)
from asteroids_ai.utils.config_loader import load_config
from asteroids_ai.utils.logger import setup_logging
from asteroids_ai.visualization import TerminalTrainingDisplay


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Asteroids AI - Train agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/train.py --mode genetic --pop 40 --gens 100
  python scripts/train.py --mode genetic --preset fast --workers 4
  python scripts/train.py --mode dqn --episodes 500
  python scripts/train.py --mode evolution --gens 20
"""
    )

    parser.add_argument("--mode", choices=["genetic", "dqn", "evolution"], default="genetic",
                        help="Training mode (default: genetic)")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config")
    parser.add_argument("--preset", choices=["fast"], default=None,
                        help="Genetic preset for quick experiments")
    parser.add_argument("--pop", type=int, default=None, help="Population size")
    parser.add_argument("--gens", type=int, default=None, help="Number of generations")
    parser.add_argument("--episode-seconds", type=float, default=None,
                        help="Simulated seconds per episode")
    parser.add_argument("--episodes-per-genome", type=int, default=None,
                        help="Episodes averaged into each genome's fitness")
    parser.add_argument("--sigma", type=float, default=None, help="Initial mutation sigma")
    parser.add_argument("--sigma-decay", type=float, default=None,
                        help="Mutation sigma decay per generation")
    parser.add_argument("--out", type=str, default=None, help="Output directory")
    parser.add_argument("--continue", dest="continue_from", type=str, default=None,
                        help="Genome checkpoint to continue from")
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker processes for genome evaluation")
    parser.add_argument("--episodes", type=int, default=None, help="Episodes for dqn mode")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--quiet", action="store_true",
                        help="Minimal output (no live display, warnings only)")

    return parser.parse_args(argv)


def build_overrides(args) -> Dict[str, Any]:
    """Translate command line flags into nested config overrides."""
    overrides: Dict[str, Dict[str, Any]] = {"genetic": {}, "evolution": {}, "training": {}}

    if args.preset == "fast":
        overrides["genetic"].update(GAConfig.FAST_PRESET)

    genetic = {
        "population_size": args.pop,
        "generations": args.gens,
        "episode_duration": args.episode_seconds,
        "episodes_per_genome": args.episodes_per_genome,
        "mutation_sigma": args.sigma,
        "mutation_decay": args.sigma_decay,
        "output_dir": args.out,
        "continue_from": args.continue_from,
        "num_workers": args.workers,
        "seed": args.seed,
    }
    evolution = {
        "population_size": args.pop,
        "generations": args.gens,
        "episode_duration": args.episode_seconds,
        "seed": args.seed,
    }
    training = {
        "episodes": args.episodes,
        "episode_duration": args.episode_seconds,
        "checkpoint_dir": args.out,
        "seed": args.seed,
    }
    for section, values in (("genetic", genetic), ("evolution", evolution), ("training", training)):
        overrides[section].update({k: v for k, v in values.items() if v is not None})

    return overrides


def train_genetic(config, display) -> Dict[str, Any]:
    ga_config = GAConfig.from_config(config)
    trainer = GeneticTrainer(ga_config)

    def on_generation(stats):
        if display:
            display.update(stats.generation + 1, stats.best,
                           mean=stats.mean, worst=stats.worst, sigma=stats.sigma)
            if stats.best >= stats.best_ever:
                display.add_message(f"Gen {stats.generation}: new best {stats.best:.3f}")

    try:
        best = trainer.run(on_generation=on_generation)
    except KeyboardInterrupt:
        trainer.stop()
        best = trainer.best

    return {
        "best_fitness": best.fitness if best else None,
        "model_path": str(trainer.best_path),
        "generations_completed": len(trainer.history),
    }


def train_dqn(config, display) -> Dict[str, Any]:
    trainer = DQNTrainer(TrainingConfig.from_config(config))

    def on_episode(result):
        if display:
            display.update(result.episode, result.reward,
                           average=result.average_reward,
                           epsilon=result.epsilon if result.epsilon is not None else 0.0)

    try:
        high_score = trainer.train(on_episode=on_episode)
    except KeyboardInterrupt:
        trainer.stop()
        high_score = trainer.high_score
    finally:
        final_path = trainer.save_final_model()
        trainer.close()

    return {
        "high_score": high_score,
        "model_path": final_path,
        "episodes_completed": trainer.episode,
    }


def train_evolution(config, display) -> Dict[str, Any]:
    coordinator = EvolutionaryCoordinator(EvolutionConfig.from_config(config))

    def on_generation(stats):
        if display:
            display.update(stats.generation + 1, stats.best_fitness,
                           mean=stats.mean_fitness, asteroids=stats.asteroids_destroyed)
            display.add_message(
                f"Gen {stats.generation}: survivors {stats.survivor_ids}"
            )

    try:
        history = coordinator.run(config.evolution.generations, on_generation=on_generation)
    except KeyboardInterrupt:
        coordinator.stop()
        history = coordinator.history
    finally:
        coordinator.close()

    out_dir = Path(config.training.checkpoint_dir)
    best_path = out_dir / "evolution_best.npz"
    coordinator.best_agent().agent.save(str(best_path))

    return {
        "best_fitness": max((s.best_fitness for s in history), default=None),
        "model_path": str(best_path),
        "generations_completed": len(history),
    }


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    config = load_config(args.config, overrides=build_overrides(args))

    display = None
    if not args.quiet:
        if args.mode == "dqn":
            total, unit = config.training.episodes, "Episode"
        elif args.mode == "evolution":
            total, unit = config.evolution.generations, "Generation"
        else:
            total, unit = config.genetic.generations, "Generation"
        display = TerminalTrainingDisplay(
            total=total,
            title=f"Asteroids AI - {args.mode} training",
            unit=unit,
            show_hardware=config.hardware_monitor.enabled,
        )

    setup_logging(config.logging, console=display.console if display else None, quiet=args.quiet)

    runners = {"genetic": train_genetic, "dqn": train_dqn, "evolution": train_evolution}
    try:
        if display:
            with display:
                result = runners[args.mode](config, display)
        else:
            result = runners[args.mode](config, None)
    except CheckpointError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print(f"\n[Training] Complete! {result}")


if __name__ == "__main__":
    main()
