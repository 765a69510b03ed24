"""
Configuration Loader - Load and validate configuration from YAML.

Sections map onto dataclasses; unknown keys are ignored and missing keys
fall back to the dataclass defaults. Overrides (e.g. from command line
flags) are deep-merged over the file contents before the dataclasses are
built.
"""
import logging
import yaml
from pathlib import Path
from typing import Optional, Any, Dict, List
from dataclasses import asdict, dataclass, field
from copy import deepcopy

from ..games.asteroids.config import ArenaConfig, RewardConfig

logger = logging.getLogger(__name__)


@dataclass
class NetworkConfig:
    """Policy network evolved by the genetic trainer."""
    hidden_sizes: List[int] = field(default_factory=lambda: [32, 32])
    output_size: int = 6
    max_turn_deg: float = 6.0


@dataclass
class DQNConfig:
    """DQN agent hyperparameters."""
    gamma: float = 0.95
    epsilon_start: float = 1.0
    epsilon_min: float = 0.05
    epsilon_decay: float = 0.998
    learning_rate: float = 0.0005
    batch_size: int = 32
    buffer_size: int = 10000
    target_update_freq: int = 100
    min_replay_size: int = 0
    hidden_sizes: List[int] = field(default_factory=lambda: [64, 64])

    def to_agent_config(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GeneticConfig:
    """Genetic search settings."""
    population_size: int = 80
    elite_count: int = 2
    mutation_sigma: float = 0.05
    mutation_decay: float = 0.995
    generations: int = 50
    episodes_per_genome: int = 2
    episode_duration: float = 60.0
    seed: int = 1234
    init_noise: float = 0.02
    continue_noise: float = 0.05
    output_dir: str = "models"
    continue_from: Optional[str] = None
    num_workers: int = 1
    failed_fitness: float = -1e9


@dataclass
class EvolutionSection:
    """Evolutionary DQN population settings."""
    population_size: int = 10
    survivors: int = 5
    episodes_per_generation: int = 10
    episode_duration: float = 8.0
    generations: int = 50
    clone_mutation_sigma: float = 0.0
    parallel_agents: bool = False
    max_workers: Optional[int] = None
    seed: Optional[int] = None


@dataclass
class TrainingSection:
    """Single-agent training and shared loop settings."""
    agent_type: str = "dqn"
    episodes: int = 1000
    episode_duration: float = 8.0
    tick_seconds: float = 1.0 / 60.0
    save_interval: int = 100
    checkpoint_dir: str = "models"
    log_interval: int = 10
    seed: Optional[int] = None


@dataclass
class HardwareMonitorConfig:
    """Hardware monitoring settings."""
    enabled: bool = True
    update_interval: float = 1.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_file: Optional[str] = "logs/training.log"


@dataclass
class Config:
    """Complete application configuration."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    dqn: DQNConfig = field(default_factory=DQNConfig)
    genetic: GeneticConfig = field(default_factory=GeneticConfig)
    evolution: EvolutionSection = field(default_factory=EvolutionSection)
    training: TrainingSection = field(default_factory=TrainingSection)
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)
    rewards_q_learning: RewardConfig = field(default_factory=RewardConfig.q_learning)
    hardware_monitor: HardwareMonitorConfig = field(default_factory=HardwareMonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    'network': NetworkConfig,
    'dqn': DQNConfig,
    'genetic': GeneticConfig,
    'evolution': EvolutionSection,
    'training': TrainingSection,
    'arena': ArenaConfig,
    'rewards': RewardConfig,
    'rewards_q_learning': RewardConfig,
    'hardware_monitor': HardwareMonitorConfig,
    'logging': LoggingConfig,
}


def _dict_to_dataclass(data: dict, cls: type) -> Any:
    """Convert a dictionary to a dataclass instance."""
    if not data:
        return cls()

    # Get the fields that the dataclass expects
    field_names = {f.name for f in cls.__dataclass_fields__.values()}

    # Filter to only include valid fields
    filtered_data = {k: v for k, v in data.items() if k in field_names}

    return cls(**filtered_data)


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override values taking precedence.

    Args:
        base: Base dictionary
        override: Dictionary with values to override

    Returns:
        Merged dictionary
    """
    result = deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def _find_config_file() -> Optional[Path]:
    """Look for config.yaml, then config/default.yaml."""
    project_root = Path(__file__).parent.parent.parent
    possible_paths = [
        Path("config.yaml"),
        Path("config") / "default.yaml",
        project_root / "config.yaml",
        project_root / "config" / "default.yaml",
    ]

    for path in possible_paths:
        if path.exists():
            return path
    return None


def _load_yaml_file(path: Path) -> Dict:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}

    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    return data if data else {}


def config_from_dict(data: Dict[str, Any]) -> Config:
    """
    Build a Config from nested section dictionaries.

    Keys missing from a section keep that section's default, so a partial
    rewards_q_learning section still starts from the Q-learning preset.
    """
    config = Config()
    for section, cls in _SECTIONS.items():
        if section in data:
            merged = _deep_merge(asdict(getattr(config, section)), data[section] or {})
            setattr(config, section, _dict_to_dataclass(merged, cls))
    return config


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to config file (defaults to config.yaml or config/default.yaml)
        overrides: Nested dictionary merged over the file contents

    Returns:
        Config object with all settings
    """
    path = Path(config_path) if config_path else _find_config_file()

    if path is None or not path.exists():
        logger.info("[Config] No config file found, using defaults")
        data: Dict[str, Any] = {}
    else:
        data = _load_yaml_file(path)
        logger.debug("[Config] Loaded %s", path)

    if overrides:
        data = _deep_merge(data, overrides)

    return config_from_dict(data)


def save_config(config: Config, config_path: str):
    """
    Save configuration to a YAML file.

    Args:
        config: Config object to save
        config_path: Path to save to
    """
    data = asdict(config)

    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
