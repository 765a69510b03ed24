"""
Genome - flat parameter vector of one candidate network, plus its fitness.

Checkpoint format (little-endian):
    int32    param_count
    float32  params[param_count]   (Network canonical flatten order)
    float32  fitness
"""
import logging
import math
from pathlib import Path
from typing import Optional, Union

import numpy as np

from ..core.errors import CheckpointError

logger = logging.getLogger(__name__)

_COUNT = np.dtype("<i4")
_FLOAT = np.dtype("<f4")


class Genome:
    """Candidate solution for the genetic trainer."""

    __slots__ = ("params", "fitness")

    def __init__(self, params, fitness: float = -math.inf):
        self.params = np.array(params, dtype=np.float32, copy=True).ravel()
        self.fitness = float(fitness)

    @classmethod
    def zeros(cls, param_count: int) -> "Genome":
        return cls(np.zeros(param_count, dtype=np.float32))

    @property
    def param_count(self) -> int:
        return int(self.params.size)

    @property
    def evaluated(self) -> bool:
        return self.fitness != -math.inf

    def copy(self) -> "Genome":
        return Genome(self.params, self.fitness)

    def __repr__(self) -> str:
        return f"Genome(params={self.param_count}, fitness={self.fitness:.3f})"


def save_genome(genome: Genome, path: Union[str, Path]) -> Path:
    """
    Write a genome checkpoint, creating parent directories as needed.

    Raises:
        CheckpointError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(np.array([genome.param_count], dtype=_COUNT).tobytes())
            f.write(genome.params.astype(_FLOAT).tobytes())
            f.write(np.array([genome.fitness], dtype=_FLOAT).tobytes())
    except OSError as e:
        raise CheckpointError(f"Failed to save genome to {path}: {e}") from e
    return path


def load_genome(path: Union[str, Path], expected_param_count: Optional[int] = None) -> Genome:
    """
    Read a genome checkpoint.

    Args:
        path: Checkpoint file
        expected_param_count: If given, the stored count must match it

    Returns:
        The stored genome with its recorded fitness

    Raises:
        CheckpointError: If the file is missing, truncated, or does not fit
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CheckpointError(f"Failed to read genome from {path}: {e}") from e

    if len(data) < _COUNT.itemsize:
        raise CheckpointError(f"{path}: file too short for a parameter count")

    count = int(np.frombuffer(data, dtype=_COUNT, count=1)[0])
    if count < 0:
        raise CheckpointError(f"{path}: negative parameter count {count}")
    if expected_param_count is not None and count != expected_param_count:
        raise CheckpointError(
            f"{path}: checkpoint has {count} parameters, network expects {expected_param_count}"
        )

    expected_bytes = _COUNT.itemsize + (count + 1) * _FLOAT.itemsize
    if len(data) != expected_bytes:
        raise CheckpointError(
            f"{path}: expected {expected_bytes} bytes for {count} parameters, got {len(data)}"
        )

    values = np.frombuffer(data, dtype=_FLOAT, count=count + 1, offset=_COUNT.itemsize)
    genome = Genome(values[:count].astype(np.float32), float(values[count]))
    logger.debug("[Checkpoint] Loaded %r from %s", genome, path)
    return genome
