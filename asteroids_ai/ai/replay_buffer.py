"""
Experience Replay Buffer - Stores transitions for training.

Experience replay breaks the correlation between consecutive samples,
leading to more stable and efficient learning.
"""
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

import numpy as np


ActionType = Union[int, np.ndarray]


@dataclass(frozen=True)
class Transition:
    """One step of experience: (state, action, reward, next_state, done)."""
    state: np.ndarray
    action: ActionType
    reward: float
    next_state: np.ndarray
    done: bool


@dataclass(frozen=True)
class ReplayStats:
    """Summary of the stored experiences."""
    count: int
    avg_reward: float
    min_reward: float
    max_reward: float
    episode_ends: int


def _private_copy(value) -> np.ndarray:
    return np.array(value, dtype=np.float32, copy=True)


class ReplayBuffer:
    """
    Fixed-capacity ring buffer of transitions.

    Until the buffer is full, new transitions are appended. Once full, the
    oldest slot is overwritten and the write cursor advances circularly.
    Sampling is uniform without replacement. Requests larger than the current
    occupancy are clamped to the occupancy.
    """

    def __init__(self, capacity: int = 10000, seed: Optional[int] = None):
        """
        Initialize the replay buffer.

        Args:
            capacity: Maximum number of experiences to store
            seed: Random seed for reproducible sampling
        """
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._buffer: List[Transition] = []
        self._cursor = 0
        self._rng = np.random.default_rng(seed)

    def store(
        self,
        state: np.ndarray,
        action: ActionType,
        reward: float,
        next_state: np.ndarray,
        done: bool
    ):
        """
        Add an experience, overwriting the oldest one when full.

        State, next_state and vector actions are copied so that later
        mutation by the caller cannot corrupt stored experiences.
        """
        if isinstance(action, (int, np.integer)):
            stored_action: ActionType = int(action)
        else:
            stored_action = _private_copy(action)

        transition = Transition(
            state=_private_copy(state),
            action=stored_action,
            reward=float(reward),
            next_state=_private_copy(next_state),
            done=bool(done),
        )

        if len(self._buffer) < self.capacity:
            self._buffer.append(transition)
        else:
            self._buffer[self._cursor] = transition
            self._cursor = (self._cursor + 1) % self.capacity

    # Same signature as the store used by agent interfaces elsewhere
    push = store

    def sample(self, batch_size: int) -> List[Transition]:
        """
        Sample distinct transitions uniformly at random.

        Args:
            batch_size: Number of experiences wanted (clamped to size())

        Returns:
            List of transitions in no particular order
        """
        k = min(batch_size, len(self._buffer))
        if k <= 0:
            return []
        indices = self._rng.choice(len(self._buffer), size=k, replace=False)
        return [self._buffer[i] for i in indices]

    def iter_random(self) -> Iterator[Transition]:
        """Yield every stored transition once, in uniformly random order."""
        for i in self._rng.permutation(len(self._buffer)):
            yield self._buffer[i]

    def can_sample(self, batch_size: int) -> bool:
        """Check if buffer has enough samples for a batch."""
        return len(self._buffer) >= batch_size

    is_ready = can_sample

    def size(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        """Return the current size of the buffer."""
        return len(self._buffer)

    def is_full(self) -> bool:
        return len(self._buffer) >= self.capacity

    def clear(self):
        self._buffer.clear()
        self._cursor = 0

    def transitions(self) -> List[Transition]:
        """Stored transitions ordered oldest to newest."""
        if len(self._buffer) < self.capacity:
            return list(self._buffer)
        return self._buffer[self._cursor:] + self._buffer[:self._cursor]

    def get_stats(self) -> ReplayStats:
        if not self._buffer:
            return ReplayStats(0, 0.0, 0.0, 0.0, 0)
        rewards = np.array([t.reward for t in self._buffer], dtype=np.float64)
        return ReplayStats(
            count=len(self._buffer),
            avg_reward=float(rewards.mean()),
            min_reward=float(rewards.min()),
            max_reward=float(rewards.max()),
            episode_ends=sum(1 for t in self._buffer if t.done),
        )

    def __repr__(self) -> str:
        return f"ReplayBuffer(size={len(self._buffer)}/{self.capacity})"
