"""Cross-partition reduction for domain-decomposed runs.

Each solver partition holds its own replica of the reservoir and sees only
its share of the boundary faces.  Once per step the run context

1. sums the partition-local partial flows with :meth:`Reducer.allreduce_sum`
   so every replica integrates the global flow, and
2. optionally broadcasts the finished boundary value from the root
   partition, so all partitions write bit-identical profiles.

The solver's communicator is an external collaborator; :class:`SerialReducer`
covers single-process runs and :class:`LocalGroup` runs several partitions as
threads inside one process.
"""
from __future__ import annotations

import threading
from typing import List, Protocol

__all__ = ["Reducer", "SerialReducer", "LocalGroup", "LocalReducer"]


class Reducer(Protocol):
    """Collective operations over all partitions of a run."""

    rank: int
    size: int

    def allreduce_sum(self, value: float) -> float:
        """Return the sum of ``value`` over all partitions."""

    def broadcast(self, value: float, root: int = 0) -> float:
        """Return ``value`` as held by partition ``root``."""


class SerialReducer:
    """Single-partition reducer; all collectives are identities."""

    rank = 0
    size = 1

    def allreduce_sum(self, value: float) -> float:
        return float(value)

    def broadcast(self, value: float, root: int = 0) -> float:
        if root != 0:
            raise ValueError(f"root={root} is out of range for a single partition")
        return float(value)


class LocalGroup:
    """In-process group of ``size`` partitions driven from separate threads.

    Every collective is blocking: all partitions must enter it before any of
    them returns, as with a message-passing communicator.
    """

    def __init__(self, size: int, *, timeout: float | None = 30.0) -> None:
        if size < 1:
            raise ValueError("group size must be at least 1")
        self.size = int(size)
        self._barrier = threading.Barrier(self.size, timeout=timeout)
        self._slots: List[float] = [0.0] * self.size

    def reducer(self, rank: int) -> "LocalReducer":
        if not 0 <= rank < self.size:
            raise ValueError(f"rank={rank} is out of range for a group of {self.size}")
        return LocalReducer(self, rank)

    def _exchange(self, rank: int, value: float) -> List[float]:
        self._slots[rank] = float(value)
        self._barrier.wait()
        snapshot = list(self._slots)
        # keep slots stable until every partition has read them
        self._barrier.wait()
        return snapshot


class LocalReducer:
    """:class:`Reducer` bound to one rank of a :class:`LocalGroup`."""

    def __init__(self, group: LocalGroup, rank: int) -> None:
        self._group = group
        self.rank = rank
        self.size = group.size

    def allreduce_sum(self, value: float) -> float:
        return float(sum(self._group._exchange(self.rank, value)))

    def broadcast(self, value: float, root: int = 0) -> float:
        if not 0 <= root < self.size:
            raise ValueError(f"root={root} is out of range for a group of {self.size}")
        return self._group._exchange(self.rank, value)[root]
