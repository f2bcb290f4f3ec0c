"""
Table State model for the Dining Philosophers Simulator.

Builds matrix views of who holds which fork so invariants can be checked
on a snapshot of the table.
"""

import numpy as np
from typing import List
from dataclasses import dataclass, field

from models.fork import Fork
from models.philosopher import Philosopher, PhilosopherState


@dataclass
class TableState:
    """
    Snapshot view over the philosophers and forks of one simulation.

    Attributes:
        philosophers: All philosophers, in seat order
        forks: All forks, in index order
        holding_matrix: [P][F] 1 where philosopher P holds fork F
        quota_vector: [P] food left per philosopher

    Matrices are built from the live objects on first access; call
    refresh() to rebuild them.
    """
    philosophers: List[Philosopher] = field(default_factory=list)
    forks: List[Fork] = field(default_factory=list)

    def __post_init__(self):
        self._holding_matrix = None
        self._quota_vector = None

    @property
    def num_philosophers(self) -> int:
        return len(self.philosophers)

    @property
    def num_forks(self) -> int:
        return len(self.forks)

    @property
    def holding_matrix(self) -> np.ndarray:
        """Get holding matrix [P][F]."""
        if self._holding_matrix is None:
            self._build_holding_matrix()
        return self._holding_matrix

    @property
    def quota_vector(self) -> np.ndarray:
        """Get remaining food vector [P]."""
        if self._quota_vector is None:
            self._quota_vector = np.array([p.food_left for p in self.philosophers], dtype=int)
        return self._quota_vector

    def _build_holding_matrix(self) -> None:
        self._holding_matrix = np.zeros((self.num_philosophers, self.num_forks), dtype=int)
        for i, philosopher in enumerate(self.philosophers):
            for fork in list(philosopher.held):
                self._holding_matrix[i][fork.index] += 1

    def refresh(self) -> None:
        """Drop cached matrices so the next access rebuilds them."""
        self._holding_matrix = None
        self._quota_vector = None

    def holders_of(self, fork_index: int) -> List[int]:
        """Indices of philosophers currently holding a fork."""
        return [int(i) for i in np.flatnonzero(self.holding_matrix[:, fork_index])]

    def assert_mutual_exclusion(self, context: str = "") -> None:
        """Verify every fork has at most one holder.

        Raises:
            AssertionError: If a fork is held by more than one philosopher
        """
        per_fork = self.holding_matrix.sum(axis=0)
        for f_idx, holders in enumerate(per_fork):
            assert holders <= 1, (
                f"Mutual exclusion violated for fork {f_idx} {context}\n"
                f"  Holders: {self.holders_of(f_idx)}"
            )

    def assert_two_fork_eating(self, context: str = "") -> None:
        """Verify every eating philosopher holds exactly its two forks.

        Raises:
            AssertionError: If an eating philosopher holds fewer than two forks
        """
        held_counts = self.holding_matrix.sum(axis=1)
        for i, philosopher in enumerate(self.philosophers):
            if philosopher.state == PhilosopherState.EATING:
                assert held_counts[i] == 2, (
                    f"Philosopher {philosopher.index} is eating with "
                    f"{held_counts[i]} fork(s) {context}"
                )

    def assert_quotas_valid(self, initial_quota: int, context: str = "") -> None:
        """Verify 0 <= food_left <= initial quota for every philosopher."""
        quotas = self.quota_vector
        assert np.all(quotas >= 0), f"Negative food left {context}: {quotas.tolist()}"
        assert np.all(quotas <= initial_quota), (
            f"Food left above the initial quota {context}: {quotas.tolist()}"
        )

    def display(self) -> str:
        """
        Generate readable string representation of the table.

        Returns:
            Formatted string with states, quotas and the holding matrix
        """
        output = []
        output.append("\n" + "="*60)
        output.append("TABLE STATE")
        output.append("="*60)

        output.append("\nPhilosophers:")
        for philosopher in self.philosophers:
            output.append(
                f"  P{philosopher.index}: {philosopher.state.value:9} "
                f"food_left={philosopher.food_left:3} meals={philosopher.meals}"
            )

        output.append("\nHolding Matrix:")
        output.append("       " + " ".join([f"F{j:2}" for j in range(self.num_forks)]))
        for i, philosopher in enumerate(self.philosophers):
            row = f"  P{philosopher.index:2}: "
            row += " ".join([f"{self.holding_matrix[i][j]:3}" for j in range(self.num_forks)])
            output.append(row)

        output.append("\n" + "="*60)
        return "\n".join(output)
