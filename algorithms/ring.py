"""
Fork Ring Builder for the Dining Philosophers Simulator.

Creates the forks of the table and assigns each philosopher its two
neighbouring forks, in the order it will try to pick them up.
"""

from typing import List, Tuple

from models.config import ConfigurationError, ORDERINGS
from models.fork import Fork, ForkFactory


def ring_assignment(n: int, ordering: str = "ring") -> List[Tuple[int, int]]:
    """
    Compute (first fork, second fork) indices for every philosopher.

    Fork i lies between philosopher i and philosopher (i+1) mod n, so
    philosopher i sits between forks i and (i-1) mod n.

    Orderings:
    - "ring": fork i first, then fork (i-1) mod n. Symmetric around the
      table; deadlock freedom comes from releasing the first fork when the
      second one is busy (see algorithms.acquisition).
    - "ordered": lower fork index first (resource hierarchy).

    Args:
        n: Number of philosophers (>= 2)
        ordering: Ordering policy name

    Returns:
        List indexed by philosopher of (first, second) fork indices

    Raises:
        ConfigurationError: If n < 2 or the ordering is unknown
    """
    if n < 2:
        raise ConfigurationError(f"A ring needs at least 2 philosophers (got {n})")
    if ordering not in ORDERINGS:
        raise ConfigurationError(f"Unknown ordering '{ordering}'")

    assignments = []
    for i in range(n):
        own, neighbour = i, (i - 1) % n
        if ordering == "ordered":
            assignments.append((min(own, neighbour), max(own, neighbour)))
        else:
            assignments.append((own, neighbour))
    return assignments


def build_ring(
    n: int,
    fork_factory: ForkFactory,
    ordering: str = "ring"
) -> Tuple[List[Fork], List[Tuple[Fork, Fork]]]:
    """
    Create n forks and hand two of them to each philosopher.

    Each fork object is created once and shared by reference between the
    two philosophers next to it.

    Args:
        n: Number of philosophers (>= 2)
        fork_factory: Builds the fork for a given index
        ordering: Ordering policy name (see ring_assignment)

    Returns:
        Tuple of (forks, assignments)
        - forks: All forks, in index order
        - assignments: (first_fork, second_fork) per philosopher
    """
    indices = ring_assignment(n, ordering)
    forks = [fork_factory(i) for i in range(n)]
    assignments = [(forks[first], forks[second]) for first, second in indices]
    return forks, assignments
