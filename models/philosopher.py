"""
Philosopher model for the Dining Philosophers Simulator.

Represents one seat at the table: its food quota, its two forks and the
state of its think/acquire/eat cycle.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.fork import Fork


class PhilosopherState(Enum):
    """Philosopher states in the simulation."""
    THINKING = "THINKING"
    HUNGRY = "HUNGRY"
    EATING = "EATING"
    DONE = "DONE"
    FAULTED = "FAULTED"


@dataclass(eq=False)
class Philosopher:
    """
    A philosopher at the table.

    Attributes:
        index: Seat number (unique, 0..N-1)
        food_left: Food still to eat (never negative, never increases)
        first_fork: Fork tried first when hungry
        second_fork: Fork tried once the first one is held
        state: Current state
        meals: Number of completed eating events
        fault: Exception that ended this philosopher early, if any

    Only the philosopher's own actor writes food_left, so it needs no lock.
    Philosophers compare by identity: each object is one seat.
    """
    index: int
    food_left: int
    first_fork: Fork
    second_fork: Fork
    state: PhilosopherState = PhilosopherState.THINKING
    meals: int = 0
    fault: Optional[BaseException] = None
    held: List[Fork] = field(default_factory=list)

    def __post_init__(self):
        """Validate construction."""
        if self.index < 0:
            raise ValueError(f"Philosopher index cannot be negative (got {self.index})")
        if self.food_left < 0:
            raise ValueError(f"Philosopher {self.index}: food_left cannot be negative")
        if self.first_fork is self.second_fork:
            raise ValueError(
                f"Philosopher {self.index}: first and second fork must be different "
                f"(both are fork {self.first_fork.index})"
            )

    def eat(self, amount: int) -> int:
        """
        Consume food.

        Args:
            amount: Food eaten in this sitting (positive)

        Returns:
            Food left after eating (floored at 0)

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError(f"Philosopher {self.index}: eaten amount must be positive")
        self.food_left = max(0, self.food_left - amount)
        self.meals += 1
        return self.food_left

    def is_hungry(self) -> bool:
        """True while some food is left."""
        return self.food_left > 0

    def is_finished(self) -> bool:
        """
        Check if the philosopher has left the table.

        Returns:
            True if state is DONE or FAULTED
        """
        return self.state in (PhilosopherState.DONE, PhilosopherState.FAULTED)

    @property
    def fork_indices(self) -> tuple:
        """(first, second) fork indices."""
        return self.first_fork.index, self.second_fork.index

    def __repr__(self) -> str:
        return (
            f"Philosopher(index={self.index}, state={self.state.value}, "
            f"food_left={self.food_left}, forks={self.fork_indices})"
        )
