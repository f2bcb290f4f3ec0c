"""
Simulation configuration for the Dining Philosophers Simulator.

Holds every tunable of a run and validates it before any philosopher starts.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional


ORDERINGS = ("ring", "ordered")
FORK_BACKENDS = ("memory", "file")


class ConfigurationError(ValueError):
    """Exception raised when simulation parameters are invalid."""
    pass


@dataclass
class SimulationConfig:
    """
    Parameters of a single simulation run.

    Attributes:
        philosophers: Number of philosophers (and forks) at the table
        food_quota: Food each philosopher must eat before leaving
        max_food_per_sitting: Upper bound of food eaten in one sitting
        think_time_max: Upper bound (seconds) of a thinking pause
        eat_time_per_unit: Seconds spent eating per unit of food
        retry_backoff: Seconds between attempts on a busy first fork
        ordering: Fork ordering policy ('ring' or 'ordered')
        fork_backend: Fork implementation ('memory' or 'file')
        lock_directory: Directory holding lock files for the 'file' backend
            (None: a private directory is created for the run)
        seed: Base random seed (philosopher i uses seed + i)
        abort_on_fault: Stop every philosopher when one of them faults
    """
    philosophers: int = 15
    food_quota: int = 50
    max_food_per_sitting: int = 9
    think_time_max: float = 0.3
    eat_time_per_unit: float = 0.1
    retry_backoff: float = 0.01
    ordering: str = "ring"
    fork_backend: str = "memory"
    lock_directory: Optional[str] = None
    seed: Optional[int] = None
    abort_on_fault: bool = False

    def validate(self) -> None:
        """
        Check every parameter.

        Raises:
            ConfigurationError: If any parameter is out of range
        """
        if not isinstance(self.philosophers, int) or self.philosophers < 2:
            raise ConfigurationError(
                f"At least 2 philosophers are required (got {self.philosophers})"
            )
        if not isinstance(self.food_quota, int) or self.food_quota < 0:
            raise ConfigurationError(
                f"food_quota must be a non-negative integer (got {self.food_quota})"
            )
        if not isinstance(self.max_food_per_sitting, int) or self.max_food_per_sitting < 1:
            raise ConfigurationError(
                f"max_food_per_sitting must be a positive integer (got {self.max_food_per_sitting})"
            )
        for name in ("think_time_max", "eat_time_per_unit", "retry_backoff"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative number (got {value})")
        if self.ordering not in ORDERINGS:
            raise ConfigurationError(
                f"Unknown ordering '{self.ordering}' (expected one of {', '.join(ORDERINGS)})"
            )
        if self.fork_backend not in FORK_BACKENDS:
            raise ConfigurationError(
                f"Unknown fork backend '{self.fork_backend}' "
                f"(expected one of {', '.join(FORK_BACKENDS)})"
            )
        if self.lock_directory is not None and not isinstance(self.lock_directory, str):
            raise ConfigurationError(f"lock_directory must be a path (got {self.lock_directory!r})")

    def replace(self, **overrides) -> "SimulationConfig":
        """Return a copy with the given fields replaced."""
        unknown = set(overrides) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown configuration field(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **overrides)

    def seed_for(self, index: int) -> Optional[int]:
        """Seed of the random generator used by philosopher `index`."""
        if self.seed is None:
            return None
        return self.seed + index
