"""
Status Reporter for the Dining Philosophers Simulator.

Emits one snapshot of every philosopher's remaining food per eating event.
"""

import threading
from typing import List, Optional, Sequence, Tuple

from models.philosopher import Philosopher
from utils.logger import SimulatorLogger


class StatusReporter:
    """
    Serialized producer of quota snapshots.

    Only one philosopher builds and prints a snapshot at a time. Philosophers
    call snapshot() after putting their forks down, and the reporter lock is
    never held while taking a fork.

    Attributes:
        snapshots: Every snapshot emitted so far, in emission order
    """

    def __init__(self, logger: Optional[SimulatorLogger] = None, keep: bool = True):
        self.logger = logger
        self.keep = keep
        self.snapshots: List[Tuple[int, ...]] = []
        self._philosophers: Sequence[Philosopher] = ()
        self._lock = threading.Lock()

    def attach(self, philosophers: Sequence[Philosopher]) -> None:
        """Set the table to report on."""
        with self._lock:
            self._philosophers = tuple(philosophers)

    def snapshot(self) -> Tuple[int, ...]:
        """
        Capture and emit the food left by every philosopher.

        Returns:
            Food left, indexed by philosopher
        """
        with self._lock:
            quotas = tuple(p.food_left for p in self._philosophers)
            if self.keep:
                self.snapshots.append(quotas)
            if self.logger:
                self.logger.log_snapshot(quotas)
            return quotas
