"""
Philosopher Actor for the Dining Philosophers Simulator.

Drives one philosopher through its think -> hungry -> eat cycle until its
food is gone:

    THINKING -> HUNGRY -> EATING -> THINKING ... -> DONE

An error inside the cycle ends only this philosopher (state FAULTED).
"""

import threading
from typing import Optional

import numpy as np

from models.config import SimulationConfig
from models.philosopher import Philosopher, PhilosopherState
from algorithms.acquisition import acquire_forks, release_all
from analysis.events import EventLog, EventType
from analysis.reporter import StatusReporter
from utils.logger import SimulatorLogger


class PhilosopherActor:
    """
    State machine of one philosopher, run on its own thread.

    Returning from run() is the completion signal: the coordinator joins the
    thread that runs it.
    """

    def __init__(
        self,
        philosopher: Philosopher,
        config: SimulationConfig,
        reporter: StatusReporter,
        stop_event: threading.Event,
        event_log: Optional[EventLog] = None,
        logger: Optional[SimulatorLogger] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.philosopher = philosopher
        self.config = config
        self.reporter = reporter
        self.stop_event = stop_event
        self.event_log = event_log
        self.logger = logger
        self.rng = rng if rng is not None else np.random.default_rng(config.seed_for(philosopher.index))

    def run(self) -> None:
        """Thread entry point."""
        try:
            self._dine()
        except Exception as e:
            self._fault(e)
        finally:
            # Nothing stays on the table after this philosopher leaves
            release_all(self.philosopher, self.event_log, self.logger)

    def _dine(self) -> None:
        p = self.philosopher
        while p.is_hungry():
            if not self.think():
                return
            if not self.acquire():
                return
            self.eat()

        p.state = PhilosopherState.DONE
        self._record(EventType.DONE)
        self._debug("done eating")

    def think(self) -> bool:
        """
        Think for a random time.

        Returns:
            False if the simulation was stopped meanwhile
        """
        self.philosopher.state = PhilosopherState.THINKING
        self._record(EventType.THINK)
        return not self.stop_event.wait(self.thinking_time())

    def acquire(self) -> bool:
        """
        Become hungry and wait for both forks.

        Returns:
            False if the simulation was stopped before both forks were held
        """
        self.philosopher.state = PhilosopherState.HUNGRY
        self._record(EventType.HUNGRY)
        return acquire_forks(
            self.philosopher,
            self.config.retry_backoff,
            self.stop_event,
            self.event_log,
            self.logger
        )

    def eat(self) -> int:
        """
        Eat a random amount of food with both forks held, then put them down
        and report the table.

        Returns:
            Food eaten in this sitting
        """
        p = self.philosopher
        p.state = PhilosopherState.EATING
        amount = self.food_amount()
        food_left = p.eat(amount)
        self._record(EventType.EAT, amount=amount, message=f"{food_left} left")

        self.stop_event.wait(amount * self.config.eat_time_per_unit)

        # Leave EATING before the forks go down
        p.state = PhilosopherState.THINKING
        release_all(p, self.event_log, self.logger)
        self.reporter.snapshot()
        return amount

    def thinking_time(self) -> float:
        """Seconds to think, uniform in [0, think_time_max)."""
        return float(self.rng.uniform(0.0, self.config.think_time_max))

    def food_amount(self) -> int:
        """Food eaten in one sitting, uniform in [1, max_food_per_sitting]."""
        return int(self.rng.integers(1, self.config.max_food_per_sitting + 1))

    def _fault(self, error: Exception) -> None:
        p = self.philosopher
        p.fault = error
        p.state = PhilosopherState.FAULTED
        self._record(EventType.FAULT, message=f"{type(error).__name__}: {error}")
        if self.logger:
            self.logger.log_fault(p.index, error)
        if self.config.abort_on_fault:
            self.stop_event.set()

    def _record(self, event_type: EventType, **kwargs) -> None:
        if self.event_log:
            self.event_log.record(event_type, self.philosopher.index, **kwargs)

    def _debug(self, message: str) -> None:
        if self.logger:
            self.logger.log(f"P{self.philosopher.index}: {message}", "debug")
