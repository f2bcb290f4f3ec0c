#!/usr/bin/env python3
"""
Dining Philosophers Simulator
Main entry point for the simulation system.

Seats N philosophers around a ring of N forks, runs each philosopher on its
own thread until its food is gone, and waits for all of them.
"""

import argparse
import os
import sys
import tempfile
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from models.config import ConfigurationError, SimulationConfig
from models.fork import ForkFactory, fork_factory_for
from models.philosopher import Philosopher, PhilosopherState
from models.table_state import TableState
from algorithms.ring import build_ring
from algorithms.actor import PhilosopherActor
from analysis.events import EventLog
from analysis.metrics import SimulationMetrics, format_metrics_report
from analysis.reporter import StatusReporter
from utils.config_loader import get_config_description, load_config
from utils.logger import SimulatorLogger


STOP_ALL_DONE = "All philosophers are done eating"
STOP_FAULTED = "Philosopher fault"
STOP_INTERRUPTED = "Stopped before all philosophers finished"


class ActorFaultError(RuntimeError):
    """One or more philosophers left the table because of an error."""

    def __init__(self, faults: Dict[int, BaseException]):
        self.faults = faults
        details = ", ".join(f"P{i}: {type(e).__name__}: {e}" for i, e in sorted(faults.items()))
        super().__init__(f"{len(faults)} philosopher(s) faulted ({details})")


class SimulationAborted(ActorFaultError):
    """A philosopher faulted with abort_on_fault set, so every philosopher was stopped."""

    def __init__(self, result: "SimulationResult"):
        super().__init__(result.faults)
        self.result = result


@dataclass
class SimulationResult:
    """
    Outcome of a simulation run.

    Attributes:
        final_quotas: Food left per philosopher when its thread ended
        faults: Exceptions that ended philosophers early, by seat
        states: Final state per philosopher
        event_log: Every event recorded during the run
        snapshots: Quota snapshots, one per eating event
        metrics: Metrics derived from the event log
        elapsed: Wall-clock duration in seconds
        stop_reason: Why the simulation ended
    """
    final_quotas: List[int]
    faults: Dict[int, BaseException] = field(default_factory=dict)
    states: List[PhilosopherState] = field(default_factory=list)
    event_log: EventLog = field(default_factory=EventLog)
    snapshots: List[Tuple[int, ...]] = field(default_factory=list)
    metrics: Optional[SimulationMetrics] = None
    elapsed: float = 0.0
    stop_reason: str = ""

    def succeeded(self) -> bool:
        """True if every philosopher reached DONE."""
        return not self.faults and all(s == PhilosopherState.DONE for s in self.states)


def run_simulation(
    config: SimulationConfig,
    logger: Optional[SimulatorLogger] = None,
    fork_factory: Optional[ForkFactory] = None,
    reporter: Optional[StatusReporter] = None,
    event_log: Optional[EventLog] = None,
    stop_event: Optional[threading.Event] = None
) -> SimulationResult:
    """
    Run the dining philosophers simulation.

    Steps:
    1. Validate configuration (nothing starts on error)
    2. Build the fork ring and seat the philosophers
    3. Start one thread per philosopher
    4. Join every thread (no partial results)
    5. Close the forks, compute metrics, log statistics

    Args:
        config: Simulation parameters
        logger: Logger instance (console logger if omitted)
        fork_factory: Fork constructor (derived from config.fork_backend if omitted)
        reporter: Status reporter (one logging to `logger` if omitted)
        event_log: Event log to record into
        stop_event: Event that stops every philosopher at its next pause

    Returns:
        SimulationResult once every philosopher thread has ended

    Raises:
        ConfigurationError: If the configuration is invalid
        SimulationAborted: If a philosopher faulted and config.abort_on_fault is set
    """
    config.validate()
    if logger is None:
        logger = SimulatorLogger()
    private_lock_dir = None
    if fork_factory is None:
        lock_directory = config.lock_directory
        if config.fork_backend == "file" and lock_directory is None:
            # Concurrent runs must never share lock files
            private_lock_dir = lock_directory = tempfile.mkdtemp(prefix="dining-forks-")
        fork_factory = fork_factory_for(config.fork_backend, lock_directory)
    if reporter is None:
        reporter = StatusReporter(logger)
    if event_log is None:
        event_log = EventLog()
    if stop_event is None:
        stop_event = threading.Event()

    try:
        forks, assignments = build_ring(config.philosophers, fork_factory, config.ordering)
    except Exception:
        _remove_lock_dir(private_lock_dir, logger)
        raise
    philosophers = [
        Philosopher(index=i, food_left=config.food_quota, first_fork=first, second_fork=second)
        for i, (first, second) in enumerate(assignments)
    ]
    reporter.attach(philosophers)

    actors = [
        PhilosopherActor(p, config, reporter, stop_event, event_log, logger)
        for p in philosophers
    ]
    threads = [
        threading.Thread(target=actor.run, name=f"philosopher-{actor.philosopher.index}")
        for actor in actors
    ]

    logger.log(f"\n{'='*60}")
    logger.log(f"SIMULATION START: {config.philosophers} philosophers, {config.food_quota} food each")
    logger.log(f"Ordering: {config.ordering}, forks: {config.fork_backend}")
    logger.log(f"{'='*60}\n")
    _display_seating(philosophers, logger)

    started = time.monotonic()
    try:
        for thread in threads:
            thread.start()
        try:
            for thread in threads:
                thread.join()
        except KeyboardInterrupt:
            logger.log("Interrupted - stopping all philosophers", "warning")
            stop_event.set()
            for thread in threads:
                thread.join()
            raise
    finally:
        _close_forks(forks, logger)
        _remove_lock_dir(private_lock_dir, logger)
    elapsed = time.monotonic() - started

    table = TableState(philosophers=philosophers, forks=forks)
    table.assert_mutual_exclusion("after join")
    table.assert_quotas_valid(config.food_quota, "after join")

    faults = {p.index: p.fault for p in philosophers if p.fault is not None}
    if faults:
        stop_reason = STOP_FAULTED
    elif all(p.state == PhilosopherState.DONE for p in philosophers):
        stop_reason = STOP_ALL_DONE
    else:
        stop_reason = STOP_INTERRUPTED

    result = SimulationResult(
        final_quotas=[p.food_left for p in philosophers],
        faults=faults,
        states=[p.state for p in philosophers],
        event_log=event_log,
        snapshots=list(reporter.snapshots),
        metrics=SimulationMetrics.from_event_log(event_log, len(philosophers), elapsed),
        elapsed=elapsed,
        stop_reason=stop_reason
    )

    logger.log(f"\n{'='*60}")
    logger.log(stop_reason)
    logger.log(f"{'='*60}\n")
    _display_statistics(table, result, logger)

    if faults and config.abort_on_fault:
        raise SimulationAborted(result)
    return result


def run(
    n: int,
    food_quota: int,
    logger: Optional[SimulatorLogger] = None,
    **overrides
) -> Tuple[List[int], Optional[ActorFaultError]]:
    """
    Run a simulation and report only the final quotas.

    Args:
        n: Number of philosophers (>= 2)
        food_quota: Food per philosopher (>= 0)
        logger: Logger instance
        **overrides: Any other SimulationConfig field

    Returns:
        Tuple of (final quotas by seat, error)
        - error is None when every philosopher finished, otherwise an
          ActorFaultError carrying the per-seat faults

    Raises:
        ConfigurationError: If the parameters are invalid
    """
    config = SimulationConfig().replace(philosophers=n, food_quota=food_quota, **overrides)
    try:
        result = run_simulation(config, logger=logger)
    except SimulationAborted as e:
        return e.result.final_quotas, e
    if result.faults:
        return result.final_quotas, ActorFaultError(result.faults)
    return result.final_quotas, None


def _close_forks(forks, logger: SimulatorLogger) -> None:
    """Dispose of every fork; failures are logged and skipped."""
    for fork in forks:
        try:
            fork.close()
        except OSError as e:
            logger.log(f"Could not close F{fork.index}: {e}", "warning")


def _remove_lock_dir(path: Optional[str], logger: SimulatorLogger) -> None:
    """Remove a lock directory created for a single run."""
    if path is None:
        return
    try:
        os.rmdir(path)
    except OSError as e:
        logger.log(f"Could not remove lock directory {path}: {e}", "warning")


def _display_seating(philosophers: List[Philosopher], logger: SimulatorLogger) -> None:
    """Display which forks each philosopher reaches for."""
    logger.log("Seating:", "debug")
    for p in philosophers:
        first, second = p.fork_indices
        logger.log(f"  P{p.index}: first=F{first}, second=F{second}, food={p.food_left}", "debug")


def _display_statistics(table: TableState, result: SimulationResult, logger: SimulatorLogger) -> None:
    """Display final simulation statistics."""
    logger.log("Simulation Statistics:", "debug")
    logger.log(table.display(), "debug")

    done = sum(1 for s in result.states if s == PhilosopherState.DONE)
    logger.log(f"  Philosophers done: {done}/{len(result.states)}", "debug")
    logger.log(f"  Eating events: {len(result.snapshots)}", "debug")
    logger.log(f"  Elapsed: {result.elapsed:.3f}s", "debug")

    for index, error in sorted(result.faults.items()):
        logger.log(f"  P{index} faulted: {type(error).__name__}: {error}", "error")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description='Dining Philosophers Simulator'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to a JSON configuration file'
    )
    parser.add_argument(
        '--philosophers', '-n',
        type=int,
        help='Number of philosophers (default: 15)'
    )
    parser.add_argument(
        '--food',
        type=int,
        dest='food_quota',
        help='Food each philosopher must eat (default: 50)'
    )
    parser.add_argument(
        '--max-food',
        type=int,
        dest='max_food_per_sitting',
        help='Maximum food eaten in one sitting (default: 9)'
    )
    parser.add_argument(
        '--think-time',
        type=float,
        dest='think_time_max',
        help='Maximum thinking time in seconds (default: 0.3)'
    )
    parser.add_argument(
        '--eat-time',
        type=float,
        dest='eat_time_per_unit',
        help='Eating time per unit of food in seconds (default: 0.1)'
    )
    parser.add_argument(
        '--backoff',
        type=float,
        dest='retry_backoff',
        help='Pause between attempts on a busy fork in seconds (default: 0.01)'
    )
    parser.add_argument(
        '--ordering',
        choices=['ring', 'ordered'],
        help='Fork ordering policy (default: ring)'
    )
    parser.add_argument(
        '--forks',
        choices=['memory', 'file'],
        dest='fork_backend',
        help='Fork implementation (default: memory)'
    )
    parser.add_argument(
        '--lock-dir',
        type=str,
        dest='lock_directory',
        help='Directory for lock files with --forks file (default: a fresh temporary directory per run)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible runs'
    )
    parser.add_argument(
        '--abort-on-fault',
        action='store_true',
        default=None,
        help='Stop every philosopher as soon as one of them faults'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write the log to this file'
    )
    parser.add_argument(
        '--metrics',
        action='store_true',
        help='Print the metrics report after the run'
    )
    parser.add_argument(
        '--events',
        action='store_true',
        help='Print the full event log after the run'
    )
    return parser


CONFIG_ARGS = (
    'philosophers', 'food_quota', 'max_food_per_sitting', 'think_time_max',
    'eat_time_per_unit', 'retry_backoff', 'ordering', 'fork_backend',
    'lock_directory', 'seed', 'abort_on_fault'
)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the simulator."""
    args = build_parser().parse_args(argv)
    logger = SimulatorLogger(verbose=args.verbose, log_file=args.log_file)

    try:
        config = load_config(args.config) if args.config else SimulationConfig()
        overrides = {name: getattr(args, name) for name in CONFIG_ARGS}
        config = config.replace(**{k: v for k, v in overrides.items() if v is not None})
        config.validate()
    except ConfigurationError as e:
        logger.log(f"Invalid configuration: {e}", "error")
        logger.close()
        return 1

    if args.config:
        description = get_config_description(args.config)
        if description:
            logger.log(description)

    try:
        result = run_simulation(config, logger=logger)
    except SimulationAborted as e:
        logger.log(f"Simulation aborted: {e}", "error")
        logger.close()
        return 1

    if args.events:
        logger.log(result.event_log.display())
    if args.metrics:
        logger.log(format_metrics_report(result.metrics, args.verbose, result.stop_reason))

    logger.close()
    return 0 if result.succeeded() else 1


if __name__ == '__main__':
    sys.exit(main())
