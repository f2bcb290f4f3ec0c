"""
Fork Acquisition Protocol for the Dining Philosophers Simulator.

Implements the try-then-release-on-failure protocol used by hungry
philosophers:

1. Poll the first fork with try_acquire(), sleeping a fixed backoff between
   attempts, until it is held.
2. Try the second fork exactly once.
3. If the second fork is busy, put the first fork back, back off, and start
   over from step 1.

A philosopher therefore never holds one fork while waiting for the other,
which removes the Hold and Wait condition and with it any circular wait,
whatever order the forks were assigned in.

A fork call that raises is handled like a busy fork.
"""

import threading
from typing import Optional

from models.fork import Fork
from models.philosopher import Philosopher
from analysis.events import EventLog, EventType
from utils.logger import SimulatorLogger


def take_fork(
    philosopher: Philosopher,
    fork: Fork,
    event_log: Optional[EventLog] = None,
    logger: Optional[SimulatorLogger] = None
) -> bool:
    """
    Make one non-blocking attempt on a fork.

    Args:
        philosopher: Philosopher reaching for the fork
        fork: Fork to take
        event_log: Optional event log
        logger: Optional logger

    Returns:
        True if the philosopher now holds the fork
    """
    try:
        acquired = fork.try_acquire()
    except Exception as e:
        if logger:
            logger.log(f"P{philosopher.index}: fault on F{fork.index}: {e}", "warning")
        if event_log:
            event_log.record(EventType.FORK_FAULT, philosopher.index, fork=fork.index, message=str(e))
        return False

    if acquired:
        philosopher.held.append(fork)
        if event_log:
            event_log.record(EventType.ACQUIRE, philosopher.index, fork=fork.index)
    else:
        if event_log:
            event_log.record(EventType.CONTENTION, philosopher.index, fork=fork.index)
        if logger:
            logger.log_contention(philosopher.index, fork.index)
    return acquired


def release_quietly(
    fork: Fork,
    logger: Optional[SimulatorLogger] = None,
    owner: Optional[int] = None
) -> bool:
    """
    Release a fork, logging and dropping any error.

    Args:
        fork: Fork to release
        logger: Optional logger (failures go to debug)
        owner: Seat of the philosopher letting go, for the log line

    Returns:
        True if the release raised nothing
    """
    try:
        fork.release()
    except Exception as e:
        if logger:
            who = f"P{owner}" if owner is not None else "table"
            logger.log(f"{who}: ignoring failed release of F{fork.index}: {e}", "debug")
        return False
    return True


def put_fork(
    philosopher: Philosopher,
    fork: Fork,
    logger: Optional[SimulatorLogger] = None
) -> None:
    """
    Release a fork, best effort.

    The fork leaves the philosopher's hand before it is released, so no
    snapshot ever shows two holders. Release failures are logged and dropped.
    """
    if fork in philosopher.held:
        philosopher.held.remove(fork)
    release_quietly(fork, logger, philosopher.index)


def release_all(
    philosopher: Philosopher,
    event_log: Optional[EventLog] = None,
    logger: Optional[SimulatorLogger] = None
) -> None:
    """Put down every fork the philosopher holds, last picked up first."""
    for fork in reversed(list(philosopher.held)):
        put_fork(philosopher, fork, logger)
        if event_log:
            event_log.record(EventType.RELEASE, philosopher.index, fork=fork.index)


def acquire_first(
    philosopher: Philosopher,
    backoff: float,
    stop_event: threading.Event,
    event_log: Optional[EventLog] = None,
    logger: Optional[SimulatorLogger] = None
) -> bool:
    """
    Poll the first fork until it is held.

    This is the only unbounded wait of the simulation.

    Returns:
        True once the fork is held, False if stop_event was set while waiting
    """
    while not take_fork(philosopher, philosopher.first_fork, event_log, logger):
        if stop_event.wait(backoff):
            return False
    return True


def acquire_forks(
    philosopher: Philosopher,
    backoff: float,
    stop_event: threading.Event,
    event_log: Optional[EventLog] = None,
    logger: Optional[SimulatorLogger] = None
) -> bool:
    """
    Acquire both forks of a philosopher.

    Args:
        philosopher: Hungry philosopher (holding no fork)
        backoff: Seconds to wait between attempts
        stop_event: Set to abandon the attempt
        event_log: Optional event log
        logger: Optional logger

    Returns:
        True with both forks held, or False (holding nothing) if stopped
    """
    while True:
        if not acquire_first(philosopher, backoff, stop_event, event_log, logger):
            return False

        if take_fork(philosopher, philosopher.second_fork, event_log, logger):
            return True

        # Second fork busy: give the first one back before trying again
        first = philosopher.first_fork
        put_fork(philosopher, first, logger)
        if event_log:
            event_log.record(EventType.PARTIAL_RELEASE, philosopher.index, fork=first.index)
        if logger:
            logger.log(
                f"P{philosopher.index}: F{philosopher.second_fork.index} busy, "
                f"released F{first.index}",
                "debug"
            )

        if stop_event.wait(backoff):
            return False
