"""
Event Model for the Dining Philosophers Simulator.

Defines event types for tracking what every philosopher does.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class EventType(Enum):
    """Types of events in the simulation."""
    THINK = "think"
    HUNGRY = "hungry"
    ACQUIRE = "acquire"
    CONTENTION = "contention"
    PARTIAL_RELEASE = "partial_release"
    FORK_FAULT = "fork_fault"
    EAT = "eat"
    RELEASE = "release"
    DONE = "done"
    FAULT = "fault"


@dataclass
class SimulationEvent:
    """
    Represents a single event in the simulation.

    Attributes:
        elapsed: Seconds since the simulation started
        event_type: Type of event
        philosopher: Seat of the philosopher involved
        fork: Fork involved (if applicable)
        amount: Food eaten or food left (if applicable)
        message: Human-readable description
    """
    elapsed: float
    event_type: EventType
    philosopher: int
    fork: Optional[int] = None
    amount: Optional[int] = None
    message: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"[{self.elapsed:8.3f}s] P{self.philosopher}"

        if self.event_type == EventType.ACQUIRE:
            return f"{base} picks up F{self.fork}"
        elif self.event_type == EventType.CONTENTION:
            return f"{base} finds F{self.fork} busy"
        elif self.event_type == EventType.PARTIAL_RELEASE:
            return f"{base} puts F{self.fork} back (second fork busy)"
        elif self.event_type == EventType.RELEASE:
            return f"{base} puts down F{self.fork}"
        elif self.event_type == EventType.EAT:
            return f"{base} eats {self.amount} ({self.message})"
        elif self.event_type == EventType.DONE:
            return f"{base} - DONE"
        elif self.event_type in (EventType.FAULT, EventType.FORK_FAULT):
            return f"{base} - {self.event_type.value.upper()} ({self.message})"
        else:
            return f"{base} - {self.event_type.value}"


@dataclass
class EventLog:
    """Collection of simulation events, shared by all philosopher threads."""
    events: List[SimulationEvent] = field(default_factory=list)

    def __post_init__(self):
        self._lock = threading.Lock()
        self._started = time.monotonic()

    def record(
        self,
        event_type: EventType,
        philosopher: int,
        fork: Optional[int] = None,
        amount: Optional[int] = None,
        message: str = ""
    ) -> SimulationEvent:
        """Create an event stamped with the current elapsed time and add it."""
        event = SimulationEvent(
            elapsed=time.monotonic() - self._started,
            event_type=event_type,
            philosopher=philosopher,
            fork=fork,
            amount=amount,
            message=message
        )
        self.add(event)
        return event

    def add(self, event: SimulationEvent) -> None:
        """Add an event to the log."""
        with self._lock:
            self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        with self._lock:
            return [e for e in self.events if e.event_type == event_type]

    def get_events_by_philosopher(self, philosopher: int) -> list:
        """Get all events of one philosopher, in the order they happened."""
        with self._lock:
            return [e for e in self.events if e.philosopher == philosopher]

    def count(self, event_type: EventType, philosopher: Optional[int] = None) -> int:
        """Count events of a type, optionally for one philosopher."""
        return sum(
            1 for e in self.get_events_by_type(event_type)
            if philosopher is None or e.philosopher == philosopher
        )

    def display(self) -> str:
        """Format all events for display."""
        with self._lock:
            return "\n".join(str(event) for event in self.events)
