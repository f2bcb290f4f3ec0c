"""
Metrics Tracking for the Dining Philosophers Simulator.

Derives per-philosopher performance metrics from the event log of a run.
"""

from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from analysis.events import EventLog, EventType


@dataclass
class SimulationMetrics:
    """
    Metrics for a single simulation run.

    Tracks:
    1. Meals and food eaten per philosopher
    2. Contention: busy-fork attempts and partial releases per philosopher
    3. Waiting time: seconds between becoming hungry and starting to eat
    4. Throughput: meals per second over the whole run
    5. Fairness: Jain's index over meals per philosopher (1.0 = perfectly even)
    """
    total_philosophers: int = 0
    completed_philosophers: int = 0
    faulted_philosophers: int = 0
    elapsed: float = 0.0

    meals: Dict[int, int] = field(default_factory=dict)
    food_eaten: Dict[int, int] = field(default_factory=dict)
    contention_counts: Dict[int, int] = field(default_factory=dict)
    partial_releases: Dict[int, int] = field(default_factory=dict)
    fork_faults: Dict[int, int] = field(default_factory=dict)
    waiting_times: Dict[int, List[float]] = field(default_factory=dict)

    @classmethod
    def from_event_log(cls, event_log: EventLog, total_philosophers: int, elapsed: float) -> "SimulationMetrics":
        """
        Build metrics from the events of a finished run.

        Args:
            event_log: Events recorded by all philosophers
            total_philosophers: Number of philosophers at the table
            elapsed: Wall-clock duration of the run in seconds

        Returns:
            Populated SimulationMetrics
        """
        metrics = cls(total_philosophers=total_philosophers, elapsed=elapsed)
        for index in range(total_philosophers):
            metrics.meals[index] = 0
            metrics.food_eaten[index] = 0
            metrics.contention_counts[index] = 0
            metrics.partial_releases[index] = 0
            metrics.fork_faults[index] = 0
            metrics.waiting_times[index] = []

            hungry_since = None
            for event in event_log.get_events_by_philosopher(index):
                if event.event_type == EventType.HUNGRY:
                    hungry_since = event.elapsed
                elif event.event_type == EventType.EAT:
                    metrics.meals[index] += 1
                    metrics.food_eaten[index] += event.amount or 0
                    if hungry_since is not None:
                        metrics.waiting_times[index].append(event.elapsed - hungry_since)
                        hungry_since = None
                elif event.event_type == EventType.CONTENTION:
                    metrics.contention_counts[index] += 1
                elif event.event_type == EventType.PARTIAL_RELEASE:
                    metrics.partial_releases[index] += 1
                elif event.event_type == EventType.FORK_FAULT:
                    metrics.fork_faults[index] += 1
                elif event.event_type == EventType.DONE:
                    metrics.completed_philosophers += 1
                elif event.event_type == EventType.FAULT:
                    metrics.faulted_philosophers += 1
        return metrics

    def get_total_meals(self) -> int:
        return sum(self.meals.values())

    def get_avg_waiting_time(self) -> float:
        """Average seconds a hungry philosopher waited for both forks."""
        samples = [w for waits in self.waiting_times.values() for w in waits]
        if not samples:
            return 0.0
        return float(np.mean(samples))

    def get_max_waiting_time(self) -> float:
        """Longest single wait for both forks, in seconds."""
        samples = [w for waits in self.waiting_times.values() for w in waits]
        if not samples:
            return 0.0
        return float(np.max(samples))

    def get_throughput(self) -> float:
        """
        Meals per second.

        Formula: Total eating events / elapsed seconds
        """
        if self.elapsed <= 0:
            return 0.0
        return self.get_total_meals() / self.elapsed

    def get_fairness(self) -> float:
        """
        Jain's fairness index over meals per philosopher.

        Formula: (SUM x)^2 / (n * SUM x^2)
        """
        counts = np.array(list(self.meals.values()), dtype=float)
        if counts.size == 0 or not np.any(counts):
            return 1.0
        return float(counts.sum() ** 2 / (counts.size * np.square(counts).sum()))


def format_metrics_report(
    metrics: SimulationMetrics,
    verbose: bool = False,
    stop_reason: str = None
) -> str:
    """
    Format metrics for display at end of simulation.

    Args:
        metrics: SimulationMetrics instance with collected data
        verbose: If True, include metric formulas
        stop_reason: Reason simulation stopped

    Returns:
        Formatted metrics report string
    """
    lines = []
    lines.append("\n" + "="*60)
    lines.append("SIMULATION METRICS")
    lines.append("="*60)

    if stop_reason:
        lines.append(f"Stop Reason: {stop_reason}")
        lines.append("")

    lines.append(f"Elapsed: {metrics.elapsed:.3f}s")
    lines.append(f"Total Philosophers: {metrics.total_philosophers}")
    lines.append(f"Done: {metrics.completed_philosophers}")
    lines.append(f"Faulted: {metrics.faulted_philosophers}")
    lines.append("")

    lines.append("KEY PERFORMANCE METRICS:")
    lines.append("-" * 60)
    lines.append(f"1. Total Meals: {metrics.get_total_meals()}")
    lines.append(f"2. Average Waiting Time: {metrics.get_avg_waiting_time():.4f}s")
    lines.append(f"   Longest Wait: {metrics.get_max_waiting_time():.4f}s")
    lines.append(f"3. Throughput: {metrics.get_throughput():.2f} meals/s")
    lines.append(f"4. Fairness (Jain): {metrics.get_fairness():.3f}")

    if metrics.meals:
        lines.append("")
        lines.append("PER-PHILOSOPHER SUMMARY:")
        lines.append("-" * 60)
        for index in sorted(metrics.meals.keys()):
            waits = metrics.waiting_times.get(index, [])
            avg_wait = float(np.mean(waits)) if waits else 0.0
            lines.append(
                f"  P{index:<2}: meals={metrics.meals[index]:3} "
                f"food={metrics.food_eaten[index]:4} | "
                f"busy={metrics.contention_counts.get(index, 0):4} "
                f"put-back={metrics.partial_releases.get(index, 0):4} "
                f"faults={metrics.fork_faults.get(index, 0):2} | "
                f"avg wait={avg_wait:.4f}s"
            )

    if verbose:
        lines.append("")
        lines.append("METRIC FORMULAS:")
        lines.append("-" * 60)
        lines.append("1. Meals: Number of eating events")
        lines.append("2. Waiting Time: Seconds from HUNGRY to EAT, averaged over all sittings")
        lines.append("3. Throughput: Total meals / elapsed seconds")
        lines.append("4. Fairness: (SUM meals)^2 / (n x SUM meals^2)")

    lines.append("="*60)
    return "\n".join(lines)
