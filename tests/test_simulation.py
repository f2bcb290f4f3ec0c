"""
Simulation Tests

Runs whole tables of philosophers and checks liveness, exclusion between
neighbours, quota bookkeeping and fault isolation.
"""

import os
import sys
import threading
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import algorithms.actor as actor_module
import simulator as simulator_module
from simulator import (
    ActorFaultError, SimulationAborted, STOP_ALL_DONE, STOP_FAULTED,
    STOP_INTERRUPTED, main, run, run_simulation
)
from models.config import ConfigurationError
from models.fork import InMemoryFork
from models.philosopher import PhilosopherState
from algorithms.actor import PhilosopherActor
from analysis.events import EventType
from analysis.reporter import StatusReporter
from utils.logger import SimulatorLogger
from fork_doubles import AlwaysBusyFork, FlakyFork, fast_config


LIVENESS_TIMEOUT = 60.0


def quiet_logger():
    return SimulatorLogger(quiet=True)


def run_with_timeout(config, **kwargs):
    """Run a simulation on a helper thread and fail if it does not finish."""
    outcome = {}

    def target():
        try:
            outcome["result"] = run_simulation(config, logger=quiet_logger(), **kwargs)
        except Exception as e:
            outcome["error"] = e

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join(LIVENESS_TIMEOUT)
    assert not thread.is_alive(), f"Simulation did not finish within {LIVENESS_TIMEOUT}s"
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def test_two_philosophers_one_bite_each():
    """N=2, quota=1, one unit per sitting: exactly one meal each."""
    print("\n" + "="*60)
    print("TEST 1: Two Philosophers, One Bite Each")
    print("="*60)

    config = fast_config(philosophers=2, food_quota=1, max_food_per_sitting=1)
    result = run_with_timeout(config)

    assert result.final_quotas == [0, 0]
    assert result.stop_reason == STOP_ALL_DONE
    assert result.succeeded()
    assert len(result.snapshots) == 2
    assert result.event_log.count(EventType.EAT, 0) == 1
    assert result.event_log.count(EventType.EAT, 1) == 1
    assert result.snapshots[-1] == (0, 0)
    print(f"  Snapshots: {result.snapshots}")
    print("  ✓ Each philosopher ate once")


def test_five_philosophers_fifty_food_finish():
    """N=5, quota=50: every philosopher finishes, nobody goes below zero."""
    print("\n" + "="*60)
    print("TEST 2: Liveness (N=5, quota=50)")
    print("="*60)

    config = fast_config(philosophers=5, food_quota=50, max_food_per_sitting=9)
    result = run_with_timeout(config)

    assert result.final_quotas == [0] * 5
    assert all(state == PhilosopherState.DONE for state in result.states)
    assert result.faults == {}

    for index in range(5):
        eaten = sum(e.amount for e in result.event_log.get_events_by_type(EventType.EAT)
                    if e.philosopher == index)
        assert eaten >= 50, f"P{index} ate only {eaten}"

    assert result.metrics.completed_philosophers == 5
    assert result.metrics.get_total_meals() == len(result.snapshots)
    print(f"  ✓ Finished in {result.elapsed:.3f}s with {len(result.snapshots)} meals")


def test_quotas_are_monotonic_in_snapshots():
    """Every snapshot lists all quotas, and no quota ever increases."""
    config = fast_config(philosophers=4, food_quota=20)
    result = run_with_timeout(config)

    assert result.snapshots, "At least one eating event"
    previous = (20,) * 4
    for snapshot in result.snapshots:
        assert len(snapshot) == 4
        assert all(0 <= food <= 20 for food in snapshot)
        assert all(now <= before for now, before in zip(snapshot, previous))
        previous = snapshot
    assert previous == (0, 0, 0, 0)


@pytest.mark.parametrize("ordering", ["ring", "ordered"])
def test_neighbours_never_eat_together(monkeypatch, ordering):
    """
    While a philosopher eats it holds both its forks and no neighbour eats.
    """
    print("\n" + "="*60)
    print(f"TEST 3: Mutual Exclusion ({ordering})")
    print("="*60)

    guard = threading.Lock()
    eating = {}
    violations = []
    original_eat = PhilosopherActor.eat
    original_release_all = actor_module.release_all

    def checked_eat(self):
        p = self.philosopher
        with guard:
            if len(p.held) != 2 or not all(f.is_held() for f in p.held):
                violations.append(f"P{p.index} eating with {len(p.held)} fork(s)")
            for other in eating.values():
                if set(other.fork_indices) & set(p.fork_indices):
                    violations.append(f"P{p.index} and P{other.index} eating together")
            eating[p.index] = p
        return original_eat(self)

    def checked_release_all(philosopher, *args, **kwargs):
        with guard:
            eating.pop(philosopher.index, None)
        return original_release_all(philosopher, *args, **kwargs)

    monkeypatch.setattr(PhilosopherActor, "eat", checked_eat)
    monkeypatch.setattr(actor_module, "release_all", checked_release_all)

    config = fast_config(philosophers=5, food_quota=30, ordering=ordering, think_time_max=0.0)
    result = run_with_timeout(config)

    assert violations == []
    assert result.final_quotas == [0] * 5
    print(f"  ✓ {len(result.snapshots)} meals, no overlap between neighbours")


def test_second_fork_always_busy_no_one_eats():
    """
    N=2 where fork 1 can never be taken: both philosophers keep retrying and
    nobody eats until the run is stopped.
    """
    print("\n" + "="*60)
    print("TEST 4: Fork That Never Frees")
    print("="*60)

    stop = threading.Event()
    timer = threading.Timer(0.2, stop.set)

    def factory(index):
        return AlwaysBusyFork(index) if index == 1 else InMemoryFork(index)

    config = fast_config(philosophers=2, food_quota=3)
    timer.start()
    try:
        result = run_with_timeout(config, fork_factory=factory, stop_event=stop)
    finally:
        timer.cancel()

    assert result.event_log.count(EventType.EAT) == 0
    assert result.snapshots == []
    assert result.final_quotas == [3, 3]
    assert result.stop_reason == STOP_INTERRUPTED
    assert not result.succeeded()
    assert result.event_log.count(EventType.CONTENTION) > 0
    # P0 picks up fork 0 and puts it back each time fork 1 is busy
    assert result.event_log.count(EventType.PARTIAL_RELEASE, 0) > 0
    print(f"  ✓ {result.event_log.count(EventType.CONTENTION)} busy attempts, no meals")


def test_flaky_forks_still_finish():
    """Fork faults are retried like busy forks."""
    config = fast_config(philosophers=3, food_quota=5)
    result = run_with_timeout(config, fork_factory=lambda i: FlakyFork(i, failures=2))

    assert result.succeeded()
    assert result.final_quotas == [0, 0, 0]
    assert result.event_log.count(EventType.FORK_FAULT) == 6
    assert sum(result.metrics.fork_faults.values()) == 6


def test_file_backed_forks(tmp_path):
    config = fast_config(philosophers=3, food_quota=4, fork_backend="file", lock_directory=str(tmp_path))
    result = run_with_timeout(config)

    assert result.succeeded()
    assert list(tmp_path.iterdir()) == [], "Lock files removed at teardown"


def test_file_forks_get_a_private_lock_directory(monkeypatch, tmp_path):
    """Without lock_directory every run locks in its own fresh directory."""
    created = []
    real_mkdtemp = simulator_module.tempfile.mkdtemp

    def recording_mkdtemp(*args, **kwargs):
        kwargs["dir"] = str(tmp_path)
        path = real_mkdtemp(*args, **kwargs)
        created.append(path)
        return path

    monkeypatch.setattr(simulator_module.tempfile, "mkdtemp", recording_mkdtemp)

    config = fast_config(philosophers=3, food_quota=3, fork_backend="file")
    assert config.lock_directory is None
    first = run_with_timeout(config)
    second = run_with_timeout(config)

    assert first.succeeded() and second.succeeded()
    assert len(created) == 2
    assert created[0] != created[1], "Each run has its own lock files"
    assert not any(os.path.exists(path) for path in created), "Directories removed at teardown"


def _fail_for(index):
    original = PhilosopherActor.food_amount

    def food_amount(self):
        if self.philosopher.index == index:
            raise RuntimeError("spilled the soup")
        return original(self)

    return food_amount


def test_actor_fault_is_isolated(monkeypatch):
    """A failing philosopher leaves the table; the others still finish."""
    print("\n" + "="*60)
    print("TEST 5: Fault Isolation")
    print("="*60)

    monkeypatch.setattr(PhilosopherActor, "food_amount", _fail_for(1))

    config = fast_config(philosophers=4, food_quota=6)
    result = run_with_timeout(config)

    assert list(result.faults) == [1]
    assert isinstance(result.faults[1], RuntimeError)
    assert result.states[1] == PhilosopherState.FAULTED
    assert result.final_quotas[1] == 6
    for index in (0, 2, 3):
        assert result.states[index] == PhilosopherState.DONE
        assert result.final_quotas[index] == 0
    assert result.stop_reason == STOP_FAULTED
    assert not result.succeeded()
    assert result.metrics.faulted_philosophers == 1
    print("  ✓ Only P1 faulted, its forks were freed for its neighbours")


def test_run_reports_faults_per_philosopher(monkeypatch):
    monkeypatch.setattr(PhilosopherActor, "food_amount", _fail_for(0))
    overrides = dict(fast_config().__dict__)
    overrides.pop("philosophers")
    overrides.pop("food_quota")

    quotas, error = run(3, 4, logger=quiet_logger(), **overrides)

    assert isinstance(error, ActorFaultError)
    assert list(error.faults) == [0]
    assert quotas == [4, 0, 0]


def test_abort_on_fault_stops_everyone(monkeypatch):
    monkeypatch.setattr(PhilosopherActor, "food_amount", _fail_for(0))
    config = fast_config(philosophers=3, food_quota=1000, abort_on_fault=True,
                         eat_time_per_unit=0.001)

    with pytest.raises(SimulationAborted) as excinfo:
        run_with_timeout(config)

    result = excinfo.value.result
    assert list(result.faults) == [0]
    assert result.states[0] == PhilosopherState.FAULTED
    assert all(q > 0 for q in result.final_quotas[1:]), "Others stopped early"


def test_run_returns_final_quotas():
    quotas, error = run(2, 3, logger=quiet_logger(), think_time_max=0.001,
                        eat_time_per_unit=0.0005, retry_backoff=0.0005)
    assert quotas == [0, 0]
    assert error is None


def test_zero_quota_finishes_without_eating():
    result = run_with_timeout(fast_config(philosophers=3, food_quota=0))
    assert result.succeeded()
    assert result.snapshots == []


def test_invalid_configuration_fails_before_start():
    """No fork is created and no thread started for a bad configuration."""
    created = []

    def factory(index):
        created.append(index)
        return InMemoryFork(index)

    with pytest.raises(ConfigurationError):
        run_simulation(fast_config(philosophers=1), logger=quiet_logger(), fork_factory=factory)
    with pytest.raises(ConfigurationError):
        run(5, -1, logger=quiet_logger())
    with pytest.raises(ConfigurationError):
        run(None, 5, logger=quiet_logger())
    with pytest.raises(ConfigurationError):
        run(5, None, logger=quiet_logger())
    assert created == []


def test_reporter_is_serialized():
    """Snapshots taken concurrently are complete and never interleaved."""
    reporter = StatusReporter()
    reporter.attach([type("P", (), {"food_left": i})() for i in range(6)])

    threads = [threading.Thread(target=reporter.snapshot) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert reporter.snapshots == [(0, 1, 2, 3, 4, 5)] * 20


def test_cli_main(tmp_path, capsys):
    """The command line runs a small table and prints status lines."""
    print("\n" + "="*60)
    print("TEST 6: Command Line")
    print("="*60)

    log_file = tmp_path / "run.log"
    exit_code = main([
        "-n", "3", "--food", "4", "--max-food", "2",
        "--think-time", "0.001", "--eat-time", "0.0005", "--backoff", "0.0005",
        "--seed", "1", "--metrics", "--log-file", str(log_file)
    ])
    out = capsys.readouterr().out

    assert exit_code == 0
    assert STOP_ALL_DONE in out
    assert "0 [" in out and "2 [" in out
    assert "SIMULATION METRICS" in out
    assert STOP_ALL_DONE in log_file.read_text(encoding="utf-8")


def test_cli_rejects_bad_configuration(capsys):
    assert main(["--philosophers", "1"]) == 1
    assert "Invalid configuration" in capsys.readouterr().out


def test_cli_rejects_unreadable_config_file(tmp_path, capsys):
    assert main(["--config", str(tmp_path)]) == 1
    assert "Invalid configuration" in capsys.readouterr().out

    garbled = tmp_path / "garbled.json"
    garbled.write_bytes(b"\xff\xfe")
    assert main(["--config", str(garbled)]) == 1


def test_cli_options_override_config_file(tmp_path, capsys):
    """Options left off the command line keep the file's values."""
    path = tmp_path / "table.json"
    path.write_text(
        '{"philosophers": 2, "food_quota": 2, "think_time_max": 0.001, '
        '"eat_time_per_unit": 0.0005, "retry_backoff": 0.0005, "seed": 3}',
        encoding="utf-8"
    )
    assert main(["--config", str(path), "--food", "1"]) == 0
    out = capsys.readouterr().out
    assert "2 philosophers, 1 food each" in out


def main_runner():
    """Run all simulation tests."""
    return pytest.main([__file__, "-v"])


if __name__ == '__main__':
    sys.exit(main_runner())
