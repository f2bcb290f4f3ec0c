"""
Fork model for the Dining Philosophers Simulator.

A fork is an exclusive resource shared by two neighbouring philosophers.
Philosophers only ever use the non-blocking try_acquire()/release() pair,
so any mutex-like primitive can back a fork.
"""

import errno
import fcntl
import os
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from models.config import ConfigurationError


class Fork(ABC):
    """
    Lock handle for one fork.

    Attributes:
        index: Fork identifier (0..N-1)

    No owner is tracked: any caller may release a held fork, and releasing
    a free fork is allowed.
    """

    def __init__(self, index: int):
        if index < 0:
            raise ValueError(f"Fork index cannot be negative (got {index})")
        self.index = index

    @abstractmethod
    def try_acquire(self) -> bool:
        """
        Take the fork if it is free.

        Returns:
            True if the fork went from free to held, False if it was already held
        """

    @abstractmethod
    def release(self) -> None:
        """Put the fork back on the table."""

    @abstractmethod
    def is_held(self) -> bool:
        """Check whether the fork is currently held."""

    def close(self) -> None:
        """Dispose of the underlying resource at teardown."""

    def __repr__(self) -> str:
        state = "held" if self.is_held() else "free"
        return f"{type(self).__name__}(index={self.index}, {state})"


class InMemoryFork(Fork):
    """Fork backed by a threading.Lock."""

    def __init__(self, index: int):
        super().__init__(index)
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        try:
            self._lock.release()
        except RuntimeError:
            # Already free
            pass

    def is_held(self) -> bool:
        return self._lock.locked()


class FileFork(Fork):
    """
    Fork backed by an advisory lock on a file.

    Each successful acquisition opens its own descriptor on the lock file and
    takes an exclusive flock() on it, so two acquisitions from the same
    process still conflict. Releasing unlocks and closes that descriptor.

    Attributes:
        path: Lock file location
    """

    def __init__(self, index: int, directory: str, prefix: str = "fork-"):
        super().__init__(index)
        self.path = os.path.join(directory, f"{prefix}{index}.lock")
        self._fd: Optional[int] = None
        self._guard = threading.Lock()

    def try_acquire(self) -> bool:
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            if e.errno in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                return False
            raise
        with self._guard:
            self._fd = fd
        return True

    def release(self) -> None:
        with self._guard:
            fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def is_held(self) -> bool:
        with self._guard:
            return self._fd is not None

    def close(self) -> None:
        self.release()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


ForkFactory = Callable[[int], Fork]


def fork_factory_for(backend: str, directory: Optional[str] = None) -> ForkFactory:
    """
    Get the fork constructor for a backend name.

    Args:
        backend: 'memory' or 'file'
        directory: Lock file directory (required for 'file')

    Returns:
        Callable building the fork for a given index

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
    """
    if backend == "memory":
        return InMemoryFork
    if backend == "file":
        if not directory:
            raise ConfigurationError("The 'file' fork backend needs a lock directory")
        if not os.path.isdir(directory):
            raise ConfigurationError(f"Lock directory does not exist: {directory}")
        return lambda index: FileFork(index, directory)
    raise ConfigurationError(f"Unknown fork backend '{backend}'")
