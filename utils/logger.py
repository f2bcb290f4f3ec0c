"""
Logger utility for the Dining Philosophers Simulator.

Provides leveled logging that is safe to call from every philosopher thread.
"""

import threading
from typing import Optional, Sequence
from datetime import datetime


class SimulatorLogger:
    """
    Logger for simulation events and status lines.

    Status line format: "0 [50] 1 [47] 2 [50] ..."
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, quiet: bool = False):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            quiet: Suppress console output (file output is kept)
        """
        self.verbose = verbose
        self.quiet = quiet
        self.log_file = log_file
        self.file_handle = None
        self._lock = threading.Lock()

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Simulation Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        with self._lock:
            if not self.quiet:
                print(formatted, flush=True)

            if self.file_handle:
                self.file_handle.write(formatted + "\n")
                self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {threading.current_thread().name}: {message}"
        else:
            return message

    def log_snapshot(self, quotas: Sequence[int]) -> None:
        """
        Log the food left by every philosopher.

        Args:
            quotas: Food left, indexed by philosopher
        """
        self.log(" ".join(f"{i} [{food}]" for i, food in enumerate(quotas)))

    def log_contention(self, index: int, fork_index: int) -> None:
        """Log a failed attempt on a busy fork (debug only)."""
        self.log(f"P{index}: F{fork_index} busy", "debug")

    def log_fault(self, index: int, error: BaseException) -> None:
        """
        Log a philosopher leaving the table because of an error.

        Args:
            index: Philosopher seat
            error: Exception that ended it
        """
        self.log(f"P{index} FAULTED - {type(error).__name__}: {error}", "error")

    def close(self) -> None:
        """Close log file if open."""
        with self._lock:
            if self.file_handle:
                self.file_handle.close()
                self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
