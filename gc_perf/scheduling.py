"""
Fixed-delay scheduling on a single background thread.
"""

import threading
from typing import Callable, Optional

from gc_perf.utils.logger import get_logger

log = get_logger('Scheduler')


class FixedDelayTimer:
    """
    Runs a task repeatedly on one daemon thread.

    The delay is measured from the end of one run to the start of the
    next, so a slow run postpones the following one and runs never
    overlap. An exception from the task is logged and the schedule
    carries on.
    """

    def __init__(self, name: str = 'gc-perf-timer'):
        self.name = name
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._counts_lock = threading.Lock()
        self._runs = 0
        self._failures = 0

    def schedule(self, task: Callable[[], object], interval: float, initial_delay: float = 0):
        """
        Start running ``task``.

        Args:
            task: Callable run on the timer thread
            interval: Seconds between the end of a run and the next start
            initial_delay: Seconds before the first run
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must not be negative, got {initial_delay}")
        if self._thread is not None:
            raise RuntimeError(f"Timer {self.name} is already scheduled")

        self._thread = threading.Thread(
            target=self._loop, args=(task, interval, initial_delay),
            name=self.name, daemon=True
        )
        self._thread.start()

    def _loop(self, task, interval, initial_delay):
        """Main timer loop."""
        if initial_delay and self._cancelled.wait(initial_delay):
            return

        while not self._cancelled.is_set():
            failed = False
            try:
                task()
            except Exception:
                failed = True
                log.exception("Scheduled task raised; next run in {}s", interval)
            with self._counts_lock:
                self._runs += 1
                if failed:
                    self._failures += 1

            if self._cancelled.wait(interval):
                break

        log.debug("Timer {} finished after {} runs", self.name, self.runs)

    @property
    def runs(self) -> int:
        """Completed runs, including failed ones."""
        with self._counts_lock:
            return self._runs

    @property
    def failures(self) -> int:
        """Runs whose task raised."""
        with self._counts_lock:
            return self._failures

    def cancel(self):
        """Prevent further runs. A run in progress is not interrupted."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the timer thread to exit.

        Returns:
            True if the thread is gone
        """
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return thread is None
        thread.join(timeout)
        return not thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
