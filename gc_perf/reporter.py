"""
Periodic GC Reporter

Pushes the aggregated GC counters to a metrics sink on a fixed-delay
schedule. Each reporter owns at most one background timer.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

from gc_perf.aggregator import GcAggregator
from gc_perf.exceptions import ReporterStateError
from gc_perf.scheduling import FixedDelayTimer
from gc_perf.sinks import MetricsSink
from gc_perf.utils.logger import get_logger

log = get_logger('Reporter')


class ReporterState(Enum):
    """Reporter lifecycle. STOPPED is terminal."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class CycleResult:
    """Outcome of one reporting cycle."""
    pushed: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    @property
    def partial(self) -> bool:
        """Some values reached the sink, some did not."""
        return self.pushed > 0 and bool(self.failed)


class PeriodicReporter:
    """
    Recurring push of GC perf-counters.

    Example::

        reporter = PeriodicReporter(get_aggregator(), FalconSink(config.falcon))
        reporter.start(60)
        ...
        reporter.stop()
    """

    def __init__(self, aggregator: GcAggregator, sink: MetricsSink,
                 timer_factory: Callable[[], FixedDelayTimer] = FixedDelayTimer):
        """
        Initialize reporter.

        Args:
            aggregator: Produces the counters for each cycle
            sink: Receives every (key, value) pair
            timer_factory: Builds the background timer on start
        """
        self.aggregator = aggregator
        self.sink = sink
        self.timer_factory = timer_factory

        self.lock = threading.Lock()
        self._state = ReporterState.NOT_STARTED
        self._timer: Optional[FixedDelayTimer] = None
        self._cycle_thread: Optional[int] = None
        self._interval: Optional[int] = None
        self._cycles = 0
        self._last_result: Optional[CycleResult] = None

    @property
    def state(self) -> ReporterState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ReporterState.RUNNING

    @property
    def interval(self) -> Optional[int]:
        return self._interval

    @property
    def cycles(self) -> int:
        """Number of completed reporting cycles."""
        return self._cycles

    @property
    def last_result(self) -> Optional[CycleResult]:
        return self._last_result

    def start(self, interval: int):
        """
        Start reporting now and then every ``interval`` seconds.

        Args:
            interval: Seconds between the end of one cycle and the next

        Raises:
            ReporterStateError: If already running, or stopped
        """
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise TypeError(f"interval must be an int, got {type(interval).__name__}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        with self.lock:
            if self._state is ReporterState.RUNNING:
                raise ReporterStateError("GC reporter is already running")
            if self._state is ReporterState.STOPPED:
                raise ReporterStateError("GC reporter was stopped; create a new reporter to restart")

            timer = self.timer_factory()
            timer.schedule(self._scheduled_cycle, interval)
            self._timer = timer
            self._interval = interval
            self._state = ReporterState.RUNNING

        log.info("GC reporter started, interval {}s, sink {}", interval, type(self.sink).__name__)

    def stop(self, timeout: Optional[float] = 5.0):
        """
        Stop scheduling further cycles.

        A cycle already in progress finishes. Calling stop again is a no-op.

        Args:
            timeout: Seconds to wait for the worker to exit; None waits forever
        """
        with self.lock:
            if self._state is ReporterState.STOPPED:
                return
            self._state = ReporterState.STOPPED
            timer = self._timer

        if timer is not None:
            timer.cancel()
            # Stopped from inside a cycle: the worker exits once it returns.
            if threading.get_ident() != self._cycle_thread and not timer.join(timeout):
                log.warning("GC reporter worker still busy after stop")

        log.info("GC reporter stopped after {} cycles", self._cycles)

    def _scheduled_cycle(self):
        if self._state is ReporterState.STOPPED:
            return
        self._cycle_thread = threading.get_ident()
        self.run_cycle()

    def run_cycle(self) -> CycleResult:
        """
        Dump a fresh counter map and push each entry to the sink.

        Never raises: aggregation and sink errors are captured in the result.

        Returns:
            CycleResult
        """
        result = CycleResult()
        counters = {}
        try:
            self.aggregator.dump(counters)
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            log.opt(exception=e).error("GC counter aggregation failed: {}", e)
            return self._record(result)

        for key, value in counters.items():
            try:
                self.sink.push(key, value)
                result.pushed += 1
            except Exception as e:
                result.failed.append((key, f"{type(e).__name__}: {e}"))

        if result.failed:
            log.warning("Pushed {}/{} GC counters; failures: {}",
                        result.pushed, len(counters), result.failed)
        return self._record(result)

    def _record(self, result: CycleResult) -> CycleResult:
        with self.lock:
            self._last_result = result
            self._cycles += 1
        return result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
