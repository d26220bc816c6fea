"""
GC Perf-Counter Aggregator

Sums the activity of every known collector into young/full count and
time counters. Usage from a service's own perf-counter endpoint::

    from gc_perf import dump

    def get_perf_counters(self):
        counters = {...}
        return dump(counters)
"""

import threading
from typing import Dict, MutableMapping, Optional, Sequence, Tuple

from gc_perf.collectors import COLLECTORS, CollectorDescriptor, GcGeneration
from gc_perf.exceptions import CollectorNotFoundError
from gc_perf.providers import CollectorInfoProvider, RuntimeGcProvider
from gc_perf.utils.logger import get_logger

log = get_logger('Aggregator')

# Perf-counter names
YOUNG_GC_COUNT = "sys.gc.young.count.COUNTER"
YOUNG_GC_TIME = "sys.gc.young.time.COUNTER"
FULL_GC_COUNT = "sys.gc.full.count.COUNTER"
FULL_GC_TIME = "sys.gc.full.time.COUNTER"

METRIC_KEYS: Dict[Tuple[GcGeneration, str], str] = {
    (GcGeneration.YOUNG, 'count'): YOUNG_GC_COUNT,
    (GcGeneration.YOUNG, 'time'): YOUNG_GC_TIME,
    (GcGeneration.FULL, 'count'): FULL_GC_COUNT,
    (GcGeneration.FULL, 'time'): FULL_GC_TIME,
}

CounterMap = MutableMapping[str, int]


def _checked(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{field} must not be negative, got {value}")
    return value


class GcAggregator:
    """Classifies collectors into young/full and sums their counters."""

    def __init__(self, provider: CollectorInfoProvider,
                 descriptors: Sequence[CollectorDescriptor] = COLLECTORS):
        """
        Initialize aggregator.

        Args:
            provider: Source of per-collector statistics
            descriptors: Known collectors
        """
        self.provider = provider
        self.descriptors: Tuple[CollectorDescriptor, ...] = tuple(descriptors)

    def _query(self, descriptor: CollectorDescriptor) -> Tuple[int, int]:
        """Return (count, time_ms), or zeros if the collector is absent or failing."""
        try:
            stats = self.provider.query(descriptor.name)
            count, time_ms = stats
            return _checked(count, 'count'), _checked(time_ms, 'time')
        except CollectorNotFoundError:
            log.trace("Collector {} not present in this runtime", descriptor.name.collector)
        except Exception as e:
            log.opt(exception=e).debug("Query gc counters for {} failed: {}",
                                       descriptor.name.collector, e)
        return 0, 0

    def totals(self) -> Dict[str, int]:
        """Query every descriptor and return the four summed counters."""
        sums = {key: 0 for key in METRIC_KEYS.values()}
        for descriptor in self.descriptors:
            count, time_ms = self._query(descriptor)
            sums[METRIC_KEYS[(descriptor.generation, 'count')]] += count
            sums[METRIC_KEYS[(descriptor.generation, 'time')]] += time_ms
        return sums

    def dump(self, counters: CounterMap) -> CounterMap:
        """
        Get full-gc and young-gc counts and time.

        Only the four GC keys are written; every other entry in
        ``counters`` is left untouched.

        Args:
            counters: Container to store into

        Returns:
            The same container
        """
        counters.update(self.totals())
        return counters


_default_aggregator: Optional[GcAggregator] = None
_default_lock = threading.Lock()


def get_aggregator() -> GcAggregator:
    """Get the process-wide aggregator over the running interpreter."""
    global _default_aggregator
    with _default_lock:
        if _default_aggregator is None:
            _default_aggregator = GcAggregator(RuntimeGcProvider())
        return _default_aggregator


def dump(counters: Optional[CounterMap] = None) -> CounterMap:
    """
    Merge the GC counters of this process into ``counters``.

    Args:
        counters: Container to store into; a new dict when omitted

    Returns:
        The populated container
    """
    return get_aggregator().dump({} if counters is None else counters)
