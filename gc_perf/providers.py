"""
Collector Info Providers

Answer "how many collections, and how much pause time" for a single
collector identity. The aggregator only depends on the abstract
interface; ``RuntimeGcProvider`` reads the running interpreter.
"""

import gc
import platform
import sysconfig
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from gc_perf.collectors import COLLECTOR_NAME_PREFIX, CollectorName
from gc_perf.exceptions import CollectorNotFoundError
from gc_perf.utils.logger import get_logger

log = get_logger('Providers')

COLLECTOR_DOMAIN = COLLECTOR_NAME_PREFIX.split(':', 1)[0]


class CollectorStats(NamedTuple):
    """Cumulative activity of one collector."""
    count: int
    time_ms: int


class CollectorInfoProvider(ABC):
    """Looks up cumulative statistics for a collector identity."""

    @abstractmethod
    def query(self, name: CollectorName) -> CollectorStats:
        """
        Get cumulative count and time for a collector.

        Args:
            name: Collector identity

        Returns:
            CollectorStats

        Raises:
            CollectorNotFoundError: If the collector does not exist in the
                running configuration
        """
        pass

    def close(self):
        """Release runtime hooks."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def is_free_threaded() -> bool:
    """Whether this is a free-threaded (no GIL) CPython build."""
    return bool(sysconfig.get_config_var('Py_GIL_DISABLED'))


class RuntimeGcProvider(CollectorInfoProvider):
    """
    Statistics of the running CPython collector.

    Counts come from ``gc.get_stats()`` and cover the whole process.
    The interpreter does not record pause time, so it is measured with a
    ``gc.callbacks`` hook and covers collections since construction.
    """

    GENERATIONAL = {
        'gen0': (0,),
        'gen1': (1,),
        'gen2': (2,),
    }
    FREE_THREADED = {
        'free-threaded': (0, 1, 2),
    }

    def __init__(self, install_hook: bool = True):
        """
        Initialize runtime provider.

        Args:
            install_hook: Register the pause timer in ``gc.callbacks``
        """
        self.implementation = platform.python_implementation()
        self.collectors: Dict[str, Tuple[int, ...]] = {}
        if self.implementation == 'CPython' and hasattr(gc, 'get_stats'):
            self.collectors = dict(self.FREE_THREADED if is_free_threaded() else self.GENERATIONAL)

        self._pause_ns: List[int] = [0, 0, 0]
        self._started_at: Optional[int] = None
        self._hooked = False

        if install_hook and self.collectors and hasattr(gc, 'callbacks'):
            gc.callbacks.append(self._on_gc)
            self._hooked = True

        log.debug("Runtime GC provider for {} exposes {}", self.implementation,
                  sorted(self.collectors) or 'no collectors')

    def _on_gc(self, phase, info):
        # Runs inside the collector: no locks, no allocation-heavy work.
        if phase == 'start':
            self._started_at = time.perf_counter_ns()
        elif phase == 'stop' and self._started_at is not None:
            generation = info.get('generation', 2)
            if 0 <= generation < len(self._pause_ns):
                self._pause_ns[generation] += time.perf_counter_ns() - self._started_at
            self._started_at = None

    @property
    def hooked(self) -> bool:
        return self._hooked

    def query(self, name: CollectorName) -> CollectorStats:
        generations = self.collectors.get(name.collector)
        if name.domain != COLLECTOR_DOMAIN or generations is None:
            raise CollectorNotFoundError(name)

        stats = gc.get_stats()
        count = sum(stats[g]['collections'] for g in generations if g < len(stats))
        pause_ns = sum(self._pause_ns[g] for g in generations)
        return CollectorStats(count=count, time_ms=pause_ns // 1_000_000)

    def close(self):
        """Remove the pause timer from ``gc.callbacks``."""
        if not self._hooked:
            return
        try:
            gc.callbacks.remove(self._on_gc)
        except ValueError:
            log.debug("GC pause hook was already removed")
        self._hooked = False


StaticEntry = Union[Tuple[int, int], CollectorStats, BaseException]


class StaticProvider(CollectorInfoProvider):
    """
    Table-backed provider.

    Maps a collector (as in ``CollectorName.collector``) to a
    ``(count, time_ms)`` pair, or to an exception instance raised on query.
    Collectors missing from the table are reported absent.
    """

    def __init__(self, table: Optional[Mapping[str, StaticEntry]] = None):
        self.table: Dict[str, StaticEntry] = dict(table or {})
        self.queries: List[str] = []

    def query(self, name: CollectorName) -> CollectorStats:
        self.queries.append(name.collector)
        if name.collector not in self.table:
            raise CollectorNotFoundError(name)

        entry = self.table[name.collector]
        if isinstance(entry, BaseException):
            raise entry
        count, time_ms = entry
        return CollectorStats(count=count, time_ms=time_ms)
