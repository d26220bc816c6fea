"""
Metrics Sinks - destinations for pushed GC perf-counters.

Features:
- Open-Falcon agent push
- Log output
- In-memory recording
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import requests

from gc_perf.exceptions import ConfigurationError, SinkError
from gc_perf.utils.config import FalconConfig, ReporterConfig
from gc_perf.utils.logger import get_logger

log = get_logger('Sinks')

COUNTER_TYPES = ('COUNTER', 'GAUGE')


class MetricsSink(ABC):
    """Base class for metrics sinks."""

    @abstractmethod
    def push(self, key: str, value: int):
        """
        Deliver one value.

        Args:
            key: Perf-counter name
            value: Current value
        """
        pass

    def close(self):
        """Release resources held by the sink."""


class InMemorySink(MetricsSink):
    """Records every push; thread-safe."""

    def __init__(self):
        self.lock = threading.Lock()
        self.calls: List[Tuple[str, int]] = []

    def push(self, key: str, value: int):
        with self.lock:
            self.calls.append((key, value))

    def latest(self) -> Dict[str, int]:
        """Last value pushed for each key."""
        with self.lock:
            return dict(self.calls)

    def clear(self):
        with self.lock:
            self.calls.clear()


class LoggingSink(MetricsSink):
    """Writes each value to the log."""

    def __init__(self, level: str = 'INFO'):
        self.level = level
        self.log = get_logger('GcCounters')

    def push(self, key: str, value: int):
        self.log.log(self.level, "{} = {}", key, value)


def split_counter_key(key: str) -> Tuple[str, str]:
    """
    Split ``sys.gc.young.count.COUNTER`` into metric and counter type.

    Keys without a known type suffix are reported as gauges.
    """
    metric, _, suffix = key.rpartition('.')
    if metric and suffix in COUNTER_TYPES:
        return metric, suffix
    return key, 'GAUGE'


class FalconSink(MetricsSink):
    """Open-Falcon agent push (``/v1/push``)."""

    def __init__(self, config: Optional[FalconConfig] = None, session: Optional[requests.Session] = None):
        """
        Initialize Falcon sink.

        Args:
            config: Agent URL, endpoint, step and tags
            session: HTTP session, created when omitted
        """
        self.config = config or FalconConfig()
        self.session = session or requests.Session()

    def build_payload(self, key: str, value: int, timestamp: Optional[int] = None) -> List[Dict]:
        metric, counter_type = split_counter_key(key)
        return [{
            'endpoint': self.config.endpoint,
            'metric': metric,
            'timestamp': int(time.time()) if timestamp is None else timestamp,
            'step': self.config.step,
            'value': value,
            'counterType': counter_type,
            'tags': self.config.tags,
        }]

    def push(self, key: str, value: int):
        payload = self.build_payload(key, value)
        try:
            response = self.session.post(
                self.config.url,
                json=payload,
                timeout=self.config.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise SinkError(f"Falcon push of {key} failed: {e}") from e

    def close(self):
        self.session.close()


def build_sink(config: ReporterConfig) -> MetricsSink:
    """
    Create the sink named by ``config.sink``.

    Raises:
        ConfigurationError: For an unknown sink type
    """
    if config.sink == 'falcon':
        return FalconSink(config.falcon)
    if config.sink == 'log':
        return LoggingSink()
    if config.sink == 'memory':
        return InMemorySink()
    raise ConfigurationError(f"Unknown sink type: {config.sink!r}")
