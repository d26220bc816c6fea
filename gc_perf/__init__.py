"""GC perf-counter collection and reporting."""

from .aggregator import (
    GcAggregator, dump, get_aggregator, METRIC_KEYS,
    YOUNG_GC_COUNT, YOUNG_GC_TIME, FULL_GC_COUNT, FULL_GC_TIME,
)
from .collectors import COLLECTORS, CollectorDescriptor, CollectorName, GcGeneration
from .providers import CollectorInfoProvider, CollectorStats, RuntimeGcProvider, StaticProvider
from .reporter import CycleResult, PeriodicReporter, ReporterState
from .scheduling import FixedDelayTimer
from .sinks import FalconSink, InMemorySink, LoggingSink, MetricsSink, build_sink

__version__ = "0.1.0"

__all__ = [
    'GcAggregator',
    'dump',
    'get_aggregator',
    'METRIC_KEYS',
    'YOUNG_GC_COUNT',
    'YOUNG_GC_TIME',
    'FULL_GC_COUNT',
    'FULL_GC_TIME',
    'COLLECTORS',
    'CollectorDescriptor',
    'CollectorName',
    'GcGeneration',
    'CollectorInfoProvider',
    'CollectorStats',
    'RuntimeGcProvider',
    'StaticProvider',
    'CycleResult',
    'PeriodicReporter',
    'ReporterState',
    'FixedDelayTimer',
    'FalconSink',
    'InMemorySink',
    'LoggingSink',
    'MetricsSink',
    'build_sink',
]
