"""
Exception hierarchy for GC perf-counter reporting.
"""


class GcPerfError(Exception):
    """Base class for all gc_perf errors."""


class CollectorConfigurationError(GcPerfError):
    """A predefined collector descriptor could not be built."""


class MalformedCollectorNameError(CollectorConfigurationError, ValueError):
    """A collector identity string does not parse."""


class CollectorNotFoundError(GcPerfError, LookupError):
    """The collector does not exist in the running interpreter."""

    def __init__(self, name):
        super().__init__(f"Collector not found: {name}")
        self.name = name


class ReporterStateError(GcPerfError, RuntimeError):
    """A reporter lifecycle call is not valid in the current state."""


class SinkError(GcPerfError):
    """A metrics sink failed to deliver a value."""


class ConfigurationError(GcPerfError, ValueError):
    """Invalid reporter configuration."""
