"""
Garbage Collector Descriptors

Fixed table of the collectors known across interpreter configurations,
each classified as a young (minor) or full (major) collector.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from gc_perf.exceptions import CollectorConfigurationError, MalformedCollectorNameError


COLLECTOR_NAME_PREFIX = "python.gc:type=GarbageCollector,name="


class GcGeneration(Enum):
    """Semantic collection bucket."""
    YOUNG = "young"
    FULL = "full"


@dataclass(frozen=True)
class CollectorName:
    """Parsed collector identity: a domain plus ``key=value`` properties."""
    domain: str
    properties: Tuple[Tuple[str, str], ...]

    @classmethod
    def parse(cls, text: str) -> "CollectorName":
        """
        Parse ``domain:key=value,key=value``.

        Args:
            text: Identity string

        Returns:
            CollectorName

        Raises:
            MalformedCollectorNameError: If the string does not parse
        """
        if not isinstance(text, str):
            raise MalformedCollectorNameError(f"Collector name must be a string: {text!r}")

        domain, sep, props = text.partition(':')
        if not sep or not domain.strip() or not props:
            raise MalformedCollectorNameError(f"Collector name needs 'domain:key=value': {text!r}")

        properties = []
        seen = set()
        for part in props.split(','):
            key, eq, value = part.partition('=')
            key, value = key.strip(), value.strip()
            if not eq or not key or not value:
                raise MalformedCollectorNameError(f"Bad property {part!r} in collector name {text!r}")
            if key in seen:
                raise MalformedCollectorNameError(f"Duplicate property {key!r} in collector name {text!r}")
            seen.add(key)
            properties.append((key, value))

        return cls(domain=domain.strip(), properties=tuple(properties))

    @property
    def key_properties(self) -> Dict[str, str]:
        return dict(self.properties)

    @property
    def collector(self) -> str:
        """The ``name`` property, i.e. the collector as the runtime calls it."""
        return self.key_properties.get('name', '')

    def __str__(self) -> str:
        props = ','.join(f"{k}={v}" for k, v in self.properties)
        return f"{self.domain}:{props}"


@dataclass(frozen=True)
class CollectorDescriptor:
    """A known collector and the bucket its activity is summed into."""
    generation: GcGeneration
    name: CollectorName

    @classmethod
    def create(cls, generation: GcGeneration, collector: str) -> "CollectorDescriptor":
        """
        Resolve a collector identity once, at table construction.

        Raises:
            CollectorConfigurationError: If the descriptor is malformed
        """
        if not isinstance(generation, GcGeneration):
            raise CollectorConfigurationError(f"Unknown generation for {collector!r}: {generation!r}")
        if not isinstance(collector, str):
            raise MalformedCollectorNameError(f"Collector must be a string: {collector!r}")
        name = CollectorName.parse(COLLECTOR_NAME_PREFIX + collector)
        if not name.collector:
            raise MalformedCollectorNameError(f"Collector name is empty: {collector!r}")
        return cls(generation=generation, name=name)


# Young collectors
GEN0 = CollectorDescriptor.create(GcGeneration.YOUNG, "gen0")
GEN1 = CollectorDescriptor.create(GcGeneration.YOUNG, "gen1")
PYPY_MINOR = CollectorDescriptor.create(GcGeneration.YOUNG, "minor")

# Full collectors
GEN2 = CollectorDescriptor.create(GcGeneration.FULL, "gen2")
FREE_THREADED = CollectorDescriptor.create(GcGeneration.FULL, "free-threaded")
PYPY_MAJOR = CollectorDescriptor.create(GcGeneration.FULL, "major")

COLLECTORS: Tuple[CollectorDescriptor, ...] = (
    GEN0, GEN1, PYPY_MINOR,
    GEN2, FREE_THREADED, PYPY_MAJOR,
)
