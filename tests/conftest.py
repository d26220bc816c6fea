"""
Shared fixtures: a manually advanced timer for the reporter, and
log capture for loguru.
"""

import pytest
from loguru import logger

from gc_perf.providers import StaticProvider


class FakeClock:
    """Fake monotonic clock shared by fake timers."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def timer(self):
        timer = FakeTimer(self)
        self.timers.append(timer)
        return timer

    def advance(self, seconds=0.0):
        """Move time forward, running every task that falls due."""
        self.now += seconds
        for timer in list(self.timers):
            timer.run_due()


class FakeTimer:
    """Fixed-delay timer driven by a FakeClock; tasks take no fake time."""

    def __init__(self, clock):
        self.clock = clock
        self.task = None
        self.interval = None
        self.next_due = None
        self.cancelled = False
        self.runs = 0
        self.failures = 0

    def schedule(self, task, interval, initial_delay=0):
        if self.task is not None:
            raise RuntimeError("already scheduled")
        self.task = task
        self.interval = interval
        self.next_due = self.clock.now + initial_delay

    def run_due(self):
        while self.task is not None and not self.cancelled and self.next_due <= self.clock.now:
            try:
                self.task()
            except Exception:
                self.failures += 1
            self.runs += 1
            self.next_due = self.clock.now + self.interval

    def cancel(self):
        self.cancelled = True

    def join(self, timeout=None):
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def log_messages():
    """Collect loguru output as text."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="TRACE", format="{level} {message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def provider():
    """One young and one full collector present, the rest absent."""
    return StaticProvider({
        'gen0': (3, 30),
        'gen2': (2, 20),
    })
