"""
Tests for young/full GC aggregation.
"""

import itertools
import threading

import pytest

from gc_perf import aggregator as aggregator_module
from gc_perf.aggregator import (
    FULL_GC_COUNT, FULL_GC_TIME, METRIC_KEYS, YOUNG_GC_COUNT, YOUNG_GC_TIME, GcAggregator, dump,
)
from gc_perf.collectors import COLLECTORS
from gc_perf.providers import StaticProvider


class TestMetricKeys:
    """Test the published counter names."""

    def test_names(self):
        """Test names are the exact published strings."""
        assert YOUNG_GC_COUNT == "sys.gc.young.count.COUNTER"
        assert YOUNG_GC_TIME == "sys.gc.young.time.COUNTER"
        assert FULL_GC_COUNT == "sys.gc.full.count.COUNTER"
        assert FULL_GC_TIME == "sys.gc.full.time.COUNTER"
        assert len(set(METRIC_KEYS.values())) == 4


class TestGcAggregator:
    """Test aggregator dump."""

    def test_sums_per_generation(self, provider):
        """Test one young and one full collector with the rest absent."""
        counters = GcAggregator(provider).dump({})

        assert counters == {
            YOUNG_GC_COUNT: 3,
            YOUNG_GC_TIME: 30,
            FULL_GC_COUNT: 2,
            FULL_GC_TIME: 20,
        }

    def test_queries_every_descriptor(self, provider):
        """Test all six collectors are asked once."""
        GcAggregator(provider).dump({})
        assert sorted(provider.queries) == sorted(d.name.collector for d in COLLECTORS)

    def test_failure_does_not_abort(self):
        """Test a failing young collector contributes zero and others still count."""
        provider = StaticProvider({
            'gen0': RuntimeError("stale handle"),
            'gen1': (5, 50),
        })
        counters = GcAggregator(provider).dump({})

        assert counters[YOUNG_GC_COUNT] == 5
        assert counters[YOUNG_GC_TIME] == 50
        assert counters[FULL_GC_COUNT] == 0
        assert counters[FULL_GC_TIME] == 0

    def test_all_absent_is_zero(self):
        """Test a runtime with no known collectors reports zeros."""
        counters = GcAggregator(StaticProvider()).dump({})
        assert counters == {key: 0 for key in METRIC_KEYS.values()}

    def test_preserves_unrelated_keys(self, provider):
        """Test existing entries survive and GC keys are overwritten."""
        counters = {'thrift.calls.COUNTER': 17, YOUNG_GC_COUNT: -1, 'latency': 4}
        result = GcAggregator(provider).dump(counters)

        assert result is counters
        assert result['thrift.calls.COUNTER'] == 17
        assert result['latency'] == 4
        assert result[YOUNG_GC_COUNT] == 3
        assert set(result) == {'thrift.calls.COUNTER', 'latency'} | set(METRIC_KEYS.values())

    @pytest.mark.parametrize("bad", [(-1, 10), (1, -10), ("3", 30), (1.5, 2), (True, 1), (1, 2, 3)])
    def test_invalid_values_contribute_zero(self, bad):
        """Test negative or non-integer provider values count as failures."""
        provider = StaticProvider({'gen0': (1, 1), 'gen1': bad})
        counters = GcAggregator(provider).dump({})

        assert counters[YOUNG_GC_COUNT] == 1
        assert counters[YOUNG_GC_TIME] == 1
        assert all(value >= 0 for value in counters.values())

    def test_order_independent(self):
        """Test every iteration order over descriptors gives the same totals."""
        provider = StaticProvider({
            'gen0': (7, 70), 'gen1': (3, 9), 'minor': (1, 2),
            'gen2': (2, 200), 'free-threaded': KeyError('x'), 'major': (4, 44),
        })
        expected = GcAggregator(provider).dump({})
        assert expected[YOUNG_GC_COUNT] == 11
        assert expected[FULL_GC_TIME] == 244

        for order in itertools.permutations(COLLECTORS):
            assert GcAggregator(provider, order).dump({}) == expected

    def test_failure_logged_at_debug(self, log_messages):
        """Test query failures are logged at a low level only."""
        provider = StaticProvider({'gen2': OSError("attribute unavailable")})
        GcAggregator(provider).dump({})

        failures = [m for m in log_messages if 'gen2' in m and 'failed' in m]
        assert failures
        assert all(m.startswith('DEBUG') for m in failures)
        assert not any(m.startswith(('WARNING', 'ERROR')) for m in log_messages)

    def test_concurrent_dumps(self, provider):
        """Test dump can be called from many threads at once."""
        gc_aggregator = GcAggregator(provider)
        results = []
        lock = threading.Lock()

        def worker():
            counters = gc_aggregator.dump({'thread': threading.get_ident()})
            with lock:
                results.append(counters)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        for counters in results:
            assert counters[YOUNG_GC_COUNT] == 3
            assert counters[FULL_GC_TIME] == 20


class TestModuleDump:
    """Test the pull helpers over the running interpreter."""

    def test_dump_new_map(self):
        """Test dump() without arguments returns the four counters."""
        counters = dump()
        assert set(counters) == set(METRIC_KEYS.values())
        assert all(isinstance(v, int) and v >= 0 for v in counters.values())

    def test_dump_merges(self):
        """Test dump merges into an existing map."""
        counters = {'other': 1}
        assert dump(counters) is counters
        assert counters['other'] == 1
        assert YOUNG_GC_COUNT in counters

    def test_default_aggregator_is_shared(self):
        """Test the default aggregator is built once."""
        assert aggregator_module.get_aggregator() is aggregator_module.get_aggregator()
