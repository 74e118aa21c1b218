"""Tests for the scan pipeline and scan loop."""

import pytest

from pool_arbitrage.exceptions import NetworkError, ProviderError
from pool_arbitrage.interfaces import DeterministicTimeProvider
from pool_arbitrage.providers import StaticPoolProvider
from pool_arbitrage.scanner import (
    ScanLoop,
    ScanSettings,
    rotate_to_start,
    run_scan,
    scan,
)
from pool_arbitrage.sinks import CollectingSink
from pool_arbitrage.types import Opportunity, ScanResult


class FlakyProvider:
    """Fails on the listed call numbers, serves pools otherwise."""

    def __init__(self, pools, fail_on=()):
        self.pools = pools
        self.fail_on = set(fail_on)
        self.calls = 0

    def fetch_all_pools(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise NetworkError("subgraph unreachable", endpoint="http://example")
        return list(self.pools)


class InterruptingProvider:
    def fetch_all_pools(self):
        raise KeyboardInterrupt


def test_scan_known_cycle(triangle_pools):
    result = scan(triangle_pools)

    assert isinstance(result, ScanResult)
    assert [o.path for o in result.opportunities] == [("A", "B", "C", "A")]
    assert result.opportunities[0].profit == pytest.approx(1.6)
    assert result.pool_count == 3
    assert result.token_count == 3
    assert result.edge_count == 6
    assert result.cycle_count == 1
    assert result.dropped_paths == 0
    assert result.duration_sec >= 0


def test_scan_empty_input():
    result = scan([])
    assert result.opportunities == []
    assert result.token_count == 0
    assert result.cycle_count == 0


def test_scan_arbitrage_free(balanced_pools):
    assert scan(balanced_pools).opportunities == []


def test_scan_tolerates_degenerate_pools(pool_factory, triangle_pools):
    pools = triangle_pools + [
        pool_factory("zero", ("A", 0.0), ("D", 10.0)),
        pool_factory("single", ("E", 5.0)),
    ]
    result = scan(pools)
    assert [o.path for o in result.opportunities] == [("A", "B", "C", "A")]
    assert result.token_count == 3


def test_scan_accepts_generator(triangle_pools):
    result = scan(pool for pool in triangle_pools)
    assert len(result.opportunities) == 1


def test_scan_min_profit(triangle_pools):
    assert scan(triangle_pools, ScanSettings(min_profit=1.7)).opportunities == []
    assert len(scan(triangle_pools, ScanSettings(min_profit=1.5)).opportunities) == 1


def test_scan_ignored_token_removes_loop(triangle_pools):
    result = scan(triangle_pools, ScanSettings(ignored_tokens=("C",)))
    assert result.opportunities == []
    assert result.pool_count == 1


def test_scan_start_tokens_rotate_loop(triangle_pools):
    result = scan(triangle_pools, ScanSettings(start_tokens=("C",)))
    assert [o.path for o in result.opportunities] == [("C", "A", "B", "C")]


def test_scan_start_tokens_drop_unrelated_loops(triangle_pools):
    result = scan(triangle_pools, ScanSettings(start_tokens=("Z",)))
    assert result.opportunities == []
    assert result.cycle_count == 1


def test_scan_per_source(triangle_pools):
    settings = ScanSettings(start_tokens=("B",), per_source=True)
    result = scan(triangle_pools, settings)
    assert [o.path for o in result.opportunities] == [("B", "C", "A", "B")]


def test_rotate_to_start_prefers_first_listed_token():
    opportunity = Opportunity(path=("A", "B", "C", "A"), profit=1.2)
    rotated = rotate_to_start(opportunity, ["C", "B"])
    assert rotated.path == ("C", "A", "B", "C")
    assert rotated.profit == 1.2
    assert rotate_to_start(opportunity, ["X"]) is None


def test_run_scan_emits_to_sink(triangle_pools):
    sink = CollectingSink()
    result = run_scan(StaticPoolProvider(triangle_pools), sink)

    assert sink.opportunities == result.opportunities
    assert len(sink.opportunities) == 1


def test_run_scan_wraps_provider_failure(triangle_pools):
    provider = FlakyProvider(triangle_pools, fail_on={1})
    with pytest.raises(ProviderError) as excinfo:
        run_scan(provider, CollectingSink())

    assert excinfo.value.provider == "FlakyProvider"
    assert isinstance(excinfo.value.__cause__, NetworkError)


def test_scan_loop_runs_max_scans_and_sleeps_between(triangle_pools):
    clock = DeterministicTimeProvider()
    sink = CollectingSink()
    loop = ScanLoop(
        StaticPoolProvider(triangle_pools),
        sink,
        poll_sec=5.0,
        max_scans=3,
        time_provider=clock,
    )
    loop.run()

    assert loop.scan_count == 3
    assert loop.failed_scans == 0
    assert clock.sleeps == [5.0, 5.0]
    assert len(sink.opportunities) == 3
    assert loop.opportunities_emitted == 3
    assert loop.last_result.cycle_count == 1


def test_scan_loop_survives_provider_failures(triangle_pools):
    provider = FlakyProvider(triangle_pools, fail_on={1, 3})
    sink = CollectingSink()
    loop = ScanLoop(
        provider,
        sink,
        poll_sec=1.0,
        max_scans=4,
        time_provider=DeterministicTimeProvider(),
    )
    loop.run()

    assert loop.scan_count == 4
    assert loop.failed_scans == 2
    assert len(sink.opportunities) == 2


def test_scan_loop_run_once_returns_none_on_failure(triangle_pools):
    loop = ScanLoop(FlakyProvider(triangle_pools, fail_on={1}), CollectingSink())
    assert loop.run_once() is None
    assert loop.run_once() is not None


def test_scan_loop_stop_from_sink(triangle_pools):
    class StoppingSink(CollectingSink):
        def emit(self, opportunity):
            super().emit(opportunity)
            loop.stop()

    clock = DeterministicTimeProvider()
    loop = ScanLoop(
        StaticPoolProvider(triangle_pools),
        StoppingSink(),
        max_scans=None,
        time_provider=clock,
    )
    loop.run()

    assert loop.scan_count == 1
    assert clock.sleeps == []


def test_scan_loop_keyboard_interrupt_stops_cleanly():
    loop = ScanLoop(
        InterruptingProvider(),
        CollectingSink(),
        time_provider=DeterministicTimeProvider(),
    )
    loop.run()
    assert loop.scan_count == 1
