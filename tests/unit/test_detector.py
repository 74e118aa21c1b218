"""Tests for Bellman-Ford negative cycle detection."""

import math
import random

import networkx as nx
import pytest

from pool_arbitrage.detector import find_cycles
from pool_arbitrage.graph import build_graph, path_weight
from pool_arbitrage.types import DetectedCycle


def _assert_simple_closed(path):
    assert len(path) >= 3
    assert path[0] == path[-1]
    assert len(set(path[:-1])) == len(path) - 1


def _consistent_pools(pool_factory, tokens, rng):
    """Every pair gets a pool priced from one global price vector: no arbitrage."""
    prices = {token: rng.uniform(0.01, 5000.0) for token in tokens}
    pools = []
    for i, a in enumerate(tokens):
        for b in tokens[i + 1:]:
            depth = rng.uniform(1e3, 1e7)
            wa, wb = rng.uniform(0.1, 0.9), rng.uniform(0.1, 0.9)
            # balance / weight proportional to 1 / price keeps rate a->b = p_a / p_b
            pools.append(
                pool_factory(
                    f"{a}-{b}",
                    (a, depth * wa / prices[a], wa),
                    (b, depth * wb / prices[b], wb),
                )
            )
    return pools


def test_empty_graph_returns_nothing():
    assert find_cycles(build_graph([])) == []
    assert find_cycles(nx.DiGraph()) == []


def test_single_node_graph_returns_nothing():
    graph = nx.DiGraph()
    graph.add_node("A")
    assert find_cycles(graph) == []


def test_known_triangle_cycle(triangle_pools):
    graph = build_graph(triangle_pools)
    cycles = find_cycles(graph)

    assert len(cycles) == 1
    cycle = cycles[0]
    assert isinstance(cycle, DetectedCycle)
    assert cycle.path == ("A", "B", "C", "A")
    assert cycle.hops == 3
    assert math.exp(-path_weight(graph, cycle.path)) == pytest.approx(1.6)


def test_predecessor_trace_is_returned(triangle_pools):
    cycle = find_cycles(build_graph(triangle_pools))[0]
    preds = cycle.predecessors
    assert preds["B"] == "A"
    assert preds["C"] == "B"
    assert preds["A"] == "C"


def test_balanced_pools_have_no_cycles(balanced_pools):
    assert find_cycles(build_graph(balanced_pools)) == []


def test_random_consistent_market_has_no_cycles(pool_factory):
    rng = random.Random(7)
    tokens = ["T%d" % i for i in range(7)]
    graph = build_graph(_consistent_pools(pool_factory, tokens, rng))

    assert graph.number_of_edges() == 7 * 6
    assert find_cycles(graph) == []


def test_perturbed_market_cycles_are_negative_and_simple(pool_factory):
    rng = random.Random(11)
    tokens = ["T%d" % i for i in range(6)]
    pools = _consistent_pools(pool_factory, tokens, rng)
    skewed = pools[3]
    first, second = skewed.reserves
    pools[3] = pool_factory(
        skewed.pool_id,
        (first.token, first.balance, first.weight),
        (second.token, second.balance * 1.1, second.weight),
    )
    graph = build_graph(pools)

    cycles = find_cycles(graph)
    assert cycles
    for cycle in cycles:
        _assert_simple_closed(cycle.path)
        assert path_weight(graph, cycle.path) < 0


def test_disjoint_cycles_are_all_found(pool_factory, triangle_pools):
    other = [
        pool_factory("xy", ("X", 100.0), ("Y", 300.0)),
        pool_factory("yz", ("Y", 100.0), ("Z", 100.0)),
        pool_factory("zx", ("Z", 200.0), ("X", 100.0)),
    ]
    cycles = find_cycles(build_graph(triangle_pools + other))

    assert {c.path for c in cycles} == {("A", "B", "C", "A"), ("X", "Y", "Z", "X")}


def test_output_is_order_stable(triangle_pools):
    first = [c.path for c in find_cycles(build_graph(triangle_pools))]
    second = [c.path for c in find_cycles(build_graph(triangle_pools))]
    assert first == second


def test_rotation_starts_at_first_inserted_token(pool_factory):
    # C enters the graph first, so the loop is reported from C
    pools = [
        pool_factory("pool-ca", ("C", 250.0), ("A", 100.0)),
        pool_factory("pool-ab", ("A", 100.0), ("B", 200.0)),
        pool_factory("pool-bc", ("B", 100.0), ("C", 200.0)),
    ]
    cycles = find_cycles(build_graph(pools))
    assert [c.path for c in cycles] == [("C", "A", "B", "C")]


def test_single_source_mode(pool_factory, triangle_pools):
    other = [
        pool_factory("xy", ("X", 100.0), ("Y", 300.0)),
        pool_factory("yz", ("Y", 100.0), ("Z", 100.0)),
        pool_factory("zx", ("Z", 200.0), ("X", 100.0)),
    ]
    graph = build_graph(triangle_pools + other)

    from_x = find_cycles(graph, sources=["X"])
    assert [c.path for c in from_x] == [("X", "Y", "Z", "X")]

    from_both = find_cycles(graph, sources=["A", "Y"])
    assert [c.path for c in from_both] == [("A", "B", "C", "A"), ("X", "Y", "Z", "X")]


def test_single_source_duplicates_are_merged(triangle_pools):
    graph = build_graph(triangle_pools)
    cycles = find_cycles(graph, sources=["A", "B", "C"])
    assert [c.path for c in cycles] == [("A", "B", "C", "A")]


def test_unknown_sources_return_nothing(triangle_pools):
    assert find_cycles(build_graph(triangle_pools), sources=["NOPE"]) == []


def test_cycle_below_tolerance_is_ignored(pool_factory):
    # Loop return is 1 + 1e-12, well inside the default tolerance
    pools = [
        pool_factory("ab", ("A", 1.0), ("B", 1.0 + 1e-12)),
        pool_factory("ba", ("B", 1.0), ("A", 1.0)),
    ]
    assert find_cycles(build_graph(pools)) == []
    assert find_cycles(build_graph(pools), tolerance=0.0) != []


def test_two_hop_cycle_between_pools(pool_factory):
    pools = [
        pool_factory("cheap", ("A", 100.0), ("B", 200.0)),
        pool_factory("rich", ("A", 100.0), ("B", 150.0)),
    ]
    cycles = find_cycles(build_graph(pools))

    assert [c.path for c in cycles] == [("A", "B", "A")]
