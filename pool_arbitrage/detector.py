"""
Negative-cycle detection over the exchange graph.

Implements Bellman-Ford relaxation on the -ln(rate) weighted graph. A
priority-queue search cannot handle negative weights, so every edge is
relaxed up to |V| - 1 times and one more pass exposes the nodes that still
improve, which lie on or downstream of a negative cycle. The cycle itself is
recovered by walking the predecessor map.
"""

import math
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx

from .graph import path_weight
from .types import DetectedCycle, Token
from .utils import get_logger

logger = get_logger(__name__)

# Absorbs rounding in -ln(rate) sums so exactly balanced pools stay cycle-free
DEFAULT_TOLERANCE = 1e-9


def find_cycles(
    graph: nx.DiGraph,
    sources: Optional[Iterable[Token]] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> List[DetectedCycle]:
    """
    Find negative cycles (arbitrage loops) in the exchange graph.

    Args:
        graph: Exchange graph from build_graph()
        sources: Optional tokens to run single-source searches from. When
            omitted, one run is made from a virtual super-source linked to
            every token with zero-weight edges.
        tolerance: Minimum improvement for an edge to count as relaxing

    Returns:
        Detected cycles as closed token paths in trade order, each rotated to
        start at the token that entered the graph first
    """
    if graph.number_of_nodes() < 2 or graph.number_of_edges() == 0:
        return []

    order = {node: i for i, node in enumerate(graph.nodes)}
    edges: List[Tuple[Token, Token, float]] = [
        (u, v, data["weight"]) for u, v, data in graph.edges(data=True)
    ]

    if sources is None:
        runs = [None]
    else:
        runs = [s for s in dict.fromkeys(sources) if s in graph]
        if not runs:
            return []

    cycles: List[DetectedCycle] = []
    reported: Set[Tuple[Token, ...]] = set()
    for source in runs:
        for cycle in _bellman_ford(graph, edges, order, source, tolerance):
            if cycle.path in reported:
                continue
            reported.add(cycle.path)
            cycles.append(cycle)

    logger.debug(
        "Cycle search over %d tokens / %d edges found %d cycles",
        graph.number_of_nodes(),
        len(edges),
        len(cycles),
    )
    return cycles


def _bellman_ford(
    graph: nx.DiGraph,
    edges: List[Tuple[Token, Token, float]],
    order: Dict[Token, int],
    source: Optional[Token],
    tolerance: float,
) -> List[DetectedCycle]:
    """One relaxation run; source=None means the virtual super-source."""
    node_count = graph.number_of_nodes()

    if source is None:
        distance = {node: 0.0 for node in graph.nodes}
    else:
        distance = {node: math.inf for node in graph.nodes}
        distance[source] = 0.0
    predecessor: Dict[Token, Token] = {}

    for _ in range(node_count - 1):
        updated = False
        for u, v, w in edges:
            du = distance[u]
            if du == math.inf:
                continue
            if du + w < distance[v] - tolerance:
                distance[v] = du + w
                predecessor[v] = u
                updated = True
        if not updated:
            return []

    # Anything that still relaxes sits on or behind a negative cycle
    relaxing: List[Token] = []
    for u, v, w in edges:
        du = distance[u]
        if du == math.inf:
            continue
        if du + w < distance[v] - tolerance:
            distance[v] = du + w
            predecessor[v] = u
            relaxing.append(v)

    cycles: List[DetectedCycle] = []
    on_reported_cycle: Set[Token] = set()
    for start in relaxing:
        members = _walk_to_cycle(predecessor, start, node_count)
        if members is None or members[0] in on_reported_cycle:
            continue
        on_reported_cycle.update(members)

        path = _canonical_path(members, order)
        total = path_weight(graph, path)
        if total >= -tolerance:
            logger.debug("Discarding non-negative predecessor loop %s", path)
            continue
        cycles.append(DetectedCycle(path=path, predecessors=dict(predecessor)))

    return cycles


def _walk_to_cycle(
    predecessor: Dict[Token, Token], start: Token, node_count: int
) -> Optional[List[Token]]:
    """
    Walk predecessors back from start and return the loop reached.

    The first |V| steps guarantee the walk is inside the loop; from there it
    continues until a token repeats. Members come back in predecessor order
    (reverse trade order). None means the walk ran off the predecessor map.
    """
    current = start
    for _ in range(node_count):
        current = predecessor.get(current)
        if current is None:
            return None

    members: List[Token] = []
    visited: Set[Token] = set()
    while current not in visited:
        visited.add(current)
        members.append(current)
        current = predecessor.get(current)
        if current is None:
            return None

    # current is the repeated token; trim any tail before it
    return members[members.index(current):]


def _canonical_path(members: List[Token], order: Dict[Token, int]) -> Tuple[Token, ...]:
    forward = list(reversed(members))
    first = min(range(len(forward)), key=lambda i: order[forward[i]])
    rotated = forward[first:] + forward[:first]
    return tuple(rotated + [rotated[0]])
