"""
Exchange graph construction from weighted pool snapshots.

Every ordered token pair that shares a pool becomes a directed edge weighted
by -ln(rate), so a loop whose rates multiply to more than 1 is a cycle whose
weights sum to less than 0.
"""

import math
from typing import Iterable, Iterator, List, Optional, Sequence

import networkx as nx

from .types import Edge, PoolSnapshot, Reserve, Token
from .utils import get_logger

logger = get_logger(__name__)


def marginal_rate(src: Reserve, dst: Reserve) -> float:
    """Spot rate for swapping src into dst in a constant-weighted-product pool."""
    return dst.spot_value / src.spot_value


def edge_weight(rate: float) -> float:
    """Convert a multiplicative rate into an additive cost. Non-positive rates give inf."""
    if rate <= 0 or not math.isfinite(rate):
        return math.inf
    return -math.log(rate)


def iter_pool_edges(pool: PoolSnapshot) -> Iterator[Edge]:
    """
    Yield one edge per ordered pair of distinct tokens in a pool.

    Degenerate pools yield nothing. Edges whose weight is not finite are
    dropped here so NaN or infinity never reach the search.
    """
    if pool.is_degenerate:
        return

    for src in pool.reserves:
        for dst in pool.reserves:
            if src.token == dst.token:
                continue
            try:
                rate = marginal_rate(src, dst)
            except (ZeroDivisionError, OverflowError):
                rate = math.nan
            weight = edge_weight(rate)
            if not math.isfinite(weight):
                logger.debug(
                    "Skipping non-finite edge %s -> %s in pool %s (rate=%r)",
                    src.token,
                    dst.token,
                    pool.pool_id,
                    rate,
                )
                continue
            yield Edge(
                source=src.token,
                target=dst.token,
                weight=weight,
                rate=rate,
                pool=pool,
            )


def build_graph(pools: Iterable[PoolSnapshot]) -> nx.DiGraph:
    """
    Build a directed exchange graph from pool snapshots.

    Args:
        pools: Pool snapshots of the current scan, possibly empty

    Returns:
        NetworkX directed graph; graph[src][dst] holds the weight, rate and
        pool of the most favorable edge for that ordered pair
    """
    graph = nx.DiGraph()
    skipped = 0

    for pool in pools:
        if pool.is_degenerate:
            skipped += 1
            logger.debug(
                "Skipping degenerate pool %s (%d reserves)",
                pool.pool_id,
                len(pool.reserves),
            )
            continue

        for edge in iter_pool_edges(pool):
            existing = graph.get_edge_data(edge.source, edge.target)
            # Strictly lower wins; ties keep the first pool seen
            if existing is None or edge.weight < existing["weight"]:
                graph.add_edge(
                    edge.source,
                    edge.target,
                    weight=edge.weight,
                    rate=edge.rate,
                    pool=edge.pool,
                )

    if skipped:
        logger.debug("Skipped %d degenerate pools while building graph", skipped)

    return graph


def get_edge(graph: nx.DiGraph, source: Token, target: Token) -> Edge:
    """Typed view of the edge stored for source -> target."""
    data = graph[source][target]
    return Edge(
        source=source,
        target=target,
        weight=data["weight"],
        rate=data["rate"],
        pool=data["pool"],
    )


def path_weight(graph: nx.DiGraph, path: Sequence[Token]) -> float:
    """Sum of edge weights along a token path. Raises KeyError on a missing edge."""
    return sum(graph[u][v]["weight"] for u, v in zip(path, path[1:]))


def filter_pools(
    pools: Iterable[PoolSnapshot],
    ignored_tokens: Optional[Iterable[str]] = None,
    whitelisted_tokens: Optional[Iterable[str]] = None,
) -> List[PoolSnapshot]:
    """
    Drop pools touching ignored tokens or, with a whitelist, any unlisted token.

    Args:
        pools: Pool snapshots to filter
        ignored_tokens: Tokens that disqualify a pool
        whitelisted_tokens: If given, every token of a pool must be listed

    Returns:
        Pools that passed the filters, in input order
    """
    ignored = set(ignored_tokens or ())
    whitelist = set(whitelisted_tokens) if whitelisted_tokens else None

    kept = []
    for pool in pools:
        tokens = set(pool.tokens)
        if tokens & ignored:
            continue
        if whitelist is not None and not tokens <= whitelist:
            continue
        kept.append(pool)
    return kept
