"""
Profit evaluation for detected token loops.

Recomputes each hop's marginal rate from the snapshots themselves instead
of trusting graph weights, which doubles as a consistency check on the
graph builder.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from .graph import iter_pool_edges
from .types import DetectedCycle, Edge, Opportunity, PoolSnapshot, Token
from .utils import get_logger

logger = get_logger(__name__)


def select_pool(
    token_a: Token, token_b: Token, pools: Iterable[PoolSnapshot]
) -> Optional[Edge]:
    """
    Pick the pool the graph builder would use for token_a -> token_b.

    Returns:
        Lowest-weight edge for the pair (first pool wins ties), or None when
        no usable pool holds both tokens
    """
    best: Optional[Edge] = None
    for pool in pools:
        if token_a not in pool or token_b not in pool:
            continue
        for edge in iter_pool_edges(pool):
            if edge.source != token_a or edge.target != token_b:
                continue
            if best is None or edge.weight < best.weight:
                best = edge
    return best


def evaluate(path: Sequence[Token], pools: Sequence[PoolSnapshot]) -> Optional[float]:
    """
    Multiplicative return of walking a token path through the pools.

    Args:
        path: Ordered tokens, normally a closed loop
        pools: Snapshots of the current scan

    Returns:
        Product of the marginal rates, or None if any hop has no pool
    """
    if len(path) < 2:
        return None

    profit = 1.0
    for token_a, token_b in zip(path, path[1:]):
        edge = select_pool(token_a, token_b, pools)
        if edge is None:
            return None
        profit *= edge.rate
    return profit


def evaluate_cycles(
    cycles: Iterable[DetectedCycle],
    pools: Sequence[PoolSnapshot],
    min_profit: float = 1.0,
) -> Tuple[List[Opportunity], int]:
    """
    Turn detected cycles into opportunities.

    Args:
        cycles: Output of find_cycles()
        pools: Snapshots the graph was built from
        min_profit: Multiplier a loop must exceed to be reported

    Returns:
        Tuple of (opportunities, number of unresolved paths dropped)
    """
    opportunities: List[Opportunity] = []
    dropped = 0

    for cycle in cycles:
        profit = evaluate(cycle.path, pools)
        if profit is None:
            dropped += 1
            logger.debug("Dropping unresolved path %s", " -> ".join(cycle.path))
            continue
        if profit <= min_profit:
            continue
        opportunities.append(Opportunity(path=cycle.path, profit=profit))

    return opportunities, dropped
