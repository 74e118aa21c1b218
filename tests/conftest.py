"""Shared fixtures for pool arbitrage tests."""

import pytest

from pool_arbitrage.types import PoolSnapshot, Reserve


def make_pool(pool_id, *entries):
    """Build a snapshot from (token, balance) or (token, balance, weight) tuples."""
    reserves = []
    for entry in entries:
        token, balance = entry[0], entry[1]
        weight = entry[2] if len(entry) > 2 else 1.0
        reserves.append(Reserve(token=token, balance=balance, weight=weight))
    return PoolSnapshot(pool_id=pool_id, reserves=tuple(reserves))


@pytest.fixture
def pool_factory():
    return make_pool


@pytest.fixture
def triangle_pools():
    """A->B = 2.0, B->C = 2.0, C->A = 0.4; the loop A->B->C->A returns 1.6."""
    return [
        make_pool("pool-ab", ("A", 100.0), ("B", 200.0)),
        make_pool("pool-bc", ("B", 100.0), ("C", 200.0)),
        make_pool("pool-ca", ("C", 250.0), ("A", 100.0)),
    ]


@pytest.fixture
def balanced_pools():
    """Rates multiply to exactly 1 around every loop: A->B = 2, B->C = 3, C->A = 1/6."""
    return [
        make_pool("pool-ab", ("A", 100.0), ("B", 200.0)),
        make_pool("pool-bc", ("B", 100.0), ("C", 300.0)),
        make_pool("pool-ca", ("C", 600.0), ("A", 100.0)),
    ]
