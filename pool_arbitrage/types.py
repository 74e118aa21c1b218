"""
Core data types for weighted-pool arbitrage scanning.

Pool snapshots are immutable value objects validated at construction time;
a new scan always works on a fresh snapshot set.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, NewType, Optional, Tuple

from .exceptions import ValidationError

Token = NewType("Token", str)


@dataclass(frozen=True)
class Reserve:
    """
    One token's reserve inside a weighted pool.

    Attributes:
        token: Token identifier (address or symbol)
        balance: Pool balance of the token, must be finite and >= 0
        weight: Normalized or raw pool weight, must be finite and > 0
    """

    token: Token
    balance: float
    weight: float

    def __post_init__(self):
        if not isinstance(self.token, str) or not self.token.strip():
            raise ValidationError(
                f"Reserve token must be a non-empty string, got {self.token!r}"
            )
        balance = _as_float(self.balance, "balance", self.token)
        weight = _as_float(self.weight, "weight", self.token)
        if balance < 0:
            raise ValidationError(
                f"Reserve balance for {self.token} must be >= 0, got {balance}",
                {"token": self.token, "balance": balance},
            )
        if weight <= 0:
            raise ValidationError(
                f"Reserve weight for {self.token} must be > 0, got {weight}",
                {"token": self.token, "weight": weight},
            )
        object.__setattr__(self, "balance", balance)
        object.__setattr__(self, "weight", weight)

    @property
    def spot_value(self) -> float:
        """Balance per unit of weight, the numerator/denominator of spot rates."""
        return self.balance / self.weight


def _as_float(value: Any, name: str, token: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Reserve {name} for {token} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Reserve {name} for {token} must be a number, got {value!r}"
        ) from None
    if not math.isfinite(number):
        raise ValidationError(f"Reserve {name} for {token} must be finite, got {value}")
    return number


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Reserve state of one pool at scan time.

    Degenerate snapshots (fewer than two reserves, or a zero balance) can be
    constructed but contribute nothing to the exchange graph.
    """

    pool_id: str
    reserves: Tuple[Reserve, ...]

    def __post_init__(self):
        reserves = tuple(self.reserves)
        seen = set()
        for reserve in reserves:
            if not isinstance(reserve, Reserve):
                raise ValidationError(
                    f"Pool {self.pool_id} reserves must be Reserve instances, "
                    f"got {type(reserve).__name__}"
                )
            if reserve.token in seen:
                raise ValidationError(
                    f"Pool {self.pool_id} lists token {reserve.token} twice",
                    {"pool_id": self.pool_id, "token": reserve.token},
                )
            seen.add(reserve.token)
        object.__setattr__(self, "reserves", reserves)

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return tuple(r.token for r in self.reserves)

    @property
    def is_degenerate(self) -> bool:
        return len(self.reserves) < 2 or any(r.balance == 0 for r in self.reserves)

    def reserve_for(self, token: Token) -> Optional[Reserve]:
        for reserve in self.reserves:
            if reserve.token == token:
                return reserve
        return None

    def __contains__(self, token: object) -> bool:
        return any(r.token == token for r in self.reserves)


@dataclass(frozen=True)
class Edge:
    """
    Directed exchange edge selected for a token pair.

    Attributes:
        source: Token given up
        target: Token received
        weight: -ln(rate), the additive cost used by the cycle search
        rate: Marginal exchange rate source -> target
        pool: Snapshot the rate was read from
    """

    source: Token
    target: Token
    weight: float
    rate: float
    pool: PoolSnapshot = field(repr=False, compare=False)


@dataclass(frozen=True)
class DetectedCycle:
    """Closed token path found by the detector plus the predecessor map it came from."""

    path: Tuple[Token, ...]
    predecessors: Dict[Token, Token] = field(
        default_factory=dict, repr=False, compare=False
    )

    @property
    def hops(self) -> int:
        return len(self.path) - 1


@dataclass(frozen=True)
class Opportunity:
    """
    An evaluated arbitrage loop.

    Attributes:
        path: Closed token path, path[0] == path[-1]
        profit: Multiplicative return of the loop (> 1 means profitable)
    """

    path: Tuple[Token, ...]
    profit: float

    def __post_init__(self):
        path = tuple(self.path)
        if len(path) < 3 or path[0] != path[-1]:
            raise ValidationError(
                f"Opportunity path must be closed with at least two hops: {path}"
            )
        if len(set(path[:-1])) != len(path) - 1:
            raise ValidationError(f"Opportunity path repeats a token: {path}")
        object.__setattr__(self, "path", path)

    @property
    def profit_pct(self) -> float:
        return (self.profit - 1.0) * 100

    @property
    def hops(self) -> int:
        return len(self.path) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {"path": list(self.path), "profit": self.profit}


@dataclass
class ScanResult:
    """Outcome and counters of one scan."""

    opportunities: List[Opportunity] = field(default_factory=list)
    pool_count: int = 0
    token_count: int = 0
    edge_count: int = 0
    cycle_count: int = 0
    dropped_paths: int = 0
    duration_sec: float = 0.0

    @property
    def best(self) -> Optional[Opportunity]:
        if not self.opportunities:
            return None
        return max(self.opportunities, key=lambda o: o.profit)
