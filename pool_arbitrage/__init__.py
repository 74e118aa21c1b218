"""
Pool Arbitrage Scanner.

Detects arbitrage loops across weighted DEX liquidity pools: builds a
-ln(rate) exchange graph from pool snapshots, finds negative cycles with
Bellman-Ford, and prices each loop from the live reserves.
"""

PROJECT_NAME = "pool-arbitrage-scanner"

from pool_arbitrage.version import __version__
from pool_arbitrage.types import (
    DetectedCycle,
    Edge,
    Opportunity,
    PoolSnapshot,
    Reserve,
    ScanResult,
    Token,
)
from pool_arbitrage.graph import build_graph
from pool_arbitrage.detector import find_cycles
from pool_arbitrage.profit import evaluate
from pool_arbitrage.scanner import ScanLoop, ScanSettings, run_scan, scan

VERSION = __version__

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "Token",
    "Reserve",
    "PoolSnapshot",
    "Edge",
    "DetectedCycle",
    "Opportunity",
    "ScanResult",
    "build_graph",
    "find_cycles",
    "evaluate",
    "scan",
    "run_scan",
    "ScanSettings",
    "ScanLoop",
]
