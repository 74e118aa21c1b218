"""
Scan pipeline and the loop that drives it.

scan() is one pure pass over a snapshot set: filter, build the graph, find
negative cycles, price them. ScanLoop is the outer collaborator that fetches
pools on a cadence, feeds scan() and hands opportunities to a sink.
"""

import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .detector import DEFAULT_TOLERANCE, find_cycles
from .exceptions import ProviderError
from .graph import build_graph, filter_pools
from .interfaces import OpportunitySink, PoolProvider, TimeProvider, get_time_provider
from .profit import evaluate_cycles
from .types import Opportunity, PoolSnapshot, ScanResult, Token
from .utils import format_duration, format_profit, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScanSettings:
    """
    Tunables for a single scan.

    Attributes:
        min_profit: Multiplier a loop must exceed to be reported
        tolerance: Relaxation tolerance for the cycle search
        ignored_tokens: Pools holding any of these are left out
        whitelisted_tokens: If set, only pools made entirely of these are used
        start_tokens: If set, loops are rotated to start at the first listed
            token they contain; loops containing none are dropped
        per_source: Run one search per start token instead of a single
            super-source search
    """

    min_profit: float = 1.0
    tolerance: float = DEFAULT_TOLERANCE
    ignored_tokens: Tuple[str, ...] = ()
    whitelisted_tokens: Tuple[str, ...] = ()
    start_tokens: Tuple[str, ...] = ()
    per_source: bool = False


def rotate_to_start(
    opportunity: Opportunity, start_tokens: Sequence[Token]
) -> Optional[Opportunity]:
    """Re-anchor a loop on the first start token it visits, or None if it visits none."""
    loop = list(opportunity.path[:-1])
    for token in start_tokens:
        if token in loop:
            i = loop.index(token)
            rotated = loop[i:] + loop[:i]
            return Opportunity(path=tuple(rotated + [rotated[0]]), profit=opportunity.profit)
    return None


def scan(
    pools: Iterable[PoolSnapshot], settings: Optional[ScanSettings] = None
) -> ScanResult:
    """
    Run one detection pass over a snapshot set.

    Args:
        pools: Pool snapshots captured for this scan
        settings: Scan tunables, defaults when omitted

    Returns:
        ScanResult with the opportunities found and pipeline counters
    """
    settings = settings or ScanSettings()
    started = time.perf_counter()

    pools = filter_pools(
        pools,
        ignored_tokens=settings.ignored_tokens,
        whitelisted_tokens=settings.whitelisted_tokens,
    )
    graph = build_graph(pools)

    sources = None
    if settings.per_source and settings.start_tokens:
        sources = [Token(t) for t in settings.start_tokens]
    cycles = find_cycles(graph, sources=sources, tolerance=settings.tolerance)

    opportunities, dropped = evaluate_cycles(
        cycles, pools, min_profit=settings.min_profit
    )

    if settings.start_tokens:
        anchored: List[Opportunity] = []
        for opportunity in opportunities:
            rotated = rotate_to_start(opportunity, settings.start_tokens)
            if rotated is not None:
                anchored.append(rotated)
        opportunities = anchored

    result = ScanResult(
        opportunities=opportunities,
        pool_count=len(pools),
        token_count=graph.number_of_nodes(),
        edge_count=graph.number_of_edges(),
        cycle_count=len(cycles),
        dropped_paths=dropped,
        duration_sec=time.perf_counter() - started,
    )
    logger.debug(
        "Scan: %d pools, %d tokens, %d edges, %d cycles, %d opportunities in %s",
        result.pool_count,
        result.token_count,
        result.edge_count,
        result.cycle_count,
        len(result.opportunities),
        format_duration(result.duration_sec),
    )
    return result


def run_scan(
    provider: PoolProvider,
    sink: OpportunitySink,
    settings: Optional[ScanSettings] = None,
) -> ScanResult:
    """
    Fetch pools, scan them, and emit every opportunity to the sink.

    Raises:
        ProviderError: If the provider fails; only this scan is aborted
    """
    try:
        pools = provider.fetch_all_pools()
    except Exception as e:
        provider_name = type(provider).__name__
        raise ProviderError(
            f"Pool fetch failed in {provider_name}: {e}", provider=provider_name
        ) from e

    result = scan(pools, settings)
    for opportunity in result.opportunities:
        sink.emit(opportunity)
    return result


class ScanLoop:
    """
    Repeats run_scan() on a fixed cadence.

    Each scan is independent; a failed scan is logged and the loop carries on
    at the next tick. The loop can only be stopped between scans.
    """

    def __init__(
        self,
        provider: PoolProvider,
        sink: OpportunitySink,
        settings: Optional[ScanSettings] = None,
        poll_sec: float = 6.0,
        max_scans: Optional[int] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        """
        Initialize the loop.

        Args:
            provider: Pool data source
            sink: Opportunity consumer
            settings: Scan tunables passed to every scan
            poll_sec: Seconds to wait between scans
            max_scans: Stop after this many scans (None runs until stopped)
            time_provider: Clock used for sleeping, system clock by default
        """
        self.provider = provider
        self.sink = sink
        self.settings = settings or ScanSettings()
        self.poll_sec = poll_sec
        self.max_scans = max_scans
        self.time = time_provider or get_time_provider()

        self.scan_count = 0
        self.failed_scans = 0
        self.opportunities_emitted = 0
        self.last_result: Optional[ScanResult] = None
        self._stop_requested = False

    def stop(self) -> None:
        """Ask the loop to exit before its next scan."""
        self._stop_requested = True

    def run_once(self) -> Optional[ScanResult]:
        """Run a single scan, logging instead of raising on failure."""
        self.scan_count += 1
        try:
            result = run_scan(self.provider, self.sink, self.settings)
        except ProviderError as e:
            self.failed_scans += 1
            logger.warning("Scan %d skipped: %s", self.scan_count, e)
            return None
        except Exception as e:
            self.failed_scans += 1
            logger.error("Scan %d failed: %s", self.scan_count, e, exc_info=True)
            return None

        self.last_result = result
        self.opportunities_emitted += len(result.opportunities)

        best = result.best
        logger.info(
            "Scan %d: %d pools, %d tokens, %d opportunities%s",
            self.scan_count,
            result.pool_count,
            result.token_count,
            len(result.opportunities),
            f" (best {format_profit(best.profit)})" if best else "",
        )
        return result

    def run(self) -> None:
        """Main loop: scan, report, sleep."""
        logger.info(
            "Starting scan loop (poll every %ss, max scans: %s)",
            self.poll_sec,
            self.max_scans if self.max_scans is not None else "unlimited",
        )
        try:
            while not self._stop_requested:
                self.run_once()

                if self.max_scans is not None and self.scan_count >= self.max_scans:
                    break
                if self._stop_requested:
                    break

                self.time.sleep(self.poll_sec)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")

        logger.info(
            "Scan loop finished: %d scans, %d failed, %d opportunities emitted",
            self.scan_count,
            self.failed_scans,
            self.opportunities_emitted,
        )
