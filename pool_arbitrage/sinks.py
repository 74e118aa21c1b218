"""
Opportunity sinks.

The engine only defines the opportunity shape; these sinks decide where it
goes (log, memory, JSON lines file) and whether repeats of the same loop are
worth reporting again.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .interfaces import OpportunitySink, TimeProvider, get_time_provider
from .types import Opportunity
from .utils import format_profit, get_logger, safe_json_dump, timestamp_to_iso

logger = get_logger(__name__)


def format_opportunity(opportunity: Opportunity) -> str:
    """One-line summary: path and profit."""
    return (
        f"{' -> '.join(opportunity.path)} | profit {opportunity.profit:.6f} "
        f"({format_profit(opportunity.profit)})"
    )


class LoggingSink:
    """Logs each opportunity as a banner block."""

    def __init__(self, sink_logger: Optional[logging.Logger] = None):
        self._logger = sink_logger or logger

    def emit(self, opportunity: Opportunity) -> None:
        self._logger.info("%s", "=" * 60)
        self._logger.info("Arbitrage Opportunity Found!")
        self._logger.info("Path: %s", " -> ".join(opportunity.path))
        self._logger.info(
            "Profit: %.6f (%s)", opportunity.profit, format_profit(opportunity.profit)
        )
        self._logger.info("%s", "=" * 60)


class CollectingSink:
    """Keeps emitted opportunities in memory."""

    def __init__(self):
        self.opportunities: List[Opportunity] = []

    def emit(self, opportunity: Opportunity) -> None:
        self.opportunities.append(opportunity)

    def clear(self) -> None:
        self.opportunities.clear()


class JsonLinesSink:
    """Appends one JSON object per opportunity to a file."""

    def __init__(
        self,
        path: Union[str, Path],
        time_provider: Optional[TimeProvider] = None,
    ):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.time = time_provider or get_time_provider()

    def emit(self, opportunity: Opportunity) -> None:
        record = opportunity.to_dict()
        record["timestamp"] = timestamp_to_iso(self.time.current_timestamp())
        with open(self.path, "a") as f:
            f.write(safe_json_dump(record) + "\n")


class RotationDedupSink:
    """
    Suppresses repeats of the same loop within a time window.

    Loops are keyed by their trade order up to rotation, so rotations of one
    cycle found from different sources, or in consecutive scans, collapse into
    one report. The same tokens traded in the opposite direction are a
    different loop.
    """

    def __init__(
        self,
        inner: OpportunitySink,
        ttl_sec: float = 60.0,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.inner = inner
        self.ttl_sec = ttl_sec
        self.time = time_provider or get_time_provider()
        self.last_seen: Dict[Tuple[str, ...], float] = {}
        self.suppressed = 0

    @staticmethod
    def route_key(opportunity: Opportunity) -> Tuple[str, ...]:
        """Directed loop rotated to start at its smallest token."""
        loop = list(opportunity.path[:-1])
        start = loop.index(min(loop))
        return tuple(loop[start:] + loop[:start])

    def cleanup_expired(self, now: float) -> None:
        expired = [k for k, ts in self.last_seen.items() if now - ts > self.ttl_sec]
        for key in expired:
            del self.last_seen[key]

    def emit(self, opportunity: Opportunity) -> None:
        now = self.time.current_timestamp()
        self.cleanup_expired(now)

        key = self.route_key(opportunity)
        if key in self.last_seen:
            self.suppressed += 1
            logger.debug("Suppressing repeated loop %s", " -> ".join(opportunity.path))
            return

        self.last_seen[key] = now
        self.inner.emit(opportunity)


class MultiSink:
    """Fans one opportunity out to several sinks."""

    def __init__(self, *sinks: OpportunitySink):
        self.sinks = list(sinks)

    def emit(self, opportunity: Opportunity) -> None:
        for sink in self.sinks:
            sink.emit(opportunity)
