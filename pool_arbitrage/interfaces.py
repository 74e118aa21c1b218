"""
Dependency injection interfaces for the scanner's collaborators.

The detection engine only sees pool snapshots and emits opportunities; the
pool source, the opportunity sink and the clock used by the scan loop are
injected through these protocols so they can be swapped in tests.
"""

import time
from typing import List, Protocol, runtime_checkable

from .types import Opportunity, PoolSnapshot


@runtime_checkable
class PoolProvider(Protocol):
    """Protocol for pool data sources."""

    def fetch_all_pools(self) -> List[PoolSnapshot]:
        """Fetch a fresh snapshot of every pool. May raise on provider failure."""
        ...


@runtime_checkable
class OpportunitySink(Protocol):
    """Protocol for opportunity consumers (console, file, queue...)."""

    def emit(self, opportunity: Opportunity) -> None:
        """Receive one evaluated opportunity."""
        ...


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol for time-related operations."""

    def current_timestamp(self) -> float:
        """Get current Unix timestamp."""
        ...

    def sleep(self, duration: float) -> None:
        """Sleep for specified duration in seconds."""
        ...


class SystemTimeProvider:
    """Production time provider using system time."""

    def current_timestamp(self) -> float:
        return time.time()

    def sleep(self, duration: float) -> None:
        time.sleep(duration)


class DeterministicTimeProvider:
    """Deterministic time provider for testing."""

    def __init__(self, start_time: float = 1640995200.0):  # 2022-01-01
        self._current_time = start_time
        self.sleeps: List[float] = []

    def current_timestamp(self) -> float:
        """Get current timestamp."""
        return self._current_time

    def sleep(self, duration: float) -> None:
        """Advance time by duration instead of actually sleeping."""
        self.sleeps.append(duration)
        self._current_time += duration

    def advance_time(self, seconds: float) -> None:
        """Manually advance time by specified seconds."""
        self._current_time += seconds


_default_time_provider: TimeProvider = SystemTimeProvider()


def get_time_provider() -> TimeProvider:
    """Get the current time provider instance."""
    return _default_time_provider


def set_time_provider(provider: TimeProvider) -> None:
    """Set the global time provider (mainly for testing)."""
    global _default_time_provider
    _default_time_provider = provider
