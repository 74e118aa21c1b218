"""
Exception hierarchy for the pool arbitrage scanner.

Provides specific exception types for the failure categories a scan can hit,
so the driving loop can tell a failed fetch apart from bad configuration.
"""

from typing import Any, Dict, Optional


class PoolArbitrageError(Exception):
    """Base exception for all pool arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(PoolArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ValidationError(PoolArbitrageError):
    """Raised when a reserve, pool or token value fails validation."""

    pass


class DataError(PoolArbitrageError):
    """Raised when pool data from a provider cannot be interpreted."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        pool_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.pool_id = pool_id


class NetworkError(PoolArbitrageError):
    """Raised when network or connectivity issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class ProviderError(PoolArbitrageError):
    """Raised when a pool provider fails to deliver a snapshot set.

    Aborts the current scan only; the scan loop logs it and retries on the
    next tick.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.provider = provider
