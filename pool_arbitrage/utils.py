"""
Common utilities and helper functions for the pool arbitrage scanner.

This module provides centralized helpers for logging, timestamps, JSON
output and profit formatting.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Union


# Timestamp utilities
def timestamp_to_iso(timestamp: float) -> str:
    """Convert Unix timestamp to ISO 8601 string."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        minutes = seconds / 60
        return f"{minutes:.1f}m"


# JSON utilities
def safe_json_dump(data: Any, **kwargs) -> str:
    """
    Serialize data to JSON with sensible defaults.

    Args:
        data: Data to serialize
        **kwargs: Additional arguments to json.dumps

    Returns:
        JSON string
    """
    defaults = {"ensure_ascii": False, "default": _json_default_handler}
    defaults.update(kwargs)
    return json.dumps(data, **defaults)


def _json_default_handler(obj: Any) -> Any:
    """Default JSON serialization handler for custom types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, (tuple, set, frozenset)):
        return list(obj)
    else:
        return str(obj)


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a structured logger with consistent formatting.

    Args:
        name: Logger name (typically __name__)
        level: Logging level

    Returns:
        Configured logger with structured output
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# Formatting utilities
def format_profit(multiplier: float) -> str:
    """Format a multiplicative return as a signed percentage string.

    Examples:
        >>> format_profit(1.0123)
        '+1.23%'
        >>> format_profit(0.9544)
        '-4.56%'
        >>> format_profit(1.0)
        '+0.00%'
    """
    percentage = (multiplier - 1.0) * 100

    if percentage >= 0:
        return f"+{percentage:.2f}%"
    else:
        return f"{percentage:.2f}%"
