"""Version information for the pool arbitrage scanner."""

__version__ = "0.1.0"
