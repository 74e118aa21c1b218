"""
Logging configuration for the scanner CLI.

Usage:
    from pool_arbitrage import logging_config
    logging_config.setup()
"""

import logging
import sys


def setup(level=logging.INFO):
    """
    Configure root logging for console output.

    - Uses short timestamps (HH:MM:SS)
    - Quiets HTTP connection chatter from urllib3
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
    )
    console.setFormatter(formatter)
    root.addHandler(console)

    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # Module loggers from get_logger() carry their own handler and level
    for name in list(logging.root.manager.loggerDict):
        if name == "pool_arbitrage" or name.startswith("pool_arbitrage."):
            package_logger = logging.getLogger(name)
            package_logger.handlers.clear()
            package_logger.setLevel(level)
    logging.getLogger("pool_arbitrage").setLevel(level)
