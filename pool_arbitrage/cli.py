"""
Pool arbitrage scanner CLI.

Scans weighted DEX pools for arbitrage loops on a fixed cadence and logs
every opportunity found.

Usage:
    pool-arb-scan --pools pools.yaml --once
    pool-arb-scan --config configs/scanner.yaml
    POOL_ARB_SUBGRAPH_URL=https://... pool-arb-scan
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import logging_config
from .config import ScannerConfig, load_config, validate_config
from .exceptions import ConfigurationError
from .interfaces import OpportunitySink, PoolProvider
from .providers import FilePoolProvider, SubgraphPoolProvider
from .scanner import ScanLoop
from .sinks import JsonLinesSink, LoggingSink, MultiSink, RotationDedupSink, format_opportunity
from .utils import get_logger
from .version import __version__

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="pool-arb-scan",
        description="Weighted-pool DEX arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single scan of a snapshot file
  pool-arb-scan --pools pools.yaml --once

  # Continuous scan using a config file
  pool-arb-scan --config configs/scanner.yaml
        """,
    )
    parser.add_argument("--config", help="Path to config YAML file")
    parser.add_argument(
        "--pools", help="Pool snapshot file (YAML or JSON); selects the file provider"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scan and exit (overrides config setting)",
    )
    parser.add_argument(
        "--min-profit",
        type=float,
        help="Minimum profit multiplier to report (e.g. 1.001)",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser.parse_args(argv)


def apply_cli_overrides(config: ScannerConfig, args: argparse.Namespace) -> ScannerConfig:
    """Command line flags win over file and environment settings."""
    if args.pools:
        config = replace(config, provider=replace(config.provider, kind="file", path=args.pools))
    if args.once:
        config = replace(config, once=True)
    if args.min_profit is not None:
        config = replace(config, scan=replace(config.scan, min_profit=args.min_profit))
    if args.debug:
        config = replace(config, output=replace(config.output, log_level="DEBUG"))
    return config


def build_provider(config: ScannerConfig) -> PoolProvider:
    """Instantiate the configured pool provider."""
    provider_config = config.provider
    if provider_config.kind == "subgraph":
        return SubgraphPoolProvider(
            provider_config.url,
            page_size=provider_config.page_size,
            max_pages=provider_config.max_pages,
            timeout=provider_config.timeout,
        )
    return FilePoolProvider(provider_config.path)


def build_sink(config: ScannerConfig) -> OpportunitySink:
    """Instantiate the configured sink chain."""
    sink: OpportunitySink = LoggingSink()
    if config.output.jsonl_path:
        sink = MultiSink(sink, JsonLinesSink(config.output.jsonl_path))
    if config.output.dedupe_ttl_sec > 0:
        sink = RotationDedupSink(sink, ttl_sec=config.output.dedupe_ttl_sec)
    return sink


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = apply_cli_overrides(load_config(args.config), args)
        validate_config(config)
    except ConfigurationError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    logging_config.setup(config.output.log_level)

    loop = ScanLoop(
        provider=build_provider(config),
        sink=build_sink(config),
        settings=config.scan,
        poll_sec=config.poll_sec,
        max_scans=config.scan_limit,
    )
    loop.run()

    if loop.last_result is not None and loop.last_result.best is not None:
        logger.info("Best loop: %s", format_opportunity(loop.last_result.best))

    return 0


if __name__ == "__main__":
    sys.exit(main())
