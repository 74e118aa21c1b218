"""
Configuration loading and normalization for the pool arbitrage scanner.

Loads a YAML file into frozen dataclasses, applies environment overrides
(optionally from a .env file) and validates values up front so a bad
setting fails at startup instead of mid-loop.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from .detector import DEFAULT_TOLERANCE
from .exceptions import ConfigurationError
from .scanner import ScanSettings

PROVIDER_KINDS = ("file", "subgraph")

ENV_SUBGRAPH_URL = "POOL_ARB_SUBGRAPH_URL"
ENV_POOLS_FILE = "POOL_ARB_POOLS_FILE"
ENV_POLL_SEC = "POOL_ARB_POLL_SEC"
ENV_LOG_LEVEL = "POOL_ARB_LOG_LEVEL"


@dataclass(frozen=True)
class ProviderConfig:
    """Normalized pool provider configuration."""

    kind: str = "file"
    path: Optional[str] = None
    url: Optional[str] = None
    page_size: int = 1000
    max_pages: Optional[int] = None
    timeout: float = 30.0


@dataclass(frozen=True)
class OutputConfig:
    """Normalized output configuration."""

    jsonl_path: Optional[str] = None
    dedupe_ttl_sec: float = 0.0
    log_level: str = "INFO"


@dataclass(frozen=True)
class ScannerConfig:
    """Immutable runtime configuration object."""

    poll_sec: float = 6.0
    once: bool = False
    max_scans: Optional[int] = None
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    scan: ScanSettings = field(default_factory=ScanSettings)
    output: OutputConfig = field(default_factory=OutputConfig)

    @property
    def scan_limit(self) -> Optional[int]:
        """Number of scans the loop should run (None for unlimited)."""
        return 1 if self.once else self.max_scans


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file must contain a YAML mapping: {config_path}"
        )

    return config_dict


def _number(value: Any, name: str, minimum: float = 0.0, strict: bool = False) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}") from None
    if number < minimum or (strict and number == minimum):
        op = ">" if strict else ">="
        raise ConfigurationError(f"'{name}' must be {op} {minimum}, got {number}")
    return number


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    number = _number(value, name, minimum=0, strict=True)
    if number != int(number):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    return int(number)


def _flag(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "on", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "off", "0"):
        return False
    raise ConfigurationError(f"'{name}' must be true or false, got {value!r}")


def _token_list(value: Any, name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"'{name}' must be a list of tokens")
    return tuple(str(v).strip() for v in value)


def _normalize_provider_config(config_dict: Dict[str, Any]) -> ProviderConfig:
    """Normalize provider configuration with defaults."""
    raw = config_dict.get("provider") or {}
    if not isinstance(raw, dict):
        raise ConfigurationError("'provider' must be a mapping")

    kind = raw.get("kind", "file")
    if kind not in PROVIDER_KINDS:
        raise ConfigurationError(
            f"Invalid provider kind '{kind}' (must be one of {', '.join(PROVIDER_KINDS)})"
        )

    return ProviderConfig(
        kind=kind,
        path=raw.get("path"),
        url=raw.get("url"),
        page_size=int(_number(raw.get("page_size", 1000), "provider.page_size", 0, True)),
        max_pages=_optional_int(raw.get("max_pages"), "provider.max_pages"),
        timeout=_number(raw.get("timeout", 30.0), "provider.timeout", 0, True),
    )


def _normalize_scan_settings(config_dict: Dict[str, Any]) -> ScanSettings:
    """Normalize scan settings with defaults."""
    raw = config_dict.get("scan") or {}
    if not isinstance(raw, dict):
        raise ConfigurationError("'scan' must be a mapping")

    return ScanSettings(
        min_profit=_number(raw.get("min_profit", 1.0), "scan.min_profit"),
        tolerance=_number(raw.get("tolerance", DEFAULT_TOLERANCE), "scan.tolerance"),
        ignored_tokens=_token_list(raw.get("ignored_tokens"), "scan.ignored_tokens"),
        whitelisted_tokens=_token_list(
            raw.get("whitelisted_tokens"), "scan.whitelisted_tokens"
        ),
        start_tokens=_token_list(raw.get("start_tokens"), "scan.start_tokens"),
        per_source=_flag(raw.get("per_source", False), "scan.per_source"),
    )


def _normalize_output_config(config_dict: Dict[str, Any]) -> OutputConfig:
    """Normalize output configuration with defaults."""
    raw = config_dict.get("output") or {}
    if not isinstance(raw, dict):
        raise ConfigurationError("'output' must be a mapping")

    return OutputConfig(
        jsonl_path=raw.get("jsonl_path"),
        dedupe_ttl_sec=_number(raw.get("dedupe_ttl_sec", 0.0), "output.dedupe_ttl_sec"),
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )


def config_from_dict(config_dict: Dict[str, Any]) -> ScannerConfig:
    """Build a validated ScannerConfig from a plain mapping."""
    return ScannerConfig(
        poll_sec=_number(config_dict.get("poll_sec", 6.0), "poll_sec"),
        once=_flag(config_dict.get("once", False), "once"),
        max_scans=_optional_int(config_dict.get("max_scans"), "max_scans"),
        provider=_normalize_provider_config(config_dict),
        scan=_normalize_scan_settings(config_dict),
        output=_normalize_output_config(config_dict),
    )


def apply_env_overrides(
    config: ScannerConfig, env: Optional[Dict[str, str]] = None
) -> ScannerConfig:
    """
    Overlay POOL_ARB_* environment variables on a config.

    A subgraph URL switches the provider to the subgraph kind; a pools file
    switches it to the file kind.
    """
    env = os.environ if env is None else env
    provider = config.provider
    output = config.output
    poll_sec = config.poll_sec

    if env.get(ENV_SUBGRAPH_URL):
        provider = replace(provider, kind="subgraph", url=env[ENV_SUBGRAPH_URL])
    if env.get(ENV_POOLS_FILE):
        provider = replace(provider, kind="file", path=env[ENV_POOLS_FILE])
    if env.get(ENV_POLL_SEC):
        poll_sec = _number(env[ENV_POLL_SEC], ENV_POLL_SEC)
    if env.get(ENV_LOG_LEVEL):
        output = replace(output, log_level=env[ENV_LOG_LEVEL].upper())

    return replace(config, provider=provider, output=output, poll_sec=poll_sec)


def validate_config(config: ScannerConfig) -> None:
    """Check cross-field requirements."""
    if config.provider.kind == "file" and not config.provider.path:
        raise ConfigurationError("File provider requires 'provider.path'")
    if config.provider.kind == "subgraph" and not config.provider.url:
        raise ConfigurationError("Subgraph provider requires 'provider.url'")


def load_config(
    config_path: Optional[Union[str, Path]] = None, use_env: bool = True
) -> ScannerConfig:
    """
    Load, normalize and validate scanner configuration.

    Args:
        config_path: YAML file to read; defaults are used when omitted
        use_env: Apply .env / environment overrides

    Returns:
        Frozen ScannerConfig

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    config_dict = load_yaml_config(config_path) if config_path else {}
    config = config_from_dict(config_dict)

    if use_env:
        load_dotenv()
        config = apply_env_overrides(config)

    return config


def get_default_config() -> ScannerConfig:
    """Get a default configuration for testing or fallback purposes."""
    return ScannerConfig()
