"""
Configuration management and loading.

Handles report cache, parser and data directory settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ParserKind(Enum):
    """Available log parser implementations."""
    STREAMING = "streaming"
    LEGACY = "legacy"


@dataclass(frozen=True)
class CacheSettings:
    """Lifetime of cached usage reports."""
    ttl_seconds: float = 1800.0
    stale_after_seconds: float = 300.0

    def __post_init__(self):
        """Validate cache durations."""
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if self.stale_after_seconds < 0:
            raise ValueError("stale_after_seconds must be >= 0")
        if self.stale_after_seconds >= self.ttl_seconds:
            raise ValueError("'stale_after_seconds' must be less than 'ttl_seconds'")


@dataclass(frozen=True)
class ParserSettings:
    """Log parser selection and tuning."""
    kind: ParserKind = ParserKind.STREAMING
    max_concurrent_files: int = 8
    cache_ttl_seconds: float = 3600.0

    def __post_init__(self):
        """Validate parser tuning values."""
        if self.max_concurrent_files <= 0:
            raise ValueError("max_concurrent_files must be > 0")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be > 0")


@dataclass(frozen=True)
class Settings:
    """Complete application configuration."""
    data_directory: Optional[Path] = None
    cache: CacheSettings = field(default_factory=CacheSettings)
    parser: ParserSettings = field(default_factory=ParserSettings)

    @classmethod
    def defaults(cls) -> "Settings":
        return cls()


def load_settings(path: str) -> Settings:
    """Load and validate settings from a YAML file.

    Strict validation ensures no silent misconfigurations: unknown keys
    and out-of-range values are rejected rather than ignored.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'data_directory', 'cache', 'parser'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    data_directory = None
    if raw_config.get('data_directory') is not None:
        if not isinstance(raw_config['data_directory'], str):
            raise ValueError("'data_directory' must be a string")
        data_directory = Path(raw_config['data_directory']).expanduser()

    cache = _parse_cache_settings(raw_config.get('cache', {}))
    parser = _parse_parser_settings(raw_config.get('parser', {}))

    return Settings(
        data_directory=data_directory,
        cache=cache,
        parser=parser
    )


def _require_positive_number(data: Dict[str, Any], key: str, section: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{key}' in {section} must be > 0")
    return float(value)


def _parse_cache_settings(data: Any) -> CacheSettings:
    """Parse and validate the cache section.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'cache' must be a dictionary")

    allowed_keys = {'ttl_seconds', 'stale_after_seconds'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in cache: {unknown_keys}")

    defaults = CacheSettings()
    ttl = defaults.ttl_seconds
    stale_after = defaults.stale_after_seconds

    if 'ttl_seconds' in data:
        ttl = _require_positive_number(data, 'ttl_seconds', 'cache')
    if 'stale_after_seconds' in data:
        value = data['stale_after_seconds']
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError("'stale_after_seconds' in cache must be >= 0")
        stale_after = float(value)

    return CacheSettings(ttl_seconds=ttl, stale_after_seconds=stale_after)


def _parse_parser_settings(data: Any) -> ParserSettings:
    """Parse and validate the parser section.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'parser' must be a dictionary")

    allowed_keys = {'kind', 'max_concurrent_files', 'cache_ttl_seconds'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in parser: {unknown_keys}")

    defaults = ParserSettings()
    kind = defaults.kind
    max_concurrent_files = defaults.max_concurrent_files
    cache_ttl = defaults.cache_ttl_seconds

    if 'kind' in data:
        kind_str = data['kind']
        if not isinstance(kind_str, str):
            raise ValueError("'kind' in parser must be a string")
        try:
            kind = ParserKind(kind_str.lower())
        except ValueError:
            valid_kinds = [k.value for k in ParserKind]
            raise ValueError(f"'kind' in parser must be one of: {valid_kinds}")

    if 'max_concurrent_files' in data:
        value = data['max_concurrent_files']
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError("'max_concurrent_files' in parser must be a positive integer")
        max_concurrent_files = value

    if 'cache_ttl_seconds' in data:
        cache_ttl = _require_positive_number(data, 'cache_ttl_seconds', 'parser')

    return ParserSettings(
        kind=kind,
        max_concurrent_files=max_concurrent_files,
        cache_ttl_seconds=cache_ttl
    )
