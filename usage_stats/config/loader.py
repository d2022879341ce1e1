"""
Configuration management and loading.

Handles storage location, retention and clock settings.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict

import yaml

from usage_stats.core.clock import Clock, local_now, utc_now
from usage_stats.core.retention import DEFAULT_MAX_DAYS
from usage_stats.storage.file_store import DEFAULT_DATA_PATH


class TimezonePolicy(Enum):
    """Timezone used to derive day and hour buckets."""
    UTC = "utc"
    LOCAL = "local"

    def clock(self) -> Clock:
        """Clock function implementing this policy."""
        return utc_now if self is TimezonePolicy.UTC else local_now


@dataclass(frozen=True)
class StatsConfig:
    """Complete usage stats configuration."""
    data_path: str = DEFAULT_DATA_PATH
    max_days: int = DEFAULT_MAX_DAYS
    timezone: TimezonePolicy = TimezonePolicy.UTC

    def __post_init__(self):
        """Validate configuration values."""
        if not self.data_path:
            raise ValueError("data_path cannot be empty")
        if isinstance(self.max_days, bool) or not isinstance(self.max_days, int) or self.max_days < 1:
            raise ValueError("max_days must be an integer >= 1")

    @classmethod
    def default(cls) -> "StatsConfig":
        """Configuration used when no file is given."""
        return cls()


_SECTION_KEYS = {
    'storage': {'path'},
    'retention': {'max_days'},
    'clock': {'timezone'},
}


def load_stats_config(path: str) -> StatsConfig:
    """Load and validate usage stats configuration from a YAML file.

    Every section is optional; missing values fall back to the defaults.
    Unknown keys are rejected so a typo never silently changes where
    statistics are written.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated StatsConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Stats config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(_SECTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    sections = {name: _parse_section(raw_config, name) for name in _SECTION_KEYS}
    defaults = StatsConfig.default()

    data_path = sections['storage'].get('path', defaults.data_path)
    if not isinstance(data_path, str) or not data_path.strip():
        raise ValueError("'storage.path' must be a non-empty string")

    max_days = sections['retention'].get('max_days', defaults.max_days)
    if isinstance(max_days, bool) or not isinstance(max_days, int) or max_days < 1:
        raise ValueError("'retention.max_days' must be an integer >= 1")

    timezone_str = sections['clock'].get('timezone', defaults.timezone.value)
    if not isinstance(timezone_str, str):
        raise ValueError("'clock.timezone' must be a string")
    try:
        timezone = TimezonePolicy(timezone_str.lower())
    except ValueError:
        valid = [policy.value for policy in TimezonePolicy]
        raise ValueError(f"'clock.timezone' must be one of: {valid}")

    return StatsConfig(
        data_path=data_path,
        max_days=max_days,
        timezone=timezone
    )


def _parse_section(raw_config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a validated config section, or an empty dict if absent.

    Raises:
        ValueError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - _SECTION_KEYS[name]
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data
