"""
Configuration utilities for AuthGate.
Provides environment lookups, duration parsing and config file loading.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


def load_config_from_env(prefix: str = "AUTHGATE_") -> Dict[str, str]:
    """
    Load configuration from environment variables with given prefix.
    """
    config = {}

    for key, value in os.environ.items():
        if key.startswith(prefix):
            # Remove prefix and convert to lowercase
            config_key = key[len(prefix):].lower()
            config[config_key] = value

    return config


def to_bool(value: Any) -> bool:
    """Interpret strings such as 'true', '1', 'yes' and 'on' as booleans."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse duration string like '500ms', '30s', '5m', '2h', '1d' into timedelta.
    """
    if not isinstance(duration_str, str):
        raise ValueError("Duration must be a string")

    duration_str = duration_str.strip().lower()

    # Pattern to match number followed by unit
    pattern = r'^(\d+(?:\.\d+)?)\s*(ms|[smhd])$'
    match = re.match(pattern, duration_str)

    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    value = float(value)

    if unit == 'ms':
        return timedelta(milliseconds=value)
    elif unit == 's':
        return timedelta(seconds=value)
    elif unit == 'm':
        return timedelta(minutes=value)
    elif unit == 'h':
        return timedelta(hours=value)
    elif unit == 'd':
        return timedelta(days=value)
    else:
        raise ValueError(f"Unsupported duration unit: {unit}")


def parse_duration(value: Union[None, int, float, str, timedelta]) -> Optional[timedelta]:
    """
    Normalize a duration setting.

    Accepts a ``timedelta``, a number of milliseconds, a numeric string
    (milliseconds) or a duration string. ``None``, ``-1`` and the strings
    ``"none"``/``"never"`` mean "no limit" and return ``None``.
    """
    if value is None or isinstance(value, timedelta):
        return value

    if isinstance(value, bool):
        raise ValueError("Duration cannot be a boolean")

    if isinstance(value, (int, float)):
        if value < 0:
            return None
        return timedelta(milliseconds=value)

    text = str(value).strip().lower()
    if text in ('', 'none', 'never', '-1'):
        return None
    if re.match(r'^\d+$', text):
        return timedelta(milliseconds=int(text))

    return parse_duration_string(text)


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result = {}

    for config in configs:
        if isinstance(config, dict):
            result.update(config)

    return result


def normalize_config_key(key: str) -> str:
    """Normalize configuration key to standard format."""
    # Convert to lowercase and replace hyphens with underscores
    return key.lower().replace('-', '_')


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext in ['.json']:
            data = json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")

    return data or {}

