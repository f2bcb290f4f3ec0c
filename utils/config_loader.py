"""
Configuration Loader for the Dining Philosophers Simulator.

Loads and validates JSON configuration files. Keys are the field names of
SimulationConfig; missing keys keep their defaults.
"""

import dataclasses
import json
from typing import Any, Dict, Optional

from models.config import ConfigurationError, SimulationConfig


INT_FIELDS = ("philosophers", "food_quota", "max_food_per_sitting")
FLOAT_FIELDS = ("think_time_max", "eat_time_per_unit", "retry_backoff")
STR_FIELDS = ("ordering", "fork_backend")


def load_config(file_path: str, base: Optional[SimulationConfig] = None) -> SimulationConfig:
    """
    Load simulation configuration from a JSON file.

    Args:
        file_path: Path to configuration JSON file
        base: Configuration supplying values the file leaves out

    Returns:
        Validated SimulationConfig

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {file_path}")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}")
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"Configuration file is not valid UTF-8: {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a JSON object")

    config = (base or SimulationConfig()).replace(**_parse_fields(data))
    config.validate()
    return config


def _parse_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Type-check configuration values.

    Args:
        data: Raw JSON object

    Returns:
        Dict of field name to value, ready for SimulationConfig.replace()
    """
    known = {f.name for f in dataclasses.fields(SimulationConfig)}
    unknown = sorted(set(data) - known - {"description"})
    if unknown:
        raise ConfigurationError(f"Unknown configuration field(s): {', '.join(unknown)}")

    values = {}
    for name, value in data.items():
        if name == "description":
            continue
        if name in INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"'{name}' must be an integer (got {value!r})")
        elif name in FLOAT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"'{name}' must be a number (got {value!r})")
            value = float(value)
        elif name in STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigurationError(f"'{name}' must be a string (got {value!r})")
        elif name == "lock_directory":
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"'lock_directory' must be a path or null (got {value!r})")
        elif name == "seed":
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigurationError(f"'seed' must be an integer or null (got {value!r})")
        elif name == "abort_on_fault":
            if not isinstance(value, bool):
                raise ConfigurationError(f"'abort_on_fault' must be true or false (got {value!r})")
        values[name] = value
    return values


def get_config_description(file_path: str) -> str:
    """
    Get description from configuration file without full loading.

    Args:
        file_path: Path to configuration JSON file

    Returns:
        Description string, or empty string if not present
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError):
        return ''
    if not isinstance(data, dict):
        return ''
    return data.get('description', '')
