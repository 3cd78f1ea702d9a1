"""Configuration management for forge_request.

This module provides the Config class that controls which default body
parsers a ServerRequest is seeded with, the options those parsers accept,
and the package log level. Values come from defaults, environment
variables, YAML files, and runtime overrides.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Callable, Dict, List, Type, Union
from dataclasses import dataclass, field, replace
from functools import wraps

from forge_request.exceptions import ConfigError

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


def validate_config(func):
    """Decorator to validate configuration values."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        result = func(self, *args, **kwargs)
        self._validate()
        return result
    return wrapper


def _positive(value: int) -> None:
    if value < 1:
        raise ConfigError(f"Expected a positive integer, got {value}")


def _log_level(value: str) -> None:
    if value.upper() not in _LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {value}")


@dataclass
class ConfigValue:
    """Configuration value with type information and validation."""
    value: Any
    type: Type
    required: bool = True
    default: Any = None
    validators: List[Callable[[Any], None]] = field(default_factory=list)

    def validate(self) -> None:
        """Validate the configuration value."""
        if self.required and self.value is None:
            raise ConfigError("Required configuration value is missing")
        if self.value is not None and not isinstance(self.value, self.type):
            raise ConfigError(f"Expected {self.type.__name__}, got {type(self.value).__name__}")
        # bool is an int subclass, but a flag is never a depth
        if self.type is int and isinstance(self.value, bool):
            raise ConfigError("Expected int, got bool")
        if self.value is None:
            return
        for validator in self.validators:
            validator(self.value)


class Config:
    """Configuration for forge_request.

    Nested keys are flattened with a double underscore, so the ``form``
    section's ``max_depth`` is addressed as ``form__max_depth`` and read
    from the ``FORGE_REQUEST_FORM_MAX_DEPTH`` environment variable.
    """

    def __init__(self, env_prefix: str = "FORGE_REQUEST_") -> None:
        """Initialize a new configuration instance.

        Args:
            env_prefix: Prefix for environment variables. Defaults to "FORGE_REQUEST_".
        """
        self._env_prefix = env_prefix
        self._values: Dict[str, ConfigValue] = {}
        self._load_defaults()
        self.load_env()

    def _load_defaults(self) -> None:
        """Load default configuration values."""
        defaults = {
            "log_level": ConfigValue("INFO", str, False, validators=[_log_level]),
            "parsers": {
                "json": ConfigValue(True, bool, False),
                "xml": ConfigValue(True, bool, False),
                "form": ConfigValue(True, bool, False),
            },
            "form": {
                "max_depth": ConfigValue(64, int, False, validators=[_positive]),
            },
        }
        self._values = self._flatten_config(defaults)

    def _flatten_config(self, config: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
        """Flatten nested configuration into a flat dictionary."""
        result = {}
        for key, value in config.items():
            full_key = f"{prefix}{key}" if prefix else key
            if isinstance(value, dict):
                result.update(self._flatten_config(value, f"{full_key}__"))
            else:
                result[full_key] = value
        return result

    def _unflatten_config(self, config: Dict[str, ConfigValue]) -> Dict[str, Any]:
        """Unflatten configuration into a nested dictionary."""
        result: Dict[str, Any] = {}
        for key, value in config.items():
            parts = key.split("__")
            current = result
            for part in parts[:-1]:
                if part not in current:
                    current[part] = {}
                current = current[part]
            current[parts[-1]] = value.value
        return result

    @validate_config
    def load_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file.

        Unknown keys are ignored.

        Args:
            path: Path to the configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigError: If the file is not a YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, "r") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse configuration file {path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError("Configuration file must contain a dictionary")

        # All or nothing: a rejected file leaves the current values in place
        candidates = {}
        for key, value in self._flatten_config(config).items():
            if key in self._values:
                candidates[key] = replace(self._values[key], value=value)
        for candidate in candidates.values():
            candidate.validate()
        self._values.update(candidates)

    @validate_config
    def load_env(self) -> None:
        """Load configuration from environment variables."""
        for key in self._values:
            env_key = key.upper().replace("__", "_")
            value = os.getenv(f"{self._env_prefix}{env_key}")
            if value is not None:
                self._values[key].value = self._convert_value(value, self._values[key].type)

    def _convert_value(self, value: str, target_type: Type) -> Any:
        """Convert a string value to the target type."""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes")
        elif target_type == int:
            try:
                return int(value)
            except ValueError as e:
                raise ConfigError(f"Expected an integer, got {value!r}") from e
        elif target_type == str:
            return value
        else:
            raise ConfigError(f"Unsupported type: {target_type}")

    def _validate(self) -> None:
        """Validate all configuration values."""
        for value in self._values.values():
            value.validate()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if key in self._values:
            return self._values[key].value
        return default

    @validate_config
    def set(self, key: str, value: Any) -> None:
        """Set a known configuration value.

        Raises:
            ConfigError: If the key is unknown or the value is invalid.
        """
        if key not in self._values:
            raise ConfigError(f"Unknown configuration key: {key}")
        candidate = replace(self._values[key], value=value)
        candidate.validate()
        self._values[key] = candidate

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return self._unflatten_config(self._values)

    @property
    def log_level(self) -> str:
        """Get log level."""
        return self.get("log_level", "INFO")

    @property
    def parsers(self) -> Dict[str, bool]:
        """Get the enabled default parsers."""
        return self.to_dict().get("parsers", {})

    @property
    def form_max_depth(self) -> int:
        """Get the bracket nesting limit for form and query decoding."""
        return self.get("form__max_depth", 64)
