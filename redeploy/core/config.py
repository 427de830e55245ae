"""Configuration management with environment variable integration and validation."""

import os
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from .types import RedeployConfig
from .errors import ConfigurationError

ENV_PREFIX = "REDEPLOY_"


def load_env_overrides(
    prefix: str = ENV_PREFIX, environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Load environment variables with the given prefix as nested overrides."""
    overrides: Dict[str, Any] = {}
    environ = os.environ if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(prefix):
            continue
        field_name = key[len(prefix) :].lower()

        # Nested sections, e.g. REDEPLOY_INSTALLATION__ROOT
        if "__" in field_name:
            parts = field_name.split("__")
            if len(parts) == 2:
                section, sub_field = parts
                overrides.setdefault(section, {})[sub_field] = _convert_env_value(value)
            continue

        overrides[field_name] = _convert_env_value(value)

    return overrides


def _convert_env_value(value: str) -> Optional[str]:
    """Map an empty environment value to None.

    Other values stay strings; pydantic coerces them to the declared field
    types, so string fields keep values such as ``1.10`` verbatim.
    """
    return value or None


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        elif value is not None:
            merged[key] = value
    return merged


class ConfigManager:
    """Central configuration management.

    Sources, lowest to highest precedence: model defaults, YAML file,
    ``REDEPLOY_*`` environment variables, explicit overrides. Components
    never read the environment themselves; they receive the resulting
    immutable RedeployConfig.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ
        self._config: Optional[RedeployConfig] = None

    def load_config(
        self, config_file: Optional[Path] = None, **overrides: Any
    ) -> RedeployConfig:
        """Load configuration from file and environment with CLI overrides."""
        config_data: Dict[str, Any] = {}

        if config_file is not None:
            config_file = Path(config_file)
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}")
            config_data = _deep_merge(config_data, self._load_from_file(config_file))

        config_data = _deep_merge(config_data, load_env_overrides(environ=self._environ))
        config_data = _deep_merge(config_data, overrides)

        try:
            self._config = RedeployConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}", details={"errors": e.errors()}
            ) from e

        return self._config

    def get_config(self) -> RedeployConfig:
        """Get current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def _load_from_file(self, config_file: Path) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if config_file.suffix.lower() not in (".yml", ".yaml"):
            raise ConfigurationError(
                f"Unsupported config file format: {config_file.suffix}"
            )
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load config file {config_file}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_file} must contain a mapping at top level"
            )
        return data

