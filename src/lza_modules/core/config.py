"""Configuration loading for module invocations.

Two kinds of configuration are handled here: the per-invocation module
configuration passed on the command line (inline JSON or a ``file://``
URI), and the optional runtime settings file that tunes poll intervals and
ceilings, with environment variable overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import yaml


FILE_URI_PREFIX = "file://"
SETTINGS_PATH_ENV = "LZA_MODULES_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


def load_module_configuration(value: str) -> Dict[str, Any]:
    """Parse module configuration from inline JSON or a file URI.

    Args:
        value: Inline JSON object, or ``file://`` URI to a JSON or YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: When the value cannot be read or parsed
    """
    if value is None or not value.strip():
        raise ConfigurationError("Module configuration is empty")

    if value.startswith(FILE_URI_PREFIX):
        path = Path(unquote(urlparse(value).path))
        try:
            text = path.read_text(encoding="utf-8")
        except IOError as e:
            raise ConfigurationError(f"Unable to read configuration file {path}: {e}")
        if path.suffix.lower() in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")
        else:
            data = _parse_json(text, str(path))
    else:
        data = _parse_json(value, "--configuration")

    if not isinstance(data, dict):
        raise ConfigurationError("Module configuration must be an object")
    return data


def _parse_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {source}: {e}")


class Configuration:
    """Runtime settings with YAML loading and environment overrides.

    Settings are optional; without a file every module uses its defaults.
    Layout::

        solution_id: my-solution
        polling:
          interval_seconds: 30
        modules:
          register-organizational-unit:
            poll_interval_seconds: 120
            max_poll_attempts: 30
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Optional path to settings file. If None, the
                ``LZA_MODULES_CONFIG`` environment variable is used.

        Raises:
            ConfigurationError: When the settings file is invalid
        """
        self._config: Dict[str, Any] = {}
        self._config_path = self._resolve_config_path(config_path)
        if self._config_path:
            self._load_configuration()
        self._apply_environment_overrides()
        self._validate_configuration()

    def _resolve_config_path(self, config_path: Optional[str]) -> Optional[Path]:
        """Resolve settings file path.

        Raises:
            ConfigurationError: When an explicitly given file is missing
        """
        config_path = config_path or os.environ.get(SETTINGS_PATH_ENV)
        if not config_path:
            return None

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}. "
                "Please create a configuration file or specify a valid path."
            )
        return path

    def _load_configuration(self) -> None:
        """Load settings from YAML file.

        Raises:
            ConfigurationError: When YAML file is invalid
        """
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {self._config_path}: {e}"
            )
        except IOError as e:
            raise ConfigurationError(
                f"Unable to read configuration file {self._config_path}: {e}"
            )

    def _validate_configuration(self) -> None:
        """Validate settings structure.

        Raises:
            ConfigurationError: When sections or values have the wrong type
        """
        if not isinstance(self._config, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        modules = self._config.get("modules", {})
        if not isinstance(modules, dict):
            raise ConfigurationError("Field 'modules' must be a mapping")

        for module_key, settings in modules.items():
            if not isinstance(settings, dict):
                raise ConfigurationError(f"Field 'modules.{module_key}' must be a mapping")
            for name, value in settings.items():
                self._validate_positive_number(f"modules.{module_key}.{name}", value)

        interval = self.get("polling.interval_seconds")
        if interval is not None:
            self._validate_positive_number("polling.interval_seconds", interval)

    @staticmethod
    def _validate_positive_number(key_path: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ConfigurationError(f"Field '{key_path}' must be a non-negative number")

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if "AWS_REGION" in os.environ:
            self._set_nested_value("aws.region", os.environ["AWS_REGION"])

        if "AWS_PROFILE" in os.environ:
            self._set_nested_value("aws.profile_name", os.environ["AWS_PROFILE"])

        if "LZA_SOLUTION_ID" in os.environ:
            self._set_nested_value("solution_id", os.environ["LZA_SOLUTION_ID"])

        if "LZA_POLL_INTERVAL_SECONDS" in os.environ:
            try:
                interval = float(os.environ["LZA_POLL_INTERVAL_SECONDS"])
            except ValueError:
                raise ConfigurationError(
                    "Environment variable LZA_POLL_INTERVAL_SECONDS must be a number"
                )
            self._set_nested_value("polling.interval_seconds", interval)

    def _set_nested_value(self, key_path: str, value: Any) -> None:
        """Set nested configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'polling.interval_seconds')
            value: Value to set
        """
        keys = key_path.split(".")
        current = self._config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.region')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_module_settings(self, module_key: str) -> Dict[str, Any]:
        """Get settings overrides for one module.

        A global ``polling.interval_seconds`` applies to every module that
        does not set its own ``poll_interval_seconds``.

        Args:
            module_key: Registry key of the module (e.g. 'invite-account-to-organization')

        Returns:
            Settings dictionary passed to the module constructor
        """
        settings = dict(self.get(f"modules.{module_key}", {}) or {})
        interval = self.get("polling.interval_seconds")
        if interval is not None:
            settings.setdefault("poll_interval_seconds", interval)
        return settings

    def get_solution_id(self) -> Optional[str]:
        return self.get("solution_id")

    def get_profile_name(self) -> Optional[str]:
        return self.get("aws.profile_name")
