"""Configuration loader for environment variables and YAML files."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from .models import ExporterConfig


class ConfigLoader:
    """Load and validate exporter configuration."""

    # Environment variable -> (section, field); section None means top level
    ENV_VARS: Dict[str, Tuple[Optional[str], str]] = {
        "KOMODO_HOST": ("komodo", "host"),
        "KOMODO_API_KEY": ("komodo", "api_key"),
        "KOMODO_API_SECRET": ("komodo", "api_secret"),
        "KOMODO_INSECURE_SKIP_VERIFY": ("komodo", "insecure_skip_verify"),
        "KOMODO_REQUEST_TIMEOUT": ("komodo", "request_timeout"),
        "KOMODO_MAX_CONCURRENT": ("collector", "max_concurrent"),
        "KOMODO_ONLY_OK": ("collector", "only_ok"),
        "KOMODO_SCRAPE_MODE": ("scrape", "mode"),
        "KOMODO_SCRAPE_INTERVAL": ("scrape", "interval"),
        "KOMODO_SCRAPE_TIMEOUT": ("scrape", "timeout"),
        "KOMODO_LISTEN_ADDR": ("server", "listen_addr"),
        "LOG_LEVEL": (None, "log_level"),
    }

    REQUIRED_ENV_VARS = ("KOMODO_HOST", "KOMODO_API_KEY", "KOMODO_API_SECRET")

    @staticmethod
    def load_from_env(environ: Optional[Mapping[str, str]] = None) -> ExporterConfig:
        """
        Build configuration from environment variables.

        Blank values are treated as unset so defaults apply.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            ValueError: If a required variable is not set
            pydantic.ValidationError: If a value fails validation
        """
        environ = os.environ if environ is None else environ

        values = {
            key: environ.get(key, "").strip()
            for key in ConfigLoader.ENV_VARS
        }
        missing = [key for key in ConfigLoader.REQUIRED_ENV_VARS if not values[key]]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        raw_config: Dict[str, Any] = {"komodo": {}, "collector": {}, "scrape": {}, "server": {}}
        for key, value in values.items():
            if not value:
                continue
            section, field = ConfigLoader.ENV_VARS[key]
            if section is None:
                raw_config[field] = value
            else:
                raw_config[section][field] = value

        return ExporterConfig(**raw_config)

    @staticmethod
    def load_from_file(config_path: str) -> ExporterConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        return ExporterConfig(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
