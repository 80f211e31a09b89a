"""
load the config from config.yaml and the environment
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from . import directories
from .errors import IoError, from_os_error

logger = structlog.get_logger(__name__)


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable mapping
    ENV_MAPPINGS = {
        'HURL_TIMEOUT': ('client', 'timeout'),
        'HURL_FOLLOW_REDIRECTS': ('client', 'follow_redirects'),
        'HURL_MAX_REDIRECTS': ('client', 'max_redirects'),
        'HURL_RAISE_FOR_STATUS': ('client', 'raise_for_status'),
        'HURL_VERIFY': ('client', 'verify'),
        'HURL_THEME': ('output', 'theme'),
        'HURL_COLOR': ('output', 'color'),
        'HURL_LOG_LEVEL': ('logging', 'level'),
    }

    def __init__(self, config_path: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to a config.yaml file. If None, the default file
                        in the hurl config directory is used when it exists.
            data: Already loaded configuration, skips reading any file.
        """
        self.explicit = config_path is not None
        if config_path is None:
            config_path = directories.config_path()

        self.config_path = Path(config_path)
        if data is not None:
            self._config = self._apply_env_overrides(data)
        else:
            self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            if self.explicit:
                raise from_os_error(e) from e
            logger.debug("config_file_missing", path=str(self.config_path))
            config = {}
        except OSError as e:
            raise from_os_error(e) from e
        except yaml.YAMLError as e:
            logger.error("config_file_invalid", path=str(self.config_path), error=str(e))
            raise IoError("InvalidData") from e

        if not isinstance(config, dict):
            raise IoError("InvalidData")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Navigate to the nested config location
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """"true"/"false" become bools, numbers become int or float, anything else stays a string."""
        lowered = value.lower()
        if lowered in ('true', 'false'):
            return lowered == 'true'
        for number_type in (int, float):
            try:
                return number_type(value)
            except ValueError:
                continue
        return value

    def get(self, *keys, default=None):
        """config.get('client', 'timeout', default=30) walks nested sections."""
        current = self._config
        for key in keys:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    @property
    def client(self) -> Dict[str, Any]:
        """Get HTTP client configuration."""
        return self.get('client', default={})

    @property
    def defaults(self) -> Dict[str, Any]:
        """Get defaults for command line options."""
        return self.get('defaults', default={})

    @property
    def session(self) -> Dict[str, Any]:
        """Get session configuration."""
        return self.get('session', default={})

    @property
    def output(self) -> Dict[str, Any]:
        """Get output configuration."""
        return self.get('output', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})

    @property
    def timeout(self) -> float:
        return float(self.get('client', 'timeout', default=30.0))

    @property
    def capture_headers(self) -> Dict[str, str]:
        return dict(self.get('session', 'capture_headers', default={}) or {})

    @property
    def theme(self) -> str:
        return self.get('output', 'theme', default='solarized-dark')

    @property
    def color(self) -> bool:
        return bool(self.get('output', 'color', default=sys.stdout.isatty()))
