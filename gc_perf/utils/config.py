"""
Configuration utilities for the GC perf-counter reporter.
"""

import copy
import os
import socket
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv
from dataclasses import dataclass, field

from gc_perf.exceptions import ConfigurationError
from gc_perf.utils.logger import get_logger

log = get_logger('Config')

SINK_TYPES = ('falcon', 'log', 'memory')

DEFAULT_CONFIG: Dict[str, Any] = {
    'reporter': {
        'interval': 60,
        'sink': 'falcon',
        'stop_timeout': 5.0,
    },
    'falcon': {
        'url': 'http://127.0.0.1:1988/v1/push',
        'endpoint': None,
        'step': None,
        'tags': '',
        'timeout': 5.0,
    },
    'logging': {
        'level': 'INFO',
    },
}


@dataclass
class FalconConfig:
    """Open-Falcon agent push settings."""
    url: str = 'http://127.0.0.1:1988/v1/push'
    endpoint: str = field(default_factory=socket.gethostname)
    step: int = 60
    tags: str = ''
    timeout: float = 5.0


@dataclass
class ReporterConfig:
    """Periodic reporter settings."""
    interval: int = 60
    sink: str = 'falcon'
    stop_timeout: float = 5.0
    falcon: FalconConfig = field(default_factory=FalconConfig)

    def validate(self):
        """Raise ConfigurationError on values the reporter cannot run with."""
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval <= 0:
            raise ConfigurationError(f"reporter.interval must be a positive integer, got {self.interval!r}")
        if self.sink not in SINK_TYPES:
            raise ConfigurationError(
                f"reporter.sink must be one of {', '.join(SINK_TYPES)}, got {self.sink!r}"
            )
        if self.stop_timeout is not None and self.stop_timeout < 0:
            raise ConfigurationError("reporter.stop_timeout must not be negative")
        if self.falcon.step <= 0:
            raise ConfigurationError("falcon.step must be positive")
        if self.falcon.timeout <= 0:
            raise ConfigurationError(f"falcon.timeout must be positive, got {self.falcon.timeout!r}")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if value is None and isinstance(merged.get(key), dict):
            continue  # empty section in YAML
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages reporter configuration."""

    def __init__(self, config_path: Optional[str] = None, env_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: YAML file to load; defaults apply when omitted
            env_file: Optional .env file for placeholder values
        """
        self.config_path = Path(config_path) if config_path else None
        self.env_file = env_file
        self.config: Dict[str, Any] = {}
        self.load_config()

    def load_config(self):
        """Load configuration from file."""
        load_dotenv(self.env_file)  # Load environment variables

        loaded: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            try:
                with open(self.config_path, 'r') as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

            if not isinstance(loaded, dict):
                raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")

        self.config = _merge(copy.deepcopy(DEFAULT_CONFIG), loaded)

        # Replace environment variable placeholders
        self._replace_env_vars(self.config)

        log.debug("Configuration loaded from {}", self.config_path or 'defaults')

    def _replace_env_vars(self, config):
        """Replace environment variable placeholders in configuration."""
        if isinstance(config, dict):
            for key, value in config.items():
                if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
                    env_var = value[2:-1]  # Remove ${ and }
                    config[key] = os.getenv(env_var, value)
                elif isinstance(value, (dict, list)):
                    self._replace_env_vars(value)
        elif isinstance(config, list):
            for index, item in enumerate(config):
                if isinstance(item, str) and item.startswith('${') and item.endswith('}'):
                    config[index] = os.getenv(item[2:-1], item)
                elif isinstance(item, (dict, list)):
                    self._replace_env_vars(item)

        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def section(self, name: str) -> Dict[str, Any]:
        """Get a top-level section, which must be a mapping."""
        section = self.get(name, {})
        if not isinstance(section, dict):
            raise ConfigurationError(f"{name} section must be a mapping, got {section!r}")
        return section

    def get_falcon_config(self) -> FalconConfig:
        """Get Open-Falcon push configuration."""
        falcon = self.section('falcon')
        interval = _as_int(self.get('reporter.interval'), 'reporter.interval')
        step = _resolved(falcon.get('step'))
        return FalconConfig(
            url=_resolved(falcon.get('url')) or FalconConfig.url,
            endpoint=_resolved(falcon.get('endpoint')) or socket.gethostname(),
            step=_as_int(step, 'falcon.step') if step is not None else interval,
            tags=_resolved(falcon.get('tags')) or '',
            timeout=_as_float(falcon.get('timeout', 5.0), 'falcon.timeout')
        )

    def get_reporter_config(self) -> ReporterConfig:
        """Get validated reporter configuration."""
        reporter = self.section('reporter')
        config = ReporterConfig(
            interval=_as_int(reporter.get('interval'), 'reporter.interval'),
            sink=str(reporter.get('sink', 'falcon')).lower(),
            # null waits for the worker without a limit
            stop_timeout=_as_float(reporter.get('stop_timeout'), 'reporter.stop_timeout', allow_none=True),
            falcon=self.get_falcon_config()
        )
        config.validate()
        return config


def _resolved(value: Any) -> Any:
    """Treat a placeholder left unset in the environment as missing."""
    if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
        return None
    return value


def _as_int(value: Any, key: str) -> int:
    """Coerce placeholder-substituted strings such as '30' to int."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def _as_float(value: Any, key: str, allow_none: bool = False) -> Optional[float]:
    """Coerce a seconds value to float; unset placeholders are errors."""
    if value is None and allow_none:
        return None
    if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
        raise ConfigurationError(f"{key} is set to {value} but {value[2:-1]} is not in the environment")
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
