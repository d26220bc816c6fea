"""
Logging configuration using loguru for GC perf-counter reporting.
"""

import sys
from pathlib import Path
from typing import Optional, Dict, Any
from loguru import logger
import yaml


DEFAULT_FORMAT = '{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[name]} | {message}'


class GcPerfLogger:
    """Logger configuration for the GC reporter."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the logger configuration.

        Args:
            config_path: Path to a YAML file with a ``logging`` section
        """
        self.config = self._load_config(config_path)
        self._configured = False

    def _load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load logging configuration from yaml file."""
        config = {
            'level': 'INFO',
            'format': DEFAULT_FORMAT,
            'file': None,
            'rotation': '100 MB',
            'retention': '30 days',
            'compression': 'zip',
        }

        if config_path and Path(config_path).exists():
            # A broken file is reported by ConfigManager; logging keeps its defaults
            try:
                with open(config_path, 'r') as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError:
                loaded = None
            section = loaded.get('logging') if isinstance(loaded, dict) else None
            if isinstance(section, dict):
                config.update(section)

        return config

    def setup(self, level: Optional[str] = None):
        """
        Configure loguru handlers.

        Args:
            level: Overrides the configured console level
        """
        if self._configured:
            return

        if level:
            self.config['level'] = level

        # Remove default handler
        logger.remove()
        logger.configure(extra={'name': 'gc_perf'})

        logger.add(
            sys.stderr,
            level=self.config['level'],
            format=self.config['format'],
            colorize=True,
            backtrace=True,
            diagnose=False
        )

        log_file = self.config.get('file')
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_file,
                level=self.config['level'],
                format=self.config['format'],
                rotation=self.config['rotation'],
                retention=self.config['retention'],
                compression=self.config['compression'],
                backtrace=True,
                diagnose=False,
                enqueue=True  # Thread-safe
            )

        self._configured = True
        logger.debug("GC perf logger initialized")


def get_logger(name: Optional[str] = None):
    """
    Get a logger bound to a component name.

    Handlers are left alone here; applications call ``GcPerfLogger.setup``
    (the CLI does) so that importing the library never reconfigures the
    host's logging.

    Args:
        name: Component name shown in the ``name`` field

    Returns:
        Bound loguru logger
    """
    return logger.bind(name=name or 'gc_perf')
