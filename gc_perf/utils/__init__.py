"""Logging and configuration helpers."""

from .config import ConfigManager, FalconConfig, ReporterConfig
from .logger import GcPerfLogger, get_logger

__all__ = [
    'ConfigManager',
    'FalconConfig',
    'ReporterConfig',
    'GcPerfLogger',
    'get_logger',
]
