"""Configuration and logging for RouteSmith."""

from .config import get_config, ConfigManager
from .logging_config import setup_logging, get_logger

__all__ = ['get_config', 'ConfigManager', 'setup_logging', 'get_logger']
