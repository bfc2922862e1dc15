"""
Shared configuration and logging setup.
"""

from .config import AppConfig, ConfigError, configure_logger, load_config, setup_logging

__all__ = [
    "AppConfig",
    "ConfigError",
    "configure_logger",
    "load_config",
    "setup_logging",
]
