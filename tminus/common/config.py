"""
Configuration loading and logging setup.

Config files are JSON or YAML (by extension). Every section is optional;
missing values fall back to defaults. TMINUS_REMOTE_URL and TMINUS_USER_ID
in the environment override the file.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from ..store import StoreConfig
from ..sync.queue import SyncConfig
from ..sync.errors import SyncConfigError


LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'
PLACEHOLDER_REMOTE_URL = 'nats://your-server:4222'


class ConfigError(Exception):
    """Config file is unreadable or contains invalid values."""
    pass


class RobustFileHandler(logging.FileHandler):
    """FileHandler that tolerates EINVAL on flush"""

    def flush(self):
        try:
            super().flush()
        except OSError as e:
            if e.errno != 22:  # EINVAL
                raise


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = RobustFileHandler(log_file, mode='a', encoding='utf-8', errors='replace')
    else:
        handler = logging.StreamHandler(log_file)

    handler.setFormatter(logging.Formatter(log_format or LOG_FORMAT))

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    logger.addHandler(handler)
    logger.setLevel(log_level)
    return logger


@dataclass
class AppConfig:
    """
    Application settings.

    Attributes:
        database_path: SQLite file for local storage.
        remote_url: NATS server URL; None disables cloud sync.
        remote_namespace: Subject namespace for the row-storage service.
        remote_timeout: Seconds to wait for each remote reply.
        user_id: Signed-in owner id, if any.
        identity_file: File holding the signed-in owner id; when set it is
            polled and overrides user_id.
        identity_poll_interval: Seconds between identity file polls.
        sync: Sync queue timing and retries.
        store: Coordinator timing.
        reminder_check_interval: Seconds between reminder checks.
        log_level: Logging level name.
        log_file: Optional log file path (stderr when None).
    """
    database_path: str = 'tminus.db'
    remote_url: Optional[str] = None
    remote_namespace: str = 'tminus'
    remote_timeout: float = 5.0
    user_id: Optional[str] = None
    identity_file: Optional[str] = None
    identity_poll_interval: float = 1.0
    sync: SyncConfig = field(default_factory=SyncConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    reminder_check_interval: float = 30.0
    log_level: str = 'info'
    log_file: Optional[str] = None

    @property
    def cloud_enabled(self) -> bool:
        """True when a real (non-placeholder) remote URL is configured."""
        url = (self.remote_url or '').strip()
        return bool(url) and url != PLACEHOLDER_REMOTE_URL

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)


def _section(conf: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = conf.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return value


def _build(cls, values: Dict[str, Any], section: str):
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
    if 'default_notification_times' in values:
        values = dict(values, default_notification_times=tuple(values['default_notification_times']))
    try:
        return cls(**values)
    except (SyncConfigError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{section}' settings: {e}") from e


def parse_config(conf: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build an AppConfig from a parsed config document.

    Args:
        conf: Parsed JSON/YAML document.
        environ: Environment overrides (default: os.environ).

    Raises:
        ConfigError: If a section has the wrong shape or invalid values.
    """
    if environ is None:
        environ = os.environ
    if not isinstance(conf, Mapping):
        raise ConfigError("Config root must be a mapping")

    database = _section(conf, 'database')
    remote = _section(conf, 'remote')
    notifications = _section(conf, 'notifications')
    logging_config = _section(conf, 'logging')

    config = AppConfig(
        database_path=database.get('path', 'tminus.db'),
        remote_url=remote.get('url'),
        remote_namespace=remote.get('namespace', 'tminus'),
        remote_timeout=float(remote.get('timeout', 5.0)),
        user_id=remote.get('user_id'),
        identity_file=remote.get('identity_file'),
        identity_poll_interval=float(remote.get('identity_poll_interval', 1.0)),
        sync=_build(SyncConfig, _section(conf, 'sync'), 'sync'),
        store=_build(StoreConfig, _section(conf, 'store'), 'store'),
        reminder_check_interval=float(notifications.get('check_interval', 30.0)),
        log_level=str(logging_config.get('level', 'info')),
        log_file=logging_config.get('file'),
    )

    if environ.get('TMINUS_REMOTE_URL'):
        config.remote_url = environ['TMINUS_REMOTE_URL']
    if environ.get('TMINUS_USER_ID'):
        config.user_id = environ['TMINUS_USER_ID']
    return config


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Load configuration from a JSON or YAML file.

    A missing (or unspecified) file yields the defaults, with cloud sync
    disabled unless the environment provides a remote URL.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    if not path or not os.path.exists(path):
        return parse_config({}, environ)

    try:
        with open(path, 'r', encoding='utf-8') as fp:
            if path.endswith(('.yaml', '.yml')):
                conf = yaml.safe_load(fp)
            else:
                conf = json.load(fp)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    return parse_config(conf or {}, environ)


def setup_logging(config: AppConfig) -> None:
    """Configure the root logger from config."""
    logging.basicConfig(level=config.log_level_value, format=LOG_FORMAT)
    if config.log_file:
        configure_logger(logging.getLogger(), config.log_file, LOG_FORMAT, config.log_level_value)
