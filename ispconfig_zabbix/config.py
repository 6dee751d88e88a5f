"""
ISPConfig API Configuration

This module manages configuration for the ISPConfig SOAP API connection
and the monitoring scripts built on top of it.
Configuration can be set via:
1. Environment variables (optionally loaded from a config.env file)
2. Direct configuration via set_config()

Example config.env:
    ISPCONFIG_SOAP_URI=https://panel.example.com:8080/remote/
    ISPCONFIG_SOAP_LOCATION=https://panel.example.com:8080/remote/index.php
    ISPCONFIG_USERNAME=zabbix
    ISPCONFIG_PASSWORD=secret
    ISPCONFIG_MODULE_EMAIL=true

Example direct configuration:
    from ispconfig_zabbix.config import set_config

    set_config({
        'soap_uri': 'https://panel.example.com:8080/remote/',
        'soap_location': 'https://panel.example.com:8080/remote/index.php',
        'username': 'zabbix',
        'password': 'secret',
    })
"""

import logging
import logging.handlers
import os
import sys
from copy import deepcopy
from pathlib import Path
from typing import Optional, Dict, Any, List

from .errors import ConfigurationError

logger = logging.getLogger('ispconfig_zabbix')

SYSTEM_CONFIG_FILE = Path('/etc/ispconfig-zabbix-monitoring/config.env')

MODULES = ('websites', 'email', 'databases', 'dns', 'ftp')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_TRUE_VALUES = ('1', 'true', 'yes', 'y', 'on')


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value not in (None, '') else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value not in (None, '') else default
    except ValueError:
        return default


def _load_env_file(file_path: Path) -> None:
    """Load environment variables from a KEY=VALUE file."""
    with file_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            value = value.strip().strip('"').strip("'")
            # Only set if not already in environment (don't override existing vars)
            os.environ.setdefault(key.strip(), value)


def config_search_paths() -> List[Path]:
    """
    Locations checked for a config file, first found wins:
    1. ISPCONFIG_CONFIG_FILE environment variable
    2. /etc/ispconfig-zabbix-monitoring/config.env (system-wide installation)
    3. Current working directory .env.ispconfig
    4. Package's own config.env (development)
    """
    paths = []
    env_path = os.getenv('ISPCONFIG_CONFIG_FILE')
    if env_path:
        paths.append(Path(env_path))
    paths.append(SYSTEM_CONFIG_FILE)
    paths.append(Path.cwd() / ".env.ispconfig")
    paths.append(Path(__file__).parent / "config.env")
    return paths


def find_config_file() -> Optional[Path]:
    """Get the path to the first existing config file, or None"""
    for path in config_search_paths():
        if path.is_file():
            return path
    return None


class ISPConfigSettings:
    """ISPConfig API configuration"""

    def __init__(self):
        self.soap_uri: str = os.getenv('ISPCONFIG_SOAP_URI', '')
        self.soap_location: str = os.getenv('ISPCONFIG_SOAP_LOCATION', '')
        self.username: str = os.getenv('ISPCONFIG_USERNAME', '')
        self.password: str = os.getenv('ISPCONFIG_PASSWORD', '')
        self.verify_ssl: bool = _parse_bool(os.getenv('ISPCONFIG_VERIFY_SSL'), True)
        self.timeout: int = _parse_int(os.getenv('ISPCONFIG_TIMEOUT'), 30)
        self.max_retries: int = _parse_int(os.getenv('ISPCONFIG_MAX_RETRIES'), 3)
        self.retry_delay: float = _parse_float(os.getenv('ISPCONFIG_RETRY_DELAY'), 2)
        self.modules: Dict[str, bool] = {
            name: _parse_bool(os.getenv(f'ISPCONFIG_MODULE_{name.upper()}'), name == 'websites')
            for name in MODULES
        }
        self.log_enabled: bool = _parse_bool(os.getenv('ISPCONFIG_LOG_ENABLED'), True)
        self.log_file: Optional[str] = os.getenv('ISPCONFIG_LOG_FILE') or None
        self.log_level: str = os.getenv('ISPCONFIG_LOG_LEVEL', 'info')
        self.debug: bool = _parse_bool(os.getenv('ISPCONFIG_DEBUG'), False)


# Global configuration instance
_config = ISPConfigSettings()


def get_config() -> Dict[str, Any]:
    """
    Get current configuration

    Returns:
        Dictionary containing current configuration
    """
    return {
        'soap_uri': _config.soap_uri,
        'soap_location': _config.soap_location,
        'username': _config.username,
        'password': _config.password,
        'verify_ssl': _config.verify_ssl,
        'timeout': _config.timeout,
        'max_retries': _config.max_retries,
        'retry_delay': _config.retry_delay,
        'modules': deepcopy(_config.modules),
        'log_enabled': _config.log_enabled,
        'log_file': _config.log_file,
        'log_level': _config.log_level,
        'debug': _config.debug,
    }


def set_config(new_config: Dict[str, Any]) -> None:
    """
    Set configuration (merges with existing config)

    Args:
        new_config: Dictionary with configuration values to update.
            The 'modules' entry is merged per module.

    Example:
        set_config({
            'username': 'zabbix',
            'modules': {'email': True}
        })
    """
    for key, value in new_config.items():
        if key == 'modules':
            _config.modules.update({k: bool(v) for k, v in value.items()})
        elif hasattr(_config, key):
            setattr(_config, key, value)

    debug_log(f'Configuration updated: '
              f'soap_location={_config.soap_location}, '
              f'has_user={bool(_config.username)}, '
              f'verify_ssl={_config.verify_ssl}, '
              f'timeout={_config.timeout}')


def reset_config() -> None:
    """Reset configuration to defaults (from environment variables)"""
    global _config
    _config = ISPConfigSettings()


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a config file and the environment

    Args:
        config_file: Explicit config file path. When omitted the standard
            locations from config_search_paths() are searched and, if none
            exists, only the environment is used.

    Returns:
        Dictionary containing the loaded configuration

    Raises:
        ConfigurationError: If an explicit config file does not exist
    """
    if config_file:
        path = Path(config_file)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_file}")
    else:
        path = find_config_file()

    if path is not None:
        _load_env_file(path)

    reset_config()
    debug_log(f'Configuration loaded from {path or "environment"}')
    return get_config()


def is_module_enabled(config: Dict[str, Any], module: str) -> bool:
    """Check whether a monitoring module is enabled in the configuration"""
    return bool(config.get('modules', {}).get(module))


def configure_logging(config: Dict[str, Any]) -> None:
    """
    Set up logging for the monitoring scripts

    Log output always goes to stderr because stdout carries the value read
    by the Zabbix agent. When log_enabled and log_file are set, records are
    also written to a rotating log file.
    """
    level_name = 'DEBUG' if config.get('debug') else str(config.get('log_level', 'info')).upper()
    level = getattr(logging, level_name, logging.INFO)

    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file = config.get('log_file')
    if config.get('log_enabled') and log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=1024 * 1024, backupCount=5)
        except OSError as e:
            logger.warning(f"Cannot open log file {log_file}: {e}")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)


def debug_log(message: str, *args: Any) -> None:
    """
    Debug log helper

    Args:
        message: Log message
        *args: Additional arguments to log
    """
    if args:
        logger.debug('[ISPConfig API] %s %s', message, ' '.join(str(a) for a in args))
    else:
        logger.debug('[ISPConfig API] %s', message)
