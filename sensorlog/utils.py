"""
sensorlog Utility Functions

This module provides helper functions for:
    - Configuration management
    - Sensor plugin option handling
    - Logging utilities
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from platformdirs import user_config_dir, user_data_dir

from .selection import CONFIG_KEYS, SensorConfig

APP_NAME = "sensorlog"

# Configure module logger
logger = logging.getLogger("sensorlog")


# =============================================================================
# Configuration Management
# =============================================================================

def get_default_config_path() -> Path:
    """Return the per-user configuration file location."""
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "general": {
            "logging_interval": 10,
            "provider": "auto",
            "sysfs_root": None,
            "sensors_config": None,
        },
        "sensors": {
            "Sensor": [],
            "IgnoreSelected": False,
            "ExtendedSensorNaming": False,
        },
        "output": {
            "data_directory": None,
        },
        "debug": {
            "verbose": False,
            "log_level": "INFO",
            "save_debug_logs": False,
            "debug_log_file": "debug.log",
        },
    }


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Sections present in the file override the defaults key by key.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config: {e}")
        return get_default_config()

    if not isinstance(config, dict):
        return get_default_config()
    return _merge(get_default_config(), config)


def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save config file

    Returns:
        True if successful, False otherwise
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = Path(config_path)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error saving config: {e}")
        return False


def build_sensor_config(config: Optional[Dict[str, Any]] = None) -> Tuple[SensorConfig, int]:
    """
    Build a SensorConfig from the "sensors" configuration section.

    Each key is applied through SensorConfig.configure in file order. A
    list value for "Sensor" adds one entry per item.

    Args:
        config: Configuration dictionary

    Returns:
        (sensor config, status) where status is -1 if any key was rejected
    """
    config = config or get_default_config()
    options = config.get("sensors") or {}

    sensor_config = SensorConfig()
    status = 0
    for key, value in options.items():
        key = str(key)
        if value is None:
            values = []
        elif isinstance(value, (list, tuple)):
            values = list(value)
        else:
            values = [value]

        if not values:
            if key.lower() not in (k.lower() for k in CONFIG_KEYS):
                logger.warning(f"Unknown sensors option: {key}")
                status = -1
            continue

        for item in values:
            if sensor_config.configure(key, item) < 0:
                logger.warning(f"Unknown sensors option: {key}")
                status = -1
                break
    return sensor_config, status


def get_data_directory(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Get the directory CSV records are written to.

    Args:
        config: Configuration dictionary

    Returns:
        Path to data directory (created if needed)
    """
    config = config or get_default_config()
    data_dir = config.get("output", {}).get("data_directory")
    path = Path(data_dir) if data_dir else Path(user_data_dir(APP_NAME)) / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# =============================================================================
# Logging Utilities
# =============================================================================

def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Set up logging for sensorlog.

    Args:
        config: Configuration dictionary

    Returns:
        Configured logger
    """
    config = config or get_default_config()
    debug_config = config.get("debug", {})

    log_level = getattr(logging, str(debug_config.get("log_level", "INFO")).upper(), logging.INFO)
    verbose = debug_config.get("verbose", False)

    # Configure package logger
    logger = logging.getLogger("sensorlog")
    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    # Console handler
    if verbose or log_level == logging.DEBUG:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler (if enabled)
    if debug_config.get("save_debug_logs", False):
        log_file = Path(user_data_dir(APP_NAME)) / debug_config.get("debug_log_file", "debug.log")
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger
