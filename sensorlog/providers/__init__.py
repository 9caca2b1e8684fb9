"""
Sensor Providers Module

Hardware-monitoring backends that enumerate chips and features and read
live sensor values. New backends implement the BaseSensorProvider
interface.

Available Providers:
    - hwmon_provider: Linux sysfs hwmon class (default on Linux)
    - psutil_provider: psutil sensors_temperatures()/sensors_fans() fallback
"""

from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ConfigurationError
from .base_provider import BaseSensorProvider, ChipRef, FeatureRef, FeatureInfo
from .hwmon_provider import HwmonProvider, DEFAULT_SYSFS_ROOT
from .psutil_provider import PsutilProvider

__all__ = [
    "BaseSensorProvider",
    "ChipRef",
    "FeatureRef",
    "FeatureInfo",
    "HwmonProvider",
    "PsutilProvider",
    "create_provider",
]


def create_provider(
    name: str = "auto",
    config: Optional[Dict[str, Any]] = None,
) -> BaseSensorProvider:
    """
    Create a sensor provider by name.

    Args:
        name: "hwmon", "psutil", or "auto" (hwmon when sysfs is present)
        config: Configuration dictionary passed to the provider

    Returns:
        An uninitialized provider instance
    """
    config = config or {}
    name = (name or "auto").lower()

    if name == "auto":
        sysfs_root = config.get("general", {}).get("sysfs_root") or DEFAULT_SYSFS_ROOT
        name = "hwmon" if Path(sysfs_root).is_dir() else "psutil"

    if name == "hwmon":
        return HwmonProvider(config)
    if name == "psutil":
        return PsutilProvider(config)
    raise ConfigurationError(f"Unknown sensor provider: {name}")
