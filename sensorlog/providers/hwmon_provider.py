"""
Sysfs hwmon Sensor Provider

Discovers hardware-monitoring chips under /sys/class/hwmon and reads their
feature values directly from the kernel's sysfs attributes, scaled the way
libsensors scales them.
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from ..errors import ProviderUnavailableError, SensorReadError
from ..naming import BusKind, ChipTopology
from .base_provider import BaseSensorProvider

logger = logging.getLogger("sensorlog.providers.hwmon")

DEFAULT_SYSFS_ROOT = "/sys/class/hwmon"

# <type><number>_<attribute>, e.g. temp1_input, in0_max, fan2_alarm
_ATTRIBUTE_RE = re.compile(r"^([a-z]+)(\d+)_([a-z_]+)$")
_VID_RE = re.compile(r"^cpu(\d+)_vid$")
_I2C_DEVICE_RE = re.compile(r"^(\d+)-([0-9a-fA-F]{4})$")
_PCI_DEVICE_RE = re.compile(
    r"^([0-9a-fA-F]{4}):([0-9a-fA-F]{2}):([0-9a-fA-F]{2})\.([0-7])$"
)
_PLATFORM_DEVICE_RE = re.compile(r"^.+\.(\d+)$")

_SCALES = {
    "in": 1000.0,
    "temp": 1000.0,
    "curr": 1000.0,
    "humidity": 1000.0,
    "power": 1000000.0,
    "energy": 1000000.0,
}

# Attribute files that describe a feature rather than measure it
_NON_FEATURE_SUFFIXES = ("label",)


class _Attribute(NamedTuple):
    name: str
    mapped: bool
    path: Path
    scale: float


def _sort_key(entry: Tuple[str, str, int, str]) -> Tuple[str, int, bool, str]:
    _, kind, number, suffix = entry
    return kind, number, suffix != "input", suffix


class HwmonProvider(BaseSensorProvider):
    """
    Sensor provider backed by the Linux sysfs hwmon class.

    Chip topology comes from each hwmon device's "device" link:
        - platform/isa devices  -> ISA bus, address from the ".N" suffix
        - "B-AAAA" i2c devices  -> I2C bus B, address 0xAAAA
        - pci devices           -> "pci" bus, address from domain/bus/slot/function
        - anything else         -> named bus ("acpi", "virtual", ...) at address 0
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        general_config = self.config.get("general", {})
        self.sysfs_root = Path(general_config.get("sysfs_root") or DEFAULT_SYSFS_ROOT)
        self._attributes: List[List[_Attribute]] = []

    def _discover(self) -> List[ChipTopology]:
        """Scan the hwmon class directory for chips."""
        if not self.sysfs_root.is_dir():
            raise ProviderUnavailableError(f"{self.sysfs_root} is not a directory")

        chips: List[ChipTopology] = []
        self._attributes = []

        hwmon_dirs = sorted(
            (d for d in self.sysfs_root.iterdir() if d.name.startswith("hwmon")),
            key=lambda d: int(d.name[5:]) if d.name[5:].isdigit() else -1,
        )
        for hwmon_dir in hwmon_dirs:
            attr_dir = self._attribute_dir(hwmon_dir)
            if attr_dir is None:
                logger.debug(f"Skipping {hwmon_dir}: no name attribute")
                continue

            prefix = (attr_dir / "name").read_text(encoding="utf-8").strip()
            chips.append(self._topology(prefix, hwmon_dir))
            self._attributes.append(self._scan_attributes(attr_dir))
            logger.debug(f"Detected chip {prefix} in {hwmon_dir}")

        return chips

    def _features(self, chip_index: int) -> List[Tuple[str, bool]]:
        return [(a.name, a.mapped) for a in self._attributes[chip_index]]

    def _read(self, chip_index: int, number: int) -> float:
        attribute = self._attributes[chip_index][number]
        try:
            raw = attribute.path.read_text(encoding="utf-8").strip()
            return float(int(raw)) / attribute.scale
        except (OSError, ValueError) as e:
            raise SensorReadError(f"Cannot read {attribute.path}: {e}") from e

    def cleanup(self) -> None:
        """Drop discovered attribute paths."""
        super().cleanup()
        self._attributes = []

    @staticmethod
    def _attribute_dir(hwmon_dir: Path) -> Optional[Path]:
        # Older drivers keep their attributes on the parent device
        for candidate in (hwmon_dir, hwmon_dir / "device"):
            if (candidate / "name").is_file():
                return candidate
        return None

    @staticmethod
    def _topology(prefix: str, hwmon_dir: Path) -> ChipTopology:
        """Derive chip topology from the hwmon device link."""
        device_link = hwmon_dir / "device"
        if not device_link.exists():
            return ChipTopology(prefix, BusKind.NAMED, 0, bus_name="virtual")

        device = Path(os.path.realpath(device_link))
        subsystem_link = device / "subsystem"
        subsystem = (
            Path(os.path.realpath(subsystem_link)).name
            if subsystem_link.exists() else ""
        )

        match = _I2C_DEVICE_RE.match(device.name)
        if match:
            return ChipTopology(
                prefix, BusKind.I2C, int(match.group(2), 16),
                bus_number=int(match.group(1)),
            )

        match = _PCI_DEVICE_RE.match(device.name)
        if subsystem == "pci" or match:
            address = 0
            if match:
                domain, bus, slot, function = (int(g, 16) for g in match.groups())
                address = (domain << 16) + (bus << 8) + (slot << 3) + function
            return ChipTopology(prefix, BusKind.NAMED, address, bus_name="pci")

        if subsystem in ("platform", "isa"):
            match = _PLATFORM_DEVICE_RE.match(device.name)
            address = int(match.group(1)) if match else 0
            return ChipTopology(prefix, BusKind.ISA, address)

        return ChipTopology(prefix, BusKind.NAMED, 0, bus_name=subsystem or "virtual")

    @staticmethod
    def _scan_attributes(attr_dir: Path) -> List[_Attribute]:
        """List the measurable attributes of a chip in a stable order."""
        found: List[Tuple[str, str, int, str]] = []
        for entry in os.listdir(attr_dir):
            vid = _VID_RE.match(entry)
            if vid:
                found.append((entry, "vid", int(vid.group(1)), "input"))
                continue
            if entry == "vrm":
                found.append((entry, "vrm", 0, "input"))
                continue
            match = _ATTRIBUTE_RE.match(entry)
            if match and match.group(3) not in _NON_FEATURE_SUFFIXES:
                found.append((entry, match.group(1), int(match.group(2)), match.group(3)))

        attributes = []
        for filename, kind, number, suffix in sorted(found, key=_sort_key):
            if kind == "vid":
                name = "vid" if number == 0 else f"vid{number}"
                scale = 1000.0
            elif kind == "vrm":
                name = "vrm"
                scale = 10.0
            else:
                name = f"{kind}{number}"
                scale = _SCALES.get(kind, 1.0)

            mapped = suffix != "input"
            if mapped:
                name = f"{name}_{suffix}"
            attributes.append(_Attribute(name, mapped, attr_dir / filename, scale))
        return attributes
