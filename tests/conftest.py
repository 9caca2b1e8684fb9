"""
Pytest Configuration and Fixtures

Provides shared fixtures and configuration for all tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sensorlog.errors import ProviderUnavailableError, SensorReadError
from sensorlog.naming import BusKind, ChipTopology
from sensorlog.providers.base_provider import BaseSensorProvider
from sensorlog.utils import get_default_config


ISA_CHIP = ChipTopology("it87", BusKind.ISA, 0x290)
I2C_CHIP = ChipTopology("lm75", BusKind.I2C, 0x48, bus_number=0)


class FakeProvider(BaseSensorProvider):
    """In-memory provider driven by (topology, [(name, mapped, value)]) specs."""

    def __init__(self, chips=None, fail_init=False, config=None):
        super().__init__(config)
        self.chip_specs = list(chips or [])
        self.fail_init = fail_init
        self.failing = set()
        self.cleanup_calls = 0
        self.config_text = None

    def initialize(self, config_source=None):
        if config_source is not None:
            self.config_text = config_source.read()
            config_source.seek(0)
        return super().initialize(config_source)

    def _discover(self):
        if self.fail_init:
            raise ProviderUnavailableError("no sensors available")
        return [topology for topology, _ in self.chip_specs]

    def _features(self, chip_index):
        return [(name, mapped) for name, mapped, _ in self.chip_specs[chip_index][1]]

    def _read(self, chip_index, number):
        topology, features = self.chip_specs[chip_index]
        name, _, value = features[number]
        if (topology.prefix, name) in self.failing:
            raise SensorReadError(f"{topology.prefix}/{name} unreadable")
        return value

    def cleanup(self):
        self.cleanup_calls += 1
        super().cleanup()


@pytest.fixture
def default_config():
    """Provide default configuration."""
    return get_default_config()


@pytest.fixture
def sample_chips():
    """Two chips: an ISA Super-I/O and an I2C temperature sensor."""
    return [
        (ISA_CHIP, [
            ("temp1", False, 45.0),
            ("temp1_max", True, 80.0),
            ("fan1", False, 1200.0),
            ("in0", False, 1.2),
            ("beep_enable", False, 1.0),
        ]),
        (I2C_CHIP, [
            ("temp1", False, 38.5),
        ]),
    ]


@pytest.fixture
def fake_provider(sample_chips):
    """Provide a fake provider with the sample chips."""
    return FakeProvider(sample_chips)


@pytest.fixture
def config_with_temp_dir(tmp_path):
    """Provide config writing records to a temporary directory."""
    config = get_default_config()
    config["output"]["data_directory"] = str(tmp_path / "data")
    config["general"]["provider"] = "hwmon"
    config["general"]["sysfs_root"] = str(tmp_path / "missing")
    config["general"]["sensors_config"] = None
    return config


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture
def hwmon_tree(tmp_path):
    """
    Build a fake /sys/class/hwmon tree.

        hwmon0: it87 on platform device it87.656 (ISA 0x290)
        hwmon1: lm75 on i2c device 0-0048
        hwmon2: acpitz without a device link
    """
    root = tmp_path / "sys"
    hwmon_root = root / "class" / "hwmon"
    hwmon_root.mkdir(parents=True)

    platform_bus = root / "bus" / "platform"
    platform_bus.mkdir(parents=True)
    it87_dev = root / "devices" / "platform" / "it87.656"
    it87_dev.mkdir(parents=True)
    os.symlink(platform_bus, it87_dev / "subsystem")

    lm75_dev = root / "devices" / "pci0000:00" / "i2c-0" / "0-0048"
    lm75_dev.mkdir(parents=True)

    hwmon0 = hwmon_root / "hwmon0"
    hwmon0.mkdir()
    os.symlink(it87_dev, hwmon0 / "device")
    _write(hwmon0 / "name", "it87\n")
    _write(hwmon0 / "temp1_input", "45000\n")
    _write(hwmon0 / "temp1_max", "80000\n")
    _write(hwmon0 / "temp1_label", "CPU\n")
    _write(hwmon0 / "fan1_input", "1200\n")
    _write(hwmon0 / "in0_input", "1200\n")
    _write(hwmon0 / "cpu0_vid", "1100\n")
    _write(hwmon0 / "pwm1", "128\n")

    hwmon1 = hwmon_root / "hwmon1"
    hwmon1.mkdir()
    os.symlink(lm75_dev, hwmon1 / "device")
    _write(hwmon1 / "name", "lm75\n")
    _write(hwmon1 / "temp1_input", "38500\n")

    hwmon2 = hwmon_root / "hwmon2"
    hwmon2.mkdir()
    _write(hwmon2 / "name", "acpitz\n")
    _write(hwmon2 / "temp1_input", "27800\n")

    return hwmon_root
