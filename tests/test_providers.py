"""
Tests for Sensor Providers

Covers:
    - Handle generations and stale references
    - sensors.conf ignore statements
    - sysfs hwmon discovery, topology and value scaling
    - psutil fallback provider
    - Provider factory
"""

import io
from collections import namedtuple
from unittest.mock import Mock, patch

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import FakeProvider, ISA_CHIP, I2C_CHIP
from sensorlog.errors import (
    ConfigurationError,
    ProviderUnavailableError,
    SensorReadError,
    StaleReferenceError,
)
from sensorlog.naming import BusKind, ChipTopology
from sensorlog.providers import HwmonProvider, PsutilProvider, create_provider
from sensorlog.providers.base_provider import parse_sensors_conf


SENSORS_CONF = """\
# global ignore applies to every chip
ignore beep_enable

chip "it87-*"
    label temp1 "CPU Temp"
    ignore fan1

chip "lm75-*" "lm78-*"
    ignore temp1
"""


class TestBaseProvider:
    """Tests for handle management in BaseSensorProvider."""

    def test_enumerate_requires_initialize(self, fake_provider):
        """Test enumeration before initialization fails."""
        with pytest.raises(ProviderUnavailableError):
            fake_provider.enumerate_chips()

    def test_enumerate(self, fake_provider):
        """Test chips and features are enumerated in order."""
        assert fake_provider.initialize() is True
        chips = fake_provider.enumerate_chips()
        assert [c.topology for c in chips] == [ISA_CHIP, I2C_CHIP]

        features = fake_provider.enumerate_features(chips[0])
        assert [f.name for f in features] == [
            "temp1", "temp1_max", "fan1", "in0", "beep_enable",
        ]
        assert features[1].mapped is True

    def test_read_value(self, fake_provider):
        """Test reading a feature value."""
        fake_provider.initialize()
        chip = fake_provider.enumerate_chips()[0]
        feature = fake_provider.enumerate_features(chip)[0]
        assert fake_provider.read_value(chip, feature.ref) == 45.0

    def test_stale_handles_after_reinitialize(self, fake_provider):
        """Test handles from an earlier generation are rejected."""
        fake_provider.initialize()
        chip = fake_provider.enumerate_chips()[0]
        feature = fake_provider.enumerate_features(chip)[0]

        fake_provider.initialize()
        with pytest.raises(StaleReferenceError):
            fake_provider.read_value(chip, feature.ref)
        with pytest.raises(StaleReferenceError):
            fake_provider.enumerate_features(chip)

        fresh_chip = fake_provider.enumerate_chips()[0]
        with pytest.raises(StaleReferenceError):
            fake_provider.read_value(fresh_chip, feature.ref)

    def test_stale_is_a_read_error(self):
        """Test stale references count as read failures."""
        assert issubclass(StaleReferenceError, SensorReadError)

    def test_read_after_cleanup(self, fake_provider):
        """Test reads after cleanup fail."""
        fake_provider.initialize()
        chip = fake_provider.enumerate_chips()[0]
        feature = fake_provider.enumerate_features(chip)[0]
        fake_provider.cleanup()
        assert not fake_provider.is_initialized
        with pytest.raises(ProviderUnavailableError):
            fake_provider.read_value(chip, feature.ref)

    def test_failed_initialize(self):
        """Test discovery failure reports False and counts an error."""
        provider = FakeProvider(fail_init=True)
        assert provider.initialize() is False
        assert not provider.is_initialized
        assert provider.error_count == 1

    def test_context_manager(self, fake_provider):
        """Test provider works as context manager."""
        with fake_provider as provider:
            assert provider.is_initialized
        assert not fake_provider.is_initialized


class TestSensorsConf:
    """Tests for sensors.conf ignore handling."""

    def test_parse_rules(self):
        """Test chip scoping of ignore statements."""
        rules = parse_sensors_conf(io.StringIO(SENSORS_CONF))
        assert [(r.chip_patterns, r.feature) for r in rules] == [
            (("*",), "beep_enable"),
            (("it87-*",), "fan1"),
            (("lm75-*", "lm78-*"), "temp1"),
        ]

    def test_malformed_ignore(self):
        """Test an ignore statement without a feature is an error."""
        with pytest.raises(ProviderUnavailableError):
            parse_sensors_conf(io.StringIO("chip \"it87-*\"\n    ignore\n"))

    def test_unbalanced_quote(self):
        """Test an unbalanced quote is an error."""
        with pytest.raises(ProviderUnavailableError):
            parse_sensors_conf(io.StringIO("chip \"it87-*\n"))

    def test_malformed_config_fails_initialize(self, fake_provider):
        """Test initialization fails on a malformed config."""
        assert fake_provider.initialize(io.StringIO("chip\n")) is False

    def test_undecodable_config_fails_initialize(self, tmp_path):
        """Test initialization fails on a sensors.conf that is not UTF-8."""
        conf = tmp_path / "sensors3.conf"
        conf.write_bytes(b"# J\xf6rg's board\nchip \"it87-*\"\n")
        provider = HwmonProvider({"general": {"sysfs_root": str(tmp_path)}})
        with open(conf, "r", encoding="utf-8") as f:
            assert provider.initialize(f) is False
        assert provider.error_count == 1

    def test_natively_ignored(self, fake_provider):
        """Test ignore statements apply to matching chips only."""
        fake_provider.initialize(io.StringIO(SENSORS_CONF))
        it87, lm75 = fake_provider.enumerate_chips()
        it87_features = {f.name: f for f in fake_provider.enumerate_features(it87)}
        lm75_features = {f.name: f for f in fake_provider.enumerate_features(lm75)}

        assert fake_provider.is_natively_ignored(it87, it87_features["fan1"])
        assert fake_provider.is_natively_ignored(it87, it87_features["beep_enable"])
        assert not fake_provider.is_natively_ignored(it87, it87_features["temp1"])
        assert fake_provider.is_natively_ignored(lm75, lm75_features["temp1"])


class TestHwmonProvider:
    """Tests for the sysfs hwmon provider."""

    def _provider(self, root):
        return HwmonProvider({"general": {"sysfs_root": str(root)}})

    def test_missing_root(self, tmp_path):
        """Test a missing sysfs root fails initialization."""
        provider = self._provider(tmp_path / "nope")
        assert provider.initialize() is False

    def test_undecodable_name_fails_initialize(self, hwmon_tree):
        """Test a chip name with invalid bytes fails initialization."""
        (hwmon_tree / "hwmon0" / "name").write_bytes(b"\xff\xfe\n")
        provider = self._provider(hwmon_tree)
        assert provider.initialize() is False
        assert not provider.is_initialized

    def test_topologies(self, hwmon_tree):
        """Test chip topology is derived from device links."""
        provider = self._provider(hwmon_tree)
        assert provider.initialize() is True
        topologies = [c.topology for c in provider.enumerate_chips()]
        assert topologies == [
            ChipTopology("it87", BusKind.ISA, 0x290),
            ChipTopology("lm75", BusKind.I2C, 0x48, bus_number=0),
            ChipTopology("acpitz", BusKind.NAMED, 0, bus_name="virtual"),
        ]

    def test_features(self, hwmon_tree):
        """Test master and mapped features."""
        provider = self._provider(hwmon_tree)
        provider.initialize()
        it87 = provider.enumerate_chips()[0]
        features = [(f.name, f.mapped) for f in provider.enumerate_features(it87)]
        assert features == [
            ("fan1", False),
            ("in0", False),
            ("temp1", False),
            ("temp1_max", True),
            ("vid", False),
        ]

    def test_scaled_values(self, hwmon_tree):
        """Test values are scaled to natural units."""
        provider = self._provider(hwmon_tree)
        provider.initialize()
        it87 = provider.enumerate_chips()[0]
        values = {
            f.name: provider.read_value(it87, f.ref)
            for f in provider.enumerate_features(it87)
        }
        assert values["temp1"] == pytest.approx(45.0)
        assert values["fan1"] == pytest.approx(1200.0)
        assert values["in0"] == pytest.approx(1.2)
        assert values["vid"] == pytest.approx(1.1)

    def test_read_failure(self, hwmon_tree):
        """Test an unreadable attribute raises SensorReadError."""
        provider = self._provider(hwmon_tree)
        provider.initialize()
        lm75 = provider.enumerate_chips()[1]
        feature = provider.enumerate_features(lm75)[0]

        (hwmon_tree / "hwmon1" / "temp1_input").write_text("garbage\n")
        with pytest.raises(SensorReadError):
            provider.read_value(lm75, feature.ref)

        (hwmon_tree / "hwmon1" / "temp1_input").unlink()
        with pytest.raises(SensorReadError):
            provider.read_value(lm75, feature.ref)

    def test_pci_topology(self, tmp_path):
        """Test pci devices map to the pci bus with a packed address."""
        root = tmp_path / "class" / "hwmon"
        device = tmp_path / "devices" / "pci0000:00" / "0000:01:00.0"
        device.mkdir(parents=True)
        hwmon = root / "hwmon0"
        hwmon.mkdir(parents=True)
        (hwmon / "name").write_text("nvme\n")
        (hwmon / "device").symlink_to(device)

        provider = self._provider(root)
        provider.initialize()
        topology = provider.enumerate_chips()[0].topology
        assert topology == ChipTopology("nvme", BusKind.NAMED, 0x100, bus_name="pci")


Temp = namedtuple("Temp", "label current high critical")
Fan = namedtuple("Fan", "label current")


def _fake_psutil(temps, fans):
    module = Mock(spec=["sensors_temperatures", "sensors_fans"])
    module.sensors_temperatures.return_value = temps
    module.sensors_fans.return_value = fans
    return module


class TestPsutilProvider:
    """Tests for the psutil provider."""

    def test_discovery(self):
        """Test chips and features from psutil."""
        fake = _fake_psutil(
            {"coretemp": [Temp("Package id 0", 50.0, 80.0, 100.0), Temp("Core 0", 48.0, 80.0, 100.0)]},
            {"thinkpad": [Fan("", 2400)]},
        )
        with patch("sensorlog.providers.psutil_provider.psutil", fake):
            provider = PsutilProvider()
            assert provider.initialize() is True
            chips = provider.enumerate_chips()
            assert [c.topology.prefix for c in chips] == ["coretemp", "thinkpad"]
            assert chips[1].topology == ChipTopology(
                "thinkpad", BusKind.NAMED, 1, bus_name="virtual"
            )

            features = provider.enumerate_features(chips[0])
            assert [f.name for f in features] == ["temp1", "temp2"]
            assert provider.read_value(chips[0], features[1].ref) == 48.0

            fan = provider.enumerate_features(chips[1])[0]
            assert fan.name == "fan1"
            assert provider.read_value(chips[1], fan.ref) == 2400.0

    def test_vanished_sensor(self):
        """Test a sensor missing on a later query raises SensorReadError."""
        fake = _fake_psutil({"acpitz": [Temp("", 30.0, None, None)]}, {})
        with patch("sensorlog.providers.psutil_provider.psutil", fake):
            provider = PsutilProvider()
            provider.initialize()
            chip = provider.enumerate_chips()[0]
            feature = provider.enumerate_features(chip)[0]

            fake.sensors_temperatures.return_value = {}
            with pytest.raises(SensorReadError):
                provider.read_value(chip, feature.ref)

    def test_unsupported_platform(self):
        """Test initialization fails without sensor support."""
        with patch("sensorlog.providers.psutil_provider.psutil", Mock(spec=[])):
            assert PsutilProvider().initialize() is False


class TestCreateProvider:
    """Tests for create_provider()."""

    def test_explicit_names(self):
        assert isinstance(create_provider("hwmon"), HwmonProvider)
        assert isinstance(create_provider("PSUTIL"), PsutilProvider)

    def test_auto_prefers_hwmon(self, hwmon_tree):
        config = {"general": {"sysfs_root": str(hwmon_tree)}}
        assert isinstance(create_provider("auto", config), HwmonProvider)

    def test_auto_falls_back_to_psutil(self, tmp_path):
        config = {"general": {"sysfs_root": str(tmp_path / "missing")}}
        assert isinstance(create_provider("auto", config), PsutilProvider)

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            create_provider("libsensors")
