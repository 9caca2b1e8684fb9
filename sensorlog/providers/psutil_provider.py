"""
psutil Sensor Provider

Fallback provider built on psutil's sensors_temperatures() and
sensors_fans(). psutil exposes neither voltages nor bus addresses, so every
chip is placed on the "virtual" bus and numbered by its sorted position.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import psutil

from ..errors import ProviderUnavailableError, SensorReadError
from ..naming import BusKind, ChipTopology
from .base_provider import BaseSensorProvider

logger = logging.getLogger("sensorlog.providers.psutil")


class PsutilProvider(BaseSensorProvider):
    """
    Cross-platform sensor provider using psutil.

    Collects:
        - Temperatures, exposed as temp1..tempN per chip
        - Fan speeds, exposed as fan1..fanN per chip
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._chip_names: List[str] = []
        # Per chip: (feature name, psutil group, position within group)
        self._layout: List[List[Tuple[str, str, int]]] = []

    @staticmethod
    def _query(group: str) -> Dict[str, list]:
        reader = getattr(psutil, f"sensors_{group}", None)
        if reader is None:
            return {}
        return reader() or {}

    def _discover(self) -> List[ChipTopology]:
        if not hasattr(psutil, "sensors_temperatures") and not hasattr(psutil, "sensors_fans"):
            raise ProviderUnavailableError("psutil exposes no sensors on this platform")

        try:
            groups = {
                "temperatures": self._query("temperatures"),
                "fans": self._query("fans"),
            }
        except (OSError, RuntimeError) as e:
            raise ProviderUnavailableError(f"psutil sensor query failed: {e}") from e

        self._chip_names = sorted(set(groups["temperatures"]) | set(groups["fans"]))
        self._layout = []
        chips = []
        for address, name in enumerate(self._chip_names):
            features = []
            for group, kind in (("temperatures", "temp"), ("fans", "fan")):
                for position in range(len(groups[group].get(name, []))):
                    features.append((f"{kind}{position + 1}", group, position))
            self._layout.append(features)
            chips.append(ChipTopology(name, BusKind.NAMED, address, bus_name="virtual"))
        return chips

    def _features(self, chip_index: int) -> List[Tuple[str, bool]]:
        return [(name, False) for name, _, _ in self._layout[chip_index]]

    def _read(self, chip_index: int, number: int) -> float:
        chip_name = self._chip_names[chip_index]
        name, group, position = self._layout[chip_index][number]
        try:
            entries = self._query(group).get(chip_name, [])
        except (OSError, RuntimeError) as e:
            raise SensorReadError(f"psutil query for {chip_name}/{name} failed: {e}") from e

        if position >= len(entries):
            raise SensorReadError(f"{chip_name}/{name} is no longer reported")
        return float(entries[position].current)

    def cleanup(self) -> None:
        super().cleanup()
        self._chip_names = []
        self._layout = []
