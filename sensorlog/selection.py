"""
Sensor Selection and Plugin Configuration

Holds the user-configured sensor list and naming options, and decides
whether a given sensor identifier is collected.
"""

from dataclasses import dataclass, field
from typing import Any, List, Tuple

from .naming import NamingScheme

CONFIG_KEYS = ("Sensor", "IgnoreSelected", "ExtendedSensorNaming")

_TRUE_VALUES = ("true", "yes", "on")


@dataclass(frozen=True)
class SelectionList:
    """
    Configured identifiers plus the selection mode.

    With invert False the entries are the only sensors collected; with
    invert True they are the sensors skipped. An empty list selects
    everything.
    """
    entries: Tuple[str, ...] = ()
    invert: bool = False


def is_accepted(identifier: str, selection: SelectionList) -> bool:
    """
    Decide whether a sensor identifier is collected.

    Args:
        identifier: Sensor instance identifier
        selection: Configured selection list

    Returns:
        True if the identifier passes the selection
    """
    if not selection.entries:
        return True

    wanted = identifier.lower()
    for entry in selection.entries:
        if entry.lower() == wanted:
            return not selection.invert
    return selection.invert


def parse_bool(value: Any) -> bool:
    """Interpret True/Yes/On (any case) as true and anything else as false."""
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class SensorConfig:
    """Configuration of one sensors collector instance."""
    sensors: List[str] = field(default_factory=list)
    ignore_selected: bool = False
    extended_naming: bool = False

    def configure(self, key: str, value: Any) -> int:
        """
        Apply a single configuration option.

        Args:
            key: Option name, matched case-insensitively
            value: Option value

        Returns:
            0 if the option was applied, -1 if the key is not recognized
        """
        key = key.lower()
        if key == "sensor":
            self.sensors.append(str(value))
        elif key == "ignoreselected":
            self.ignore_selected = parse_bool(value)
        elif key == "extendedsensornaming":
            self.extended_naming = parse_bool(value)
        else:
            return -1
        return 0

    @property
    def selection(self) -> SelectionList:
        return SelectionList(tuple(self.sensors), self.ignore_selected)

    @property
    def scheme(self) -> NamingScheme:
        if self.extended_naming:
            return NamingScheme.EXTENDED
        return NamingScheme.LEGACY
