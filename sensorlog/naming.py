"""
Sensor Identifier Construction

Builds the stable identifiers under which sensor readings are submitted
and persisted. Two schemes are supported:

    - legacy:   <chip prefix>-<feature>
    - extended: <chip prefix>-<bus descriptor>/<category>-<feature>

The legacy scheme carries no bus information, so two chips sharing a
prefix map to the same identifier and their readings end up in the same
record.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional

from .errors import IdentifierOverflowError
from .labels import Category

# Identifiers and filenames must stay strictly below this length
MAX_NAME_LENGTH = 512

LEGACY_FILENAME_TEMPLATE = "sensors-%s"
EXTENDED_FILENAME_TEMPLATE = "lm_sensors-%s"

CATEGORY_SEPARATOR = "/"


class BusKind(Enum):
    """Kind of bus a hardware-monitoring chip sits on."""
    ISA = "isa"
    I2C = "i2c"
    NAMED = "named"


class NamingScheme(Enum):
    """Identifier naming scheme."""
    LEGACY = "legacy"
    EXTENDED = "extended"


@dataclass(frozen=True)
class ChipTopology:
    """Identity of a chip: its prefix name plus where it sits on the bus."""
    prefix: str
    bus_kind: BusKind
    address: int = 0
    bus_number: Optional[int] = None
    bus_name: Optional[str] = None


def _checked(name: str) -> str:
    if len(name) >= MAX_NAME_LENGTH:
        raise IdentifierOverflowError(
            f"Name of {len(name)} characters exceeds limit of {MAX_NAME_LENGTH - 1}"
        )
    return name


def bus_descriptor(topology: ChipTopology) -> str:
    """Return the bus part of a chip name, e.g. "isa-0290" or "i2c-0-2d"."""
    if topology.bus_kind is BusKind.ISA:
        return f"isa-{topology.address:04x}"
    if topology.bus_kind is BusKind.NAMED:
        return f"{topology.bus_name}-{topology.address:04x}"
    return f"i2c-{topology.bus_number}-{topology.address:02x}"


def chip_full_name(topology: ChipTopology) -> str:
    """Return the lm-sensors style chip name, e.g. "it87-isa-0290"."""
    return f"{topology.prefix}-{bus_descriptor(topology)}"


def build_identifier(
    topology: ChipTopology,
    raw_label: str,
    category: Category,
    scheme: NamingScheme,
) -> str:
    """
    Build the identifier for one chip feature.

    Args:
        topology: Chip the feature belongs to
        raw_label: Raw feature label (e.g. "temp1")
        category: Category assigned by the label classifier
        scheme: Naming scheme to apply

    Returns:
        Identifier string

    Raises:
        IdentifierOverflowError: If the identifier would exceed MAX_NAME_LENGTH
    """
    if scheme is NamingScheme.EXTENDED:
        chip = _checked(
            f"{chip_full_name(topology)}{CATEGORY_SEPARATOR}{category.suffix}"
        )
    else:
        chip = topology.prefix
    return _checked(f"{chip}-{raw_label}")


def filename_for(instance: str, scheme: NamingScheme) -> str:
    """
    Build the persisted record name for an instance identifier.

    The persistence sink appends its own file extension.

    Raises:
        IdentifierOverflowError: If the filename would exceed MAX_NAME_LENGTH
    """
    if scheme is NamingScheme.EXTENDED:
        template = EXTENDED_FILENAME_TEMPLATE
    else:
        template = LEGACY_FILENAME_TEMPLATE
    return _checked(template % instance)


def category_part(identifier: str) -> Optional[str]:
    """
    Return the category-bearing tail of an extended identifier.

    "it87-isa-0290/voltage-in0" gives "voltage-in0"; the category suffix is
    its leading component. Returns None if the identifier has no separator.
    """
    _, separator, tail = identifier.rpartition(CATEGORY_SEPARATOR)
    if not separator:
        return None
    return tail
