"""
Sensor Label Classification

Maps raw feature labels reported by the hardware-monitoring provider to a
semantic category using an ordered table of known label prefixes.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from .errors import LabelTableError


class Category(Enum):
    """Semantic category of a sensor feature."""
    UNKNOWN = 0
    VOLTAGE = 1
    FANSPEED = 2
    TEMPERATURE = 3

    @property
    def suffix(self) -> str:
        """Name used for this category inside extended identifiers."""
        return self.name.lower()


@dataclass(frozen=True)
class KnownLabelRule:
    """A label prefix and the category it maps to."""
    pattern: str
    category: Category


class LabelTable:
    """
    Ordered, immutable list of label rules.

    Rules are tested top to bottom and the first prefix match wins, so a
    pattern must come before any shorter pattern it starts with ("temp1"
    before "temp"). The ordering is checked once, at construction.
    """

    def __init__(self, rules: Iterable[KnownLabelRule]):
        self._rules: Tuple[KnownLabelRule, ...] = tuple(rules)
        self._validate()

    def _validate(self) -> None:
        seen = set()
        for index, rule in enumerate(self._rules):
            if not rule.pattern:
                raise LabelTableError(f"Empty pattern at position {index}")
            if rule.pattern in seen:
                raise LabelTableError(f"Duplicate pattern {rule.pattern!r}")
            seen.add(rule.pattern)

            # A later, longer pattern would be shadowed by this one
            for later in self._rules[index + 1:]:
                if later.pattern != rule.pattern and later.pattern.startswith(rule.pattern):
                    raise LabelTableError(
                        f"Pattern {later.pattern!r} must precede {rule.pattern!r}"
                    )

    def match(self, raw_label: str) -> Optional[KnownLabelRule]:
        """Return the first rule whose pattern is a prefix of raw_label."""
        for rule in self._rules:
            if raw_label.startswith(rule.pattern):
                return rule
        return None

    def __iter__(self) -> Iterator[KnownLabelRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def _rules(category: Category, *patterns: str) -> Tuple[KnownLabelRule, ...]:
    return tuple(KnownLabelRule(pattern, category) for pattern in patterns)


KNOWN_LABELS = LabelTable(
    _rules(Category.FANSPEED, "fan7", "fan6", "fan5", "fan4", "fan3", "fan2", "fan1")
    + _rules(Category.VOLTAGE, "in8", "in7", "in6", "in5", "in4", "in3", "in2", "in1", "in0")
    + _rules(
        Category.TEMPERATURE,
        "remote_temp", "temp7", "temp6", "temp5", "temp4", "temp3", "temp2", "temp1", "temp",
    )
    + _rules(
        Category.VOLTAGE,
        "Vccp2", "Vccp1", "vdd",
        "vid4", "vid3", "vid2", "vid1", "vid",
        "vin4", "vin3", "vin2", "vin1",
        "voltbatt", "volt12", "volt5", "vrm",
        "12V", "2.5V", "3.3V", "5V",
    )
)


def classify(raw_label: str, table: LabelTable = KNOWN_LABELS) -> Optional[Category]:
    """
    Classify a raw feature label.

    Args:
        raw_label: Feature name as reported by the provider (e.g. "temp1")
        table: Label table to match against

    Returns:
        Category of the first matching rule, or None if no rule matches
    """
    rule = table.match(raw_label)
    return rule.category if rule else None
