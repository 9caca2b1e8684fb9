"""
Base Sensor Provider Interface

All hardware-monitoring backends inherit from BaseSensorProvider. A
provider enumerates chips and their features, reads live values, and
reports which features the local sensors.conf tells it to ignore.

Chip and feature handles are only valid for the generation of the
provider that issued them. Every initialize() starts a new generation;
passing an older handle to the provider raises StaleReferenceError.
"""

import shlex
import fnmatch
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TextIO, Tuple

from ..errors import ProviderUnavailableError, StaleReferenceError
from ..naming import ChipTopology, chip_full_name

logger = logging.getLogger("sensorlog.providers")


@dataclass(frozen=True)
class ChipRef:
    """Opaque handle to a detected chip."""
    index: int
    generation: int
    topology: ChipTopology


@dataclass(frozen=True)
class FeatureRef:
    """Opaque handle to one feature of a chip."""
    chip_index: int
    number: int
    generation: int


@dataclass(frozen=True)
class FeatureInfo:
    """A feature as enumerated by the provider."""
    ref: FeatureRef
    name: str
    mapped: bool = False


@dataclass(frozen=True)
class IgnoreRule:
    """An "ignore" statement from sensors.conf, scoped by chip patterns."""
    chip_patterns: Tuple[str, ...]
    feature: str


def parse_sensors_conf(stream: TextIO) -> List[IgnoreRule]:
    """
    Extract ignore statements from a sensors.conf stream.

    Only "chip" and "ignore" statements are interpreted; everything else
    (label, compute, set, bus) is skipped.

    Raises:
        ProviderUnavailableError: On a malformed chip or ignore statement
    """
    rules: List[IgnoreRule] = []
    chip_patterns: Tuple[str, ...] = ("*",)

    for line_number, line in enumerate(stream, start=1):
        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as e:
            raise ProviderUnavailableError(f"sensors.conf line {line_number}: {e}") from e
        if not tokens:
            continue

        keyword, args = tokens[0], tokens[1:]
        if keyword == "chip":
            if not args:
                raise ProviderUnavailableError(
                    f"sensors.conf line {line_number}: chip statement without a name"
                )
            chip_patterns = tuple(args)
        elif keyword == "ignore":
            if len(args) != 1:
                raise ProviderUnavailableError(
                    f"sensors.conf line {line_number}: ignore takes one feature name"
                )
            rules.append(IgnoreRule(chip_patterns, args[0]))

    return rules


class BaseSensorProvider(ABC):
    """
    Abstract base class for hardware-monitoring providers.

    Example:
        class MyProvider(BaseSensorProvider):
            def _discover(self) -> List[ChipTopology]:
                # Return detected chips, in a stable order
                pass

            def _features(self, chip_index: int) -> List[Tuple[str, bool]]:
                # Return (name, mapped) for each feature of the chip
                pass

            def _read(self, chip_index: int, number: int) -> float:
                # Read the live value, raising SensorReadError on failure
                pass
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the provider with optional configuration.

        Args:
            config: Optional dictionary containing provider-specific settings
        """
        self.config = config or {}
        self._initialized = False
        self._generation = 0
        self._chips: List[ChipTopology] = []
        self._ignore_rules: List[IgnoreRule] = []
        self._error_count = 0

    @property
    def is_initialized(self) -> bool:
        """Check if the provider has been successfully initialized."""
        return self._initialized

    @property
    def provider_name(self) -> str:
        """Return the name of this provider."""
        return self.__class__.__name__

    @property
    def generation(self) -> int:
        """Generation of the handles currently issued."""
        return self._generation

    @property
    def error_count(self) -> int:
        return self._error_count

    @abstractmethod
    def _discover(self) -> List[ChipTopology]:
        """
        Detect chips.

        Returns:
            Chip topologies in a stable order

        Raises:
            ProviderUnavailableError: If the hardware source cannot be scanned
        """
        pass

    @abstractmethod
    def _features(self, chip_index: int) -> List[Tuple[str, bool]]:
        """
        List the features of a detected chip.

        Returns:
            (name, mapped) pairs; the position in the list is the feature number
        """
        pass

    @abstractmethod
    def _read(self, chip_index: int, number: int) -> float:
        """
        Read one feature value.

        Raises:
            SensorReadError: If the value cannot be read
        """
        pass

    def initialize(self, config_source: Optional[TextIO] = None) -> bool:
        """
        Initialize the provider, invalidating all previously issued handles.

        Args:
            config_source: Open sensors.conf stream, or None for no native ignores

        Returns:
            True if initialization was successful, False otherwise
        """
        self._generation += 1
        self._initialized = False
        self._chips = []
        self._ignore_rules = []

        try:
            if config_source is not None:
                self._ignore_rules = parse_sensors_conf(config_source)
            self._chips = list(self._discover())
        except (ProviderUnavailableError, OSError, UnicodeDecodeError) as e:
            self.record_error(str(e))
            logger.error(f"{self.provider_name}: initialization failed: {e}")
            return False

        self._initialized = True
        return True

    def enumerate_chips(self) -> List[ChipRef]:
        """Return handles to all detected chips."""
        self._require_initialized()
        return [
            ChipRef(index=i, generation=self._generation, topology=topology)
            for i, topology in enumerate(self._chips)
        ]

    def enumerate_features(self, chip: ChipRef) -> List[FeatureInfo]:
        """Return all features of a chip, master and mapped alike."""
        self._check_chip(chip)
        return [
            FeatureInfo(
                ref=FeatureRef(chip.index, number, self._generation),
                name=name,
                mapped=mapped,
            )
            for number, (name, mapped) in enumerate(self._features(chip.index))
        ]

    def is_natively_ignored(self, chip: ChipRef, feature: FeatureInfo) -> bool:
        """Check whether sensors.conf has an ignore statement for the feature."""
        self._check_chip(chip)
        full_name = chip_full_name(chip.topology)
        for rule in self._ignore_rules:
            if rule.feature != feature.name:
                continue
            if any(fnmatch.fnmatchcase(full_name, p) for p in rule.chip_patterns):
                return True
        return False

    def read_value(self, chip: ChipRef, feature: FeatureRef) -> float:
        """
        Read the live value of a feature.

        Raises:
            StaleReferenceError: If a handle belongs to an earlier generation
            SensorReadError: If the value cannot be read
        """
        self._check_chip(chip)
        if feature.generation != self._generation or feature.chip_index != chip.index:
            raise StaleReferenceError(
                f"Feature handle {feature.chip_index}/{feature.number} is no longer valid"
            )
        return self._read(chip.index, feature.number)

    def cleanup(self) -> None:
        """Release provider state. Outstanding handles become stale."""
        self._chips = []
        self._ignore_rules = []
        self._initialized = False
        self._generation += 1

    def record_error(self, error_message: str) -> None:
        """
        Record an error occurrence.

        Args:
            error_message: Description of the error
        """
        self._error_count += 1
        logger.debug(f"{self.provider_name}: {error_message}")

    def reset_error_count(self) -> None:
        """Reset the error counter."""
        self._error_count = 0

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderUnavailableError(f"{self.provider_name} is not initialized")

    def _check_chip(self, chip: ChipRef) -> None:
        self._require_initialized()
        if chip.generation != self._generation or not 0 <= chip.index < len(self._chips):
            raise StaleReferenceError(f"Chip handle {chip.index} is no longer valid")

    def __enter__(self):
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()
        return False
