"""
Sensor Scan Cycle

Walks the feature catalog once per collection interval, reads each
feature's live value and turns it into a time-stamped reading under the
configured naming scheme and selection list.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .catalog import FeatureCatalog
from .errors import IdentifierOverflowError, ProviderError
from .naming import build_identifier
from .providers.base_provider import BaseSensorProvider
from .selection import SensorConfig, is_accepted

logger = logging.getLogger("sensorlog.collector")

MODULE_NAME = "sensors"

SubmitCallback = Callable[[str, str, str], None]


@dataclass(frozen=True)
class Reading:
    """A single sensor value at a point in time."""
    identifier: str
    timestamp: int
    value: float

    def format(self) -> str:
        """Return the record form "<timestamp>:<value>" with 3 decimals."""
        return f"{self.timestamp}:{self.value:.3f}"

    @classmethod
    def parse(cls, record: str, identifier: str = "") -> "Reading":
        """
        Parse a "<timestamp>:<value>" record.

        Raises:
            ValueError: If the record is malformed
        """
        timestamp, separator, value = record.partition(":")
        if not separator:
            raise ValueError(f"Malformed record: {record!r}")
        return cls(identifier=identifier, timestamp=int(timestamp), value=float(value))


class SensorCollector:
    """
    Produces readings for every tracked feature.

    The catalog must not be rebuilt while a cycle is in progress; the
    caller serializes rebuild() and collect().
    """

    def __init__(
        self,
        catalog: FeatureCatalog,
        provider: BaseSensorProvider,
        config: SensorConfig,
        submit: Optional[SubmitCallback] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.catalog = catalog
        self.provider = provider
        self.config = config
        self.submit = submit
        self.clock = clock

    def collect(self) -> Iterator[Reading]:
        """
        Yield one reading per readable, accepted catalog entry.

        Failures affect only the entry concerned; the entry stays in the
        catalog and is tried again next cycle.
        """
        scheme = self.config.scheme
        selection = self.config.selection

        for entry in self.catalog:
            try:
                value = self.provider.read_value(entry.chip, entry.feature)
            except ProviderError as e:
                logger.debug(f"Skipping {entry.chip.topology.prefix}/{entry.name}: {e}")
                continue

            try:
                identifier = build_identifier(
                    entry.chip.topology, entry.name, entry.category, scheme
                )
            except IdentifierOverflowError as e:
                logger.debug(f"Skipping {entry.chip.topology.prefix}/{entry.name}: {e}")
                continue

            if not is_accepted(identifier, selection):
                continue

            yield Reading(identifier, int(self.clock()), value)

    def read(self) -> int:
        """
        Run one scan cycle and submit every reading.

        Returns:
            Number of readings submitted
        """
        count = 0
        for reading in self.collect():
            logger.debug(f"{reading.identifier}, {reading.format()}")
            if self.submit is not None:
                try:
                    self.submit(MODULE_NAME, reading.identifier, reading.format())
                except OSError as e:
                    logger.debug(f"Submit failed for {reading.identifier}: {e}")
                    continue
            count += 1
        return count
