"""
Feature Catalog

Holds the sensor features currently tracked for collection. The catalog
is rebuilt wholesale from the provider's chip and feature enumeration and
is read-only between rebuilds.
"""

import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Set, Tuple, Union

from .errors import ProviderError
from .labels import Category, LabelTable, KNOWN_LABELS, classify
from .providers.base_provider import BaseSensorProvider, ChipRef, FeatureRef

logger = logging.getLogger("sensorlog.catalog")

DEFAULT_SENSORS_CONFIGS = ("/etc/sensors3.conf", "/etc/sensors.conf")


@dataclass(frozen=True)
class FeatureEntry:
    """One tracked chip feature."""
    chip: ChipRef
    feature: FeatureRef
    name: str
    category: Category


class FeatureCatalog:
    """
    Insertion-ordered set of tracked features.

    Only master features whose label classifies and which sensors.conf does
    not ignore are tracked. If a rebuild finds nothing to track, the
    provider is released.
    """

    def __init__(
        self,
        provider: BaseSensorProvider,
        config_path: Optional[Union[str, Path]] = None,
        table: LabelTable = KNOWN_LABELS,
        default_config_paths: Sequence[str] = DEFAULT_SENSORS_CONFIGS,
    ):
        """
        Args:
            provider: Hardware-monitoring provider to enumerate
            config_path: sensors.conf to hand to the provider; when None the
                first existing default path is used, if any
            table: Label table used for classification
            default_config_paths: Candidate sensors.conf locations
        """
        self.provider = provider
        self.config_path = Path(config_path) if config_path else None
        self.table = table
        self.default_config_paths = tuple(default_config_paths)
        self._entries: Tuple[FeatureEntry, ...] = ()
        self._rebuilds = 0

    @property
    def entries(self) -> Tuple[FeatureEntry, ...]:
        return self._entries

    @property
    def generation(self) -> int:
        """Number of rebuilds performed so far."""
        return self._rebuilds

    def __iter__(self) -> Iterator[FeatureEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop all entries."""
        self._entries = ()

    def _resolve_config_path(self) -> Optional[Path]:
        if self.config_path is not None:
            return self.config_path
        for candidate in self.default_config_paths:
            path = Path(candidate)
            if path.is_file():
                return path
        return None

    def _initialize_provider(self) -> bool:
        config_path = self._resolve_config_path()
        if config_path is None:
            return self.provider.initialize(None)

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                return self.provider.initialize(f)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read {config_path}: {e}")
            return False

    def rebuild(self) -> int:
        """
        Discard all entries and rediscover features from the provider.

        Returns:
            Number of features now tracked
        """
        self.clear()
        self._rebuilds += 1

        if not self._initialize_provider():
            logger.error("sensors: Cannot initialize sensors. Data will not be collected.")
            return 0

        entries: List[FeatureEntry] = []
        seen: Set[Tuple[int, int]] = set()
        try:
            for chip in self.provider.enumerate_chips():
                for feature in self.provider.enumerate_features(chip):
                    # Master features only
                    if feature.mapped:
                        continue

                    category = classify(feature.name, self.table)
                    if category is None:
                        continue

                    if self.provider.is_natively_ignored(chip, feature):
                        logger.debug(
                            f"Ignoring {chip.topology.prefix}/{feature.name} per sensors.conf"
                        )
                        continue

                    key = (chip.index, feature.ref.number)
                    if key in seen:
                        continue
                    seen.add(key)

                    logger.debug(
                        f"Adding feature: {chip.topology.prefix}/{feature.name}/{category.name}"
                    )
                    entries.append(FeatureEntry(chip, feature.ref, feature.name, category))
        except (ProviderError, OSError) as e:
            logger.error(f"sensors: Feature enumeration failed: {e}")
            entries = []

        self._entries = tuple(entries)

        if not self._entries:
            self.provider.cleanup()

        logger.info(f"Tracking {len(self._entries)} sensor features")
        return len(self._entries)
