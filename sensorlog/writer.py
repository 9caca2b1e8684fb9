"""
Sensor Record Writer

Turns accepted readings into persisted records. The writer picks the
record name and value schema from the identifier and hands the record to
a persistence sink; CSVSink stores one CSV file per sensor.
"""

import csv
import time
import logging
import threading
from enum import Enum
from pathlib import Path
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from .errors import IdentifierOverflowError
from .labels import Category
from .naming import NamingScheme, category_part, filename_for
from .selection import SensorConfig, is_accepted

logger = logging.getLogger("sensorlog.writer")


class ValueSchema(Enum):
    """Value column layout of a persisted record."""
    GENERIC = "value"
    VOLTAGE = "voltage"

    @property
    def column(self) -> str:
        return self.value


class PersistenceSink(ABC):
    """Destination for persisted records."""

    @abstractmethod
    def write(self, filename: str, record: str, schema: ValueSchema) -> None:
        pass


class WriterAdapter:
    """
    Bridges submitted readings to a persistence sink.

    The selection list is checked again here, since records can reach the
    writer without passing through the collector.
    """

    def __init__(self, config: SensorConfig, sink: PersistenceSink):
        self.config = config
        self.sink = sink

    def write(self, identifier: str, value: float, timestamp: Optional[int] = None) -> bool:
        """
        Persist a single value.

        Args:
            identifier: Sensor instance identifier
            value: Sensor value
            timestamp: Seconds since the epoch, defaults to now

        Returns:
            True if a record was handed to the sink
        """
        if timestamp is None:
            timestamp = int(time.time())
        return self.write_record(identifier, f"{timestamp}:{value:.3f}")

    def write_record(self, identifier: str, record: str) -> bool:
        """
        Persist an already formatted "<timestamp>:<value>" record.

        Returns:
            True if a record was handed to the sink, False if it was dropped
        """
        if not is_accepted(identifier, self.config.selection):
            return False

        scheme = self.config.scheme
        try:
            filename = filename_for(identifier, scheme)
        except IdentifierOverflowError as e:
            logger.debug(f"Dropping record for {identifier[:64]}...: {e}")
            return False

        schema = ValueSchema.GENERIC
        if scheme is NamingScheme.EXTENDED:
            tail = category_part(identifier)
            if tail is None:
                logger.debug(f"Dropping record for {identifier}: no category")
                return False
            if tail.startswith(Category.VOLTAGE.suffix):
                schema = ValueSchema.VOLTAGE

        try:
            self.sink.write(filename, record, schema)
        except OSError as e:
            logger.debug(f"Dropping record for {identifier}: {e}")
            return False
        return True


class CSVSink(PersistenceSink):
    """
    Persistence sink writing one CSV file per record name.

    Record names may contain "/", which places the file in a
    subdirectory. Each file has a "timestamp" column and a value column
    named after the schema.
    """

    EXTENSION = ".csv"

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self._file_handles: Dict[Path, Any] = {}
        self._csv_writers: Dict[Path, Any] = {}
        self._lock = threading.Lock()

    def path_for(self, filename: str) -> Path:
        return self.base_dir / f"{filename}{self.EXTENSION}"

    def _open(self, path: Path, schema: ValueSchema):
        path.parent.mkdir(parents=True, exist_ok=True)
        file_exists = path.exists() and path.stat().st_size > 0

        handle = open(path, "a", newline="", encoding="utf-8")
        writer = csv.writer(handle)
        if not file_exists:
            writer.writerow(["timestamp", schema.column])

        self._file_handles[path] = handle
        self._csv_writers[path] = writer
        return writer

    def write(self, filename: str, record: str, schema: ValueSchema) -> None:
        """
        Append a "<timestamp>:<value>" record.

        Args:
            filename: Record name without extension
            record: Formatted record
            schema: Value schema; selects the value column header
        """
        timestamp, _, value = record.partition(":")
        path = self.path_for(filename)

        with self._lock:
            writer = self._csv_writers.get(path)
            if writer is None:
                writer = self._open(path, schema)
            writer.writerow([timestamp, value])
            self._file_handles[path].flush()

    def close(self) -> None:
        """Close all open files."""
        with self._lock:
            for handle in self._file_handles.values():
                handle.close()
            self._file_handles.clear()
            self._csv_writers.clear()
