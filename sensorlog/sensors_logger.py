"""
sensorlog Sensors Logger

Main collection script that discovers hardware sensors once, then reads
them at a fixed interval and writes each reading to a per-sensor CSV file.

Features:
    - sysfs hwmon discovery with psutil fallback
    - sensors.conf "ignore" statements honored
    - Legacy (chip-feature) or extended (chip-bus-address/type-feature) naming
    - Include/exclude sensor selection
    - Catalog refresh on request, serialized with collection

Usage:
    sensorlog [--config path/to/config.yaml] [--once]
"""

import sys
import time
import signal
import logging
import argparse
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from .catalog import FeatureCatalog
from .collector import SensorCollector
from .errors import ConfigurationError
from .providers import create_provider
from .utils import (
    build_sensor_config,
    get_data_directory,
    load_config,
    setup_logging,
)
from .writer import CSVSink, WriterAdapter

# Module logger
logger = logging.getLogger("sensorlog.logger")


class SensorsLogger:
    """
    Main sensors logger.

    Owns the provider, feature catalog, collector and writer. A single
    collection thread performs every rebuild and every scan cycle, so the
    catalog is never rebuilt while a cycle is reading it.
    """

    # Seconds stop() waits for the collection thread
    STOP_TIMEOUT = 5.0

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the sensors logger.

        Args:
            config_path: Path to configuration file
            config: Configuration dictionary, used instead of config_path
        """
        self.config = config if config is not None else load_config(config_path)
        self.logger = setup_logging(self.config)

        general_config = self.config.get("general", {})
        self.interval = general_config.get("logging_interval", 10)

        self.sensor_config, status = build_sensor_config(self.config)
        if status < 0:
            logger.error("Configuration contains unknown sensors options; they were ignored")

        self.provider = create_provider(general_config.get("provider", "auto"), self.config)
        self.catalog = FeatureCatalog(
            self.provider,
            config_path=general_config.get("sensors_config"),
        )
        self._sink = CSVSink(get_data_directory(self.config))
        self.writer = WriterAdapter(self.sensor_config, self._sink)
        self.collector = SensorCollector(
            self.catalog,
            self.provider,
            self.sensor_config,
            submit=self.submit,
        )

        # State
        self._running = False
        self._paused = False
        self._refresh_requested = threading.Event()
        self._readings_count = 0
        self._records_written = 0
        self._cycles = 0
        self._skipped_ticks = 0
        self._session_start = datetime.now()

        # Threads
        self._collect_thread: Optional[threading.Thread] = None

    def submit(self, module_name: str, instance: str, record: str) -> None:
        """Hand a formatted reading to the writer."""
        self._readings_count += 1
        if self.writer.write_record(instance, record):
            self._records_written += 1
        else:
            logger.debug(f"{module_name}: record for {instance} dropped by writer")

    def request_refresh(self) -> None:
        """Rebuild the feature catalog before the next scan cycle."""
        self._refresh_requested.set()

    def run_once(self) -> int:
        """
        Run one scan cycle, rebuilding the catalog first if requested.

        Returns:
            Number of readings submitted
        """
        if self._refresh_requested.is_set():
            self._refresh_requested.clear()
            self.catalog.rebuild()

        submitted = self.collector.read()
        self._cycles += 1
        return submitted

    def _collection_loop(self) -> None:
        """Main collection loop running in separate thread."""
        logger.info("Collection loop started")

        next_tick = time.monotonic()
        while self._running:
            if self._paused:
                time.sleep(0.5)
                next_tick = time.monotonic()
                continue

            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Collection error: {e}")

            # Drop ticks that passed while the cycle was running
            next_tick += self.interval
            now = time.monotonic()
            if next_tick < now:
                missed = int((now - next_tick) // self.interval) + 1
                self._skipped_ticks += missed
                next_tick += missed * self.interval
                logger.warning(f"Scan cycle overran interval, skipped {missed} tick(s)")

            # Sleep in small increments for responsive shutdown
            while self._running and time.monotonic() < next_tick:
                time.sleep(min(0.5, max(0.0, next_tick - time.monotonic())))

        logger.info("Collection loop stopped")

    def start(self) -> None:
        """Start the logging process."""
        if self._running:
            logger.warning("Logger already running")
            return

        self._running = True
        self._session_start = datetime.now()

        logger.info(f"Starting sensorlog ({self.provider.provider_name})")
        logger.info(f"Naming scheme: {self.sensor_config.scheme.value}")
        logger.info(f"Logging interval: {self.interval}s")

        self._refresh_requested.set()
        self._collect_thread = threading.Thread(
            target=self._collection_loop,
            name="SensorCollector",
            daemon=True
        )
        self._collect_thread.start()

        logger.info("Logger started successfully")

    def stop(self) -> None:
        """Stop the logging process."""
        if not self._running:
            return

        logger.info("Stopping logger...")
        self._running = False

        if self._collect_thread:
            self._collect_thread.join(timeout=self.STOP_TIMEOUT)
            if self._collect_thread.is_alive():
                # The running cycle still holds the sink and provider
                logger.warning("Collection thread did not stop in time; skipping cleanup")
                return

        self._sink.close()
        self.catalog.clear()
        self.provider.cleanup()

        logger.info(f"Logger stopped. Total records written: {self._records_written}")

    def pause(self) -> None:
        """Pause collection."""
        self._paused = True
        logger.info("Logger paused")

    def resume(self) -> None:
        """Resume collection."""
        self._paused = False
        logger.info("Logger resumed")

    def get_status(self) -> Dict[str, Any]:
        """Get current logger status."""
        return {
            "running": self._running,
            "paused": self._paused,
            "provider": self.provider.provider_name,
            "features": len(self.catalog),
            "cycles": self._cycles,
            "readings_count": self._readings_count,
            "records_written": self._records_written,
            "skipped_ticks": self._skipped_ticks,
            "session_start": self._session_start.isoformat(),
            "naming_scheme": self.sensor_config.scheme.value,
        }


def main():
    """Main entry point for the sensors logger."""
    parser = argparse.ArgumentParser(
        description="sensorlog - Hardware sensor telemetry collection"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Discover sensors, print one scan cycle and exit"
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Run in test mode (collect for 10 seconds then exit)"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        sensors_logger = SensorsLogger(config_path=args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.once:
        sensors_logger.catalog.rebuild()
        for reading in sensors_logger.collector.collect():
            print(f"{reading.identifier} {reading.format()}")
        sensors_logger.provider.cleanup()
        return

    # Signal handlers for graceful shutdown
    def signal_handler(signum, frame):
        print("\nShutdown signal received...")
        sensors_logger.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, lambda signum, frame: sensors_logger.request_refresh())

    sensors_logger.start()

    if args.test:
        print("Running in test mode for 10 seconds...")
        time.sleep(10)
        status = sensors_logger.get_status()
        print(f"\nTest Results:")
        print(f"  Features tracked: {status['features']}")
        print(f"  Records written: {status['records_written']}")
        sensors_logger.stop()
    else:
        print("sensorlog running. Press Ctrl+C to stop.")
        try:
            while True:
                time.sleep(60)
                status = sensors_logger.get_status()
                logger.info(
                    f"Status: {status['features']} features, "
                    f"{status['records_written']} records written"
                )
        except KeyboardInterrupt:
            pass
        finally:
            sensors_logger.stop()


if __name__ == "__main__":
    main()
