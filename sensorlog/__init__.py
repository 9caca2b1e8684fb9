"""
sensorlog - Hardware Sensor Telemetry Collector

Discovers voltage, fan speed and temperature sensors exposed by the local
hardware-monitoring subsystem, classifies them, and logs time-stamped
readings to per-sensor CSV files.

Modules:
    - sensors_logger: Main collection loop and command line entry point
    - labels: Label classification table
    - naming: Sensor identifier and filename construction
    - selection: Sensor selection list and plugin configuration
    - catalog: Discovered feature catalog
    - collector: Per-interval scan cycle
    - writer: Record persistence
    - providers: Hardware-monitoring backends (sysfs hwmon, psutil)
    - utils: Configuration and logging helpers
"""

__version__ = "1.0.0"
__author__ = "sensorlog Contributors"
__license__ = "Apache-2.0"
