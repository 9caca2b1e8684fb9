"""Domain-specific errors for sensorlog."""


class SensorlogError(Exception):
    """Base error for sensorlog."""


class ConfigurationError(SensorlogError):
    """Raised when configuration values cannot be applied."""


class LabelTableError(SensorlogError):
    """Raised when a label table violates its ordering rules."""


class IdentifierOverflowError(SensorlogError):
    """Raised when a composed identifier or filename exceeds the name limit."""


class ProviderError(SensorlogError):
    """Base error for hardware-monitoring providers."""


class ProviderUnavailableError(ProviderError):
    """Raised when the provider cannot be initialized or enumerated."""


class SensorReadError(ProviderError):
    """Raised when a single feature value cannot be read."""


class StaleReferenceError(SensorReadError):
    """Raised when a chip or feature handle predates the last initialization."""
